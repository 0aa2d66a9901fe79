from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models


UNJUMBLE_SLUG = "unjumble"


# PUBLIC_INTERFACE
class TimeStampedModel(models.Model):
    """Abstract base model providing created/updated timestamps.

    Notes:
        Keep this abstract model free of any logic that would access the Django
        app registry or execute queries at module import time. Only field
        declarations and Meta options are allowed here so that importing this
        module does not trigger AppRegistryNotReady during Django startup.
    """
    created_at = models.DateTimeField(auto_now_add=True, help_text="Time when the record was created.")
    updated_at = models.DateTimeField(auto_now=True, help_text="Time when the record was last updated.")

    class Meta:
        abstract = True


# PUBLIC_INTERFACE
class GameTemplate(TimeStampedModel):
    """A category of game (e.g. unjumble) that Game records are instances of."""
    slug = models.SlugField(max_length=64, unique=True, help_text="Stable template identifier.")
    name = models.CharField(max_length=128)

    class Meta:
        ordering = ["slug"]
        verbose_name = "Game Template"
        verbose_name_plural = "Game Templates"

    def __str__(self) -> str:  # pragma: no cover
        return self.slug


# PUBLIC_INTERFACE
class Game(TimeStampedModel):
    """A puzzle game definition owned by an admin.

    Fields:
    - name: unique display name
    - thumbnail_image: storage path of the uploaded thumbnail
    - is_published: whether players can fetch the public play view
    - creator: owning admin; only the creator or a superadmin may mutate
    - game_template: template the game_json document conforms to
    - game_json: embedded template-specific document, for unjumble:
        {"score_per_sentence": int, "is_randomized": bool,
         "sentences": [{"sentence_text": str, "sentence_image": str | None}]}
    - total_played: per-game play counter, incremented atomically
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=128, unique=True, help_text="Unique game name.")
    description = models.TextField(blank=True, default="")
    thumbnail_image = models.CharField(max_length=255, help_text="Storage path of the thumbnail.")
    is_published = models.BooleanField(default=False)
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="games")
    game_template = models.ForeignKey(GameTemplate, on_delete=models.PROTECT, related_name="games")
    game_json = models.JSONField(default=dict, blank=True)
    total_played = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Game"
        verbose_name_plural = "Games"

    @property
    def media_prefix(self) -> str:
        """Storage folder holding every media file of this game."""
        return f"{self.game_template.slug}/{self.pk}"

    def __str__(self) -> str:  # pragma: no cover
        return self.name


# PUBLIC_INTERFACE
class UserRole(TimeStampedModel):
    """Role attached to a user; users without a row are plain players."""
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    ROLE_CHOICES = (
        (USER, "User"),
        (ADMIN, "Admin"),
        (SUPER_ADMIN, "Super admin"),
    )

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="game_role")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=USER)

    class Meta:
        verbose_name = "User Role"
        verbose_name_plural = "User Roles"

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user} ({self.role})"


# PUBLIC_INTERFACE
class OrphanedMedia(TimeStampedModel):
    """A media folder left behind after its game was deleted.

    Rows are written when folder removal fails during delete and cleared by the
    reap_orphaned_media management command.
    """
    path_prefix = models.CharField(max_length=255)
    reason = models.TextField(blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Orphaned Media"
        verbose_name_plural = "Orphaned Media"

    def __str__(self) -> str:  # pragma: no cover
        return self.path_prefix
