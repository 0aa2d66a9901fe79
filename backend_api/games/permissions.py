from __future__ import annotations

import logging
from typing import Optional

from rest_framework.exceptions import PermissionDenied

from .models import Game, UserRole

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_role(user) -> Optional[str]:
    """Return the game role of a user, or None for anonymous requests.

    Django superusers count as SUPER_ADMIN; users without a UserRole row are USER.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if getattr(user, "is_superuser", False):
        return UserRole.SUPER_ADMIN
    try:
        return user.game_role.role
    except UserRole.DoesNotExist:
        return UserRole.USER


# PUBLIC_INTERFACE
def can_manage_game(user, game: Game) -> bool:
    """True when user created the game or holds the SUPER_ADMIN role."""
    role = get_role(user)
    if role is None:
        return False
    return role == UserRole.SUPER_ADMIN or game.creator_id == user.pk


# PUBLIC_INTERFACE
def ensure_can_manage(game: Game, user) -> None:
    """Raise PermissionDenied unless user may view the edit data of, update,
    publish or delete game."""
    if not can_manage_game(user, game):
        logger.warning("User %s refused access to game %s", getattr(user, "pk", None), game.pk)
        raise PermissionDenied("User cannot access this game")
