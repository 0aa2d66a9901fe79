from django.contrib import admin

from .models import GameTemplate, Game, UserRole, OrphanedMedia


@admin.register(GameTemplate)
class GameTemplateAdmin(admin.ModelAdmin):
    list_display = ("slug", "name", "created_at")
    search_fields = ("slug", "name")
    ordering = ("slug",)


@admin.register(Game)
class GameAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "game_template",
        "creator",
        "is_published",
        "total_played",
        "created_at",
        "updated_at",
    )
    list_filter = ("is_published", "game_template")
    search_fields = ("name", "creator__username")
    readonly_fields = ("id", "total_played", "created_at", "updated_at")


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "updated_at")
    list_filter = ("role",)
    search_fields = ("user__username",)


@admin.register(OrphanedMedia)
class OrphanedMediaAdmin(admin.ModelAdmin):
    list_display = ("path_prefix", "created_at", "resolved_at")
    list_filter = ("resolved_at",)
    search_fields = ("path_prefix",)
    readonly_fields = ("reason", "created_at", "updated_at")
