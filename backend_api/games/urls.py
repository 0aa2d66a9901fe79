from django.urls import path
from .views import (
    health,
    create_unjumble,
    unjumble_detail,
    get_unjumble_for_edit,
    get_unjumble_play_private,
    get_unjumble_play_public,
    get_puzzle,
    check_answer,
    update_play_count,
)

urlpatterns = [
    path('health/', health, name='Health'),
    path('', create_unjumble, name='unjumble-create'),
    path('puzzle', get_puzzle, name='unjumble-puzzle'),
    path('check-answer', check_answer, name='unjumble-check-answer'),
    path('play-count', update_play_count, name='unjumble-play-count'),
    path('play/<uuid:game_id>', get_unjumble_play_public, name='unjumble-play'),
    path('<uuid:game_id>/play/public', get_unjumble_play_public, name='unjumble-play-public'),
    path('<uuid:game_id>/play/private', get_unjumble_play_private, name='unjumble-play-private'),
    path('<uuid:game_id>/edit', get_unjumble_for_edit, name='unjumble-edit'),
    path('<uuid:game_id>', unjumble_detail, name='unjumble-detail'),
]
