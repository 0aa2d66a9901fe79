from __future__ import annotations

from typing import Any

from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework import status, permissions
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from . import services
from .serializers import (
    CreateUnjumbleRequestSerializer,
    UpdateUnjumbleRequestSerializer,
    PublishStatusRequestSerializer,
    CheckAnswerRequestSerializer,
    CheckAnswerResponseSerializer,
    PlayCountRequestSerializer,
    PuzzleResponseSerializer,
    PlayGameResponseSerializer,
    EditGameResponseSerializer,
)


_UNJUMBLE_FORM_PARAMETERS = [
    openapi.Parameter("name", openapi.IN_FORM, type=openapi.TYPE_STRING, required=True),
    openapi.Parameter("description", openapi.IN_FORM, type=openapi.TYPE_STRING, required=False),
    openapi.Parameter("thumbnail_image", openapi.IN_FORM, type=openapi.TYPE_FILE, required=True),
    openapi.Parameter(
        "files_to_upload", openapi.IN_FORM, type=openapi.TYPE_FILE, required=False,
        description="Sentence image; repeat the field to send several.",
    ),
    openapi.Parameter("score_per_sentence", openapi.IN_FORM, type=openapi.TYPE_INTEGER, required=False),
    openapi.Parameter("is_randomized", openapi.IN_FORM, type=openapi.TYPE_BOOLEAN, required=False),
    openapi.Parameter("is_publish_immediately", openapi.IN_FORM, type=openapi.TYPE_BOOLEAN, required=False),
    openapi.Parameter(
        "sentences", openapi.IN_FORM, type=openapi.TYPE_STRING, required=True,
        description='JSON list, e.g. [{"sentence_text": "I like cats", "sentence_image_array_index": 0}]',
    ),
]


def _envelope(status_code: int, message: str, data: Any) -> Response:
    """Wrap data in the {status_code, message, data} success envelope."""
    return Response({"status_code": status_code, "message": message, "data": data}, status=status_code)


# PUBLIC_INTERFACE
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def health(request):
    """Health check endpoint for the API.

    Returns:
    - 200 OK with {"message": "Server is up!"}
    """
    return Response({"message": "Server is up!"})


# ------------------------------- #
# ADMIN AREA
# ------------------------------- #

# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="post",
    operation_id="create_unjumble",
    operation_summary="Create an unjumble game",
    operation_description="""
Create an unjumble game owned by the authenticated user. Multipart body:

- name (string, required, unique)
- description (string, optional)
- thumbnail_image (file, required)
- files_to_upload (files, optional): images referenced by index from sentences
- score_per_sentence (int, optional, default 10)
- is_randomized (bool, optional)
- is_publish_immediately (bool, optional)
- sentences (JSON list, required): [{"sentence_text": "...", "sentence_image_array_index": 0}]
""",
    manual_parameters=_UNJUMBLE_FORM_PARAMETERS,
    responses={201: openapi.Response("Created"), 400: "Duplicate name or invalid input"},
    tags=["unjumble-admin"],
)
@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def create_unjumble(request):
    """Create a new unjumble game with uploaded thumbnail and sentence images."""
    serializer = CreateUnjumbleRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    created = services.create_unjumble(serializer.validated_data, request.user)
    return _envelope(status.HTTP_201_CREATED, "Unjumble game created", created)


def _update_unjumble(request, game_id):
    serializer = UpdateUnjumbleRequestSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    updated = services.update_unjumble(game_id, serializer.validated_data, request.user)
    return _envelope(status.HTTP_200_OK, "Update game successfully", EditGameResponseSerializer(updated).data)


def _update_publish_status(request, game_id):
    serializer = PublishStatusRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    updated = services.update_publish_status(game_id, serializer.validated_data["is_publish"], request.user)
    return _envelope(status.HTTP_200_OK, "Update publish status successfully", updated)


def _delete_unjumble(request, game_id):
    services.delete_unjumble(game_id, request.user)
    return _envelope(status.HTTP_200_OK, "Delete game successfully", None)


def _get_public_play(game_id, message: str):
    game = services.get_unjumble_play(game_id, is_public=True)
    return _envelope(status.HTTP_200_OK, message, PlayGameResponseSerializer(game).data)


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="get",
    operation_id="get_unjumble",
    operation_summary="Get a published unjumble game",
    operation_description="Public play view of a published game. Sentences are jumbled.",
    responses={200: PlayGameResponseSerializer, 404: "Not found or not published"},
    tags=["unjumble-play"],
)
@swagger_auto_schema(
    method="put",
    operation_id="update_unjumble",
    operation_summary="Update an unjumble game",
    operation_description="""
Partial update. Only supplied fields change; a new thumbnail or new images are
uploaded only when files are sent. Allowed for the creator or a SUPER_ADMIN.

Accepts the same multipart fields as create, all optional. Sentences may also
carry "sentence_image" to keep an already stored image path.
""",
    responses={200: EditGameResponseSerializer, 403: "Not the creator"},
    tags=["unjumble-admin"],
)
@swagger_auto_schema(
    method="patch",
    operation_id="update_unjumble_publish_status",
    operation_summary="Publish or unpublish a game",
    request_body=PublishStatusRequestSerializer,
    responses={200: openapi.Response("OK"), 403: "Not the creator"},
    tags=["unjumble-admin"],
)
@swagger_auto_schema(
    method="delete",
    operation_id="delete_unjumble",
    operation_summary="Delete an unjumble game",
    operation_description="Deletes the record, then its media folder. Allowed for the creator or a SUPER_ADMIN.",
    responses={200: openapi.Response("OK"), 403: "Not the creator"},
    tags=["unjumble-admin"],
)
@api_view(["GET", "PUT", "PATCH", "DELETE"])
@permission_classes([permissions.IsAuthenticatedOrReadOnly])
@parser_classes([JSONParser, MultiPartParser, FormParser])
def unjumble_detail(request, game_id):
    """Public play view (GET) and admin mutations (PUT, PATCH, DELETE) of one game."""
    if request.method == "PUT":
        return _update_unjumble(request, game_id)
    if request.method == "PATCH":
        return _update_publish_status(request, game_id)
    if request.method == "DELETE":
        return _delete_unjumble(request, game_id)
    return _get_public_play(game_id, "Get unjumble game successfully")


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="get",
    operation_id="get_unjumble_for_edit",
    operation_summary="Get game data for editing",
    operation_description="Full game data including sentences. Allowed for the creator or a SUPER_ADMIN.",
    responses={200: EditGameResponseSerializer, 403: "Not the creator"},
    tags=["unjumble-admin"],
)
@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def get_unjumble_for_edit(request, game_id):
    """Return the editable projection of a game to its creator or a superadmin."""
    game = services.get_unjumble_for_edit(game_id, request.user)
    return _envelope(status.HTTP_200_OK, "Get game data for edit successfully", EditGameResponseSerializer(game).data)


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="get",
    operation_id="get_unjumble_play_private",
    operation_summary="Play an unpublished game as its owner",
    responses={200: PlayGameResponseSerializer, 403: "Not the creator"},
    tags=["unjumble-admin"],
)
@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def get_unjumble_play_private(request, game_id):
    """Play view for the creator or a superadmin, published or not."""
    game = services.get_unjumble_play(game_id, is_public=False, user=request.user)
    return _envelope(status.HTTP_200_OK, "Game retrieved successfully", PlayGameResponseSerializer(game).data)


# ------------------------------- #
# PLAYER AREA
# ------------------------------- #

# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="get",
    operation_id="get_unjumble_play_public",
    operation_summary="Get a published game for play",
    responses={200: PlayGameResponseSerializer, 404: "Not found or not published"},
    tags=["unjumble-play"],
)
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def get_unjumble_play_public(request, game_id):
    """Public play view of a published game."""
    return _get_public_play(game_id, "Game retrieved successfully")


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="get",
    operation_id="get_puzzle",
    operation_summary="Get a jumbled puzzle",
    operation_description="""
Returns jumbled questions for one published game: the one given by the
game_id query parameter, or the earliest created published game.
""",
    manual_parameters=[
        openapi.Parameter("game_id", openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
    ],
    responses={200: PuzzleResponseSerializer, 404: "Puzzle not found"},
    tags=["unjumble-play"],
)
@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def get_puzzle(request):
    """Return jumbled questions without revealing the answers."""
    game_id = (request.GET.get("game_id") or "").strip() or None
    puzzle = services.get_puzzle(game_id)
    return _envelope(status.HTTP_200_OK, "Puzzle retrieved successfully", PuzzleResponseSerializer(puzzle).data)


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="post",
    operation_id="check_answer",
    operation_summary="Check answers for a game",
    operation_description="""
Scores each answer against the matching sentence. Comparison ignores case but
not whitespace. Each correct answer scores the game's score_per_sentence.

Request body:
- game_id (uuid, required)
- answers (list, required, non-empty): [{"sentence_index": 0, "answer": "..."}]
""",
    request_body=CheckAnswerRequestSerializer,
    responses={200: CheckAnswerResponseSerializer},
    tags=["unjumble-play"],
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def check_answer(request):
    """Score submitted answers for a game."""
    serializer = CheckAnswerRequestSerializer(data=request.data or {})
    serializer.is_valid(raise_exception=True)
    vd = serializer.validated_data
    result = services.check_answer(vd["game_id"], vd["answers"])
    return Response(CheckAnswerResponseSerializer(result).data, status=status.HTTP_200_OK)


# PUBLIC_INTERFACE
@swagger_auto_schema(
    method="post",
    operation_id="update_play_count",
    operation_summary="Count one play of a game",
    request_body=PlayCountRequestSerializer,
    responses={200: openapi.Response("OK"), 404: "Not found or not published"},
    tags=["unjumble-play"],
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def update_play_count(request):
    """Increment the play counter of one published game."""
    serializer = PlayCountRequestSerializer(data=request.data or {})
    serializer.is_valid(raise_exception=True)
    total = services.increment_play_count(serializer.validated_data["game_id"], request.user)
    return _envelope(status.HTTP_200_OK, "Game play count updated", {"total_played": total})
