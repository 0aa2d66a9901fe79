"""
Unjumble game services.

Every operation behind the unjumble endpoints lives here so views stay thin.
Functions raise DRF exceptions (NotFound, PermissionDenied, ValidationError,
MediaStorageError) and leave mapping them to responses to the exception handler.
"""
from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Dict, Iterable, List, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from . import storage
from .exceptions import MediaStorageError
from .models import Game, GameTemplate, OrphanedMedia, UNJUMBLE_SLUG
from .permissions import ensure_can_manage
from .puzzles import get_engine, jumble

logger = logging.getLogger(__name__)

PUZZLE_NOT_FOUND = "Puzzle not found"
PUZZLE_DATA_NOT_FOUND = "Puzzle data not found"
GAME_NOT_FOUND = "Game not found"
NAME_TAKEN = "Game name already exists"


def default_score_per_sentence() -> int:
    return int(getattr(settings, "UNJUMBLE_CORRECT_SCORE", 10))


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def _parse_game_id(game_id: Any, not_found: str = GAME_NOT_FOUND) -> uuid.UUID:
    if isinstance(game_id, uuid.UUID):
        return game_id
    try:
        return uuid.UUID(str(game_id))
    except (TypeError, ValueError):
        raise NotFound(not_found)


def _get_template() -> GameTemplate:
    try:
        return GameTemplate.objects.get(slug=UNJUMBLE_SLUG)
    except GameTemplate.DoesNotExist:
        raise NotFound("Game template not found")


def _get_unjumble_game(game_id: Any) -> Game:
    """Fetch a game by id, requiring it to be an unjumble game."""
    try:
        game = Game.objects.select_related("game_template").get(pk=_parse_game_id(game_id))
    except Game.DoesNotExist:
        raise NotFound(GAME_NOT_FOUND)
    if game.game_template.slug != UNJUMBLE_SLUG:
        raise NotFound(GAME_NOT_FOUND)
    return game


def _load_document(game: Game) -> Dict[str, Any]:
    """Return the game's unjumble document, or raise NotFound when unusable."""
    doc = game.game_json
    if not isinstance(doc, dict):
        raise NotFound(PUZZLE_DATA_NOT_FOUND)
    sentences = doc.get("sentences")
    if not isinstance(sentences, list) or not sentences:
        raise NotFound(PUZZLE_DATA_NOT_FOUND)
    for sentence in sentences:
        if not isinstance(sentence, dict) or not isinstance(sentence.get("sentence_text"), str):
            raise NotFound(PUZZLE_DATA_NOT_FOUND)
        if not sentence["sentence_text"]:
            raise NotFound(PUZZLE_DATA_NOT_FOUND)
    try:
        score = int(doc.get("score_per_sentence", default_score_per_sentence()))
    except (TypeError, ValueError):
        raise NotFound(PUZZLE_DATA_NOT_FOUND)
    return {
        "score_per_sentence": score,
        "is_randomized": bool(doc.get("is_randomized", False)),
        "sentences": [
            {"sentence_text": s["sentence_text"], "sentence_image": s.get("sentence_image")}
            for s in sentences
        ],
    }


def _jumbled_questions(sentences: List[Dict[str, Any]], randomize: bool = False) -> List[Dict[str, Any]]:
    questions = [
        {
            "sentence_index": index,
            "jumbled": jumble(sentence["sentence_text"]),
            "sentence_image": sentence.get("sentence_image"),
        }
        for index, sentence in enumerate(sentences)
    ]
    if randomize:
        random.shuffle(questions)
    return questions


# ---------------------------------------------------------------------------
# Player operations
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
def get_puzzle(game_id: Any = None) -> Dict[str, Any]:
    """Return a jumbled puzzle built from a published unjumble game.

    Without game_id the earliest-created published game is used. Every sentence
    of the game becomes one question; the original text is never returned.

    Raises:
        NotFound: no matching game ("Puzzle not found") or a game without
            usable sentences ("Puzzle data not found").
    """
    qs = Game.objects.select_related("game_template").filter(
        game_template__slug=UNJUMBLE_SLUG, is_published=True
    )
    if game_id is not None:
        qs = qs.filter(pk=_parse_game_id(game_id, not_found=PUZZLE_NOT_FOUND))
    game = qs.order_by("created_at").first()
    if game is None:
        raise NotFound(PUZZLE_NOT_FOUND)

    doc = _load_document(game)
    return {
        "id": str(game.pk),
        "name": game.name,
        "score_per_sentence": doc["score_per_sentence"],
        "questions": _jumbled_questions(doc["sentences"]),
    }


# PUBLIC_INTERFACE
def check_answer(game_id: Any, answers: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Score a batch of answers, one per sentence, against a game.

    Each answer is {"sentence_index": int, "answer": str}. Comparison is
    case-insensitive and does not trim whitespace. A correct answer scores the
    game's score_per_sentence, a wrong one scores 0.

    Returns:
        {
            "status": True,
            "game_id": str,
            "results": [{"sentence_index", "is_correct", "score", "message"}],
            "correct_count": int,
            "total_score": int,
            "max_score": int,
        }

    Raises:
        ValidationError: empty answers, duplicate or out-of-range sentence_index.
        NotFound: unknown game or unusable document.
    """
    answers = list(answers or [])
    if not answers:
        raise ValidationError({"answers": "At least one answer is required."})

    game = _get_unjumble_game(game_id)
    doc = _load_document(game)
    sentences = doc["sentences"]
    score_per_sentence = doc["score_per_sentence"]
    engine = get_engine(game.game_template.slug)()

    seen = set()
    results: List[Dict[str, Any]] = []
    for item in answers:
        index = item["sentence_index"]
        if index in seen:
            raise ValidationError({"answers": f"Duplicate answer for sentence {index}."})
        if not 0 <= index < len(sentences):
            raise ValidationError({"answers": f"Sentence index {index} is out of range."})
        seen.add(index)

        outcome = engine.evaluate(sentences[index]["sentence_text"], item["answer"])
        is_correct = bool(outcome["is_correct"])
        results.append(
            {
                "sentence_index": index,
                "is_correct": is_correct,
                "score": score_per_sentence if is_correct else 0,
                "message": outcome["message"],
            }
        )

    correct_count = sum(1 for r in results if r["is_correct"])
    return {
        "status": True,
        "game_id": str(game.pk),
        "results": results,
        "correct_count": correct_count,
        "total_score": sum(r["score"] for r in results),
        "max_score": score_per_sentence * len(results),
    }


# PUBLIC_INTERFACE
def get_unjumble_play(game_id: Any, is_public: bool = True, user=None) -> Dict[str, Any]:
    """Return the play projection of a game.

    Public requests only see published games; private requests are limited to
    users who may manage the game. No answers or ownership data are included.
    """
    game = _get_unjumble_game(game_id)
    if is_public and not game.is_published:
        raise NotFound(GAME_NOT_FOUND)
    if not is_public:
        ensure_can_manage(game, user)

    doc = _load_document(game)
    return {
        "id": str(game.pk),
        "name": game.name,
        "description": game.description,
        "thumbnail_image": game.thumbnail_image,
        "score_per_sentence": doc["score_per_sentence"],
        "is_randomized": doc["is_randomized"],
        "sentences": _jumbled_questions(doc["sentences"], randomize=doc["is_randomized"]),
    }


# PUBLIC_INTERFACE
def increment_play_count(game_id: Any, user=None) -> int:
    """Atomically add one play to a published game and return the new count."""
    pk = _parse_game_id(game_id)
    updated = Game.objects.filter(
        pk=pk, is_published=True, game_template__slug=UNJUMBLE_SLUG
    ).update(total_played=F("total_played") + 1)
    if not updated:
        raise NotFound(GAME_NOT_FOUND)
    total = Game.objects.values_list("total_played", flat=True).get(pk=pk)
    logger.info("Play counted for game %s by user %s (total %d)", pk, getattr(user, "pk", None), total)
    return total


# ---------------------------------------------------------------------------
# Admin operations
# ---------------------------------------------------------------------------

def _edit_projection(game: Game) -> Dict[str, Any]:
    doc = game.game_json if isinstance(game.game_json, dict) else {}
    return {
        "id": str(game.pk),
        "name": game.name,
        "description": game.description,
        "thumbnail_image": game.thumbnail_image,
        "is_published": game.is_published,
        "creator_id": game.creator_id,
        "game_template": game.game_template.slug,
        "total_played": game.total_played,
        "created_at": game.created_at,
        "updated_at": game.updated_at,
        "score_per_sentence": doc.get("score_per_sentence", default_score_per_sentence()),
        "is_randomized": doc.get("is_randomized", False),
        "sentences": doc.get("sentences", []),
    }


def _check_image_indices(sentences: List[Dict[str, Any]], upload_count: int) -> None:
    for position, sentence in enumerate(sentences):
        index = sentence.get("sentence_image_array_index")
        if index is not None and not 0 <= index < upload_count:
            raise ValidationError(
                {"sentences": f"Sentence {position} references image {index}, but {upload_count} were uploaded."}
            )


def _discard_files(paths: Iterable[str]) -> None:
    """Best-effort removal of stored files after a failed or replaced write."""
    for path in paths:
        try:
            storage.delete_file(path)
        except MediaStorageError:
            logger.warning("Could not remove stale media file %s", path)


def _discard_folder(path_prefix: str) -> bool:
    """Remove a media folder; on failure record it for the reaper. Returns success."""
    try:
        storage.remove_folder(path_prefix)
    except MediaStorageError as e:
        OrphanedMedia.objects.create(path_prefix=path_prefix, reason=str(e.detail))
        logger.warning("Media folder %s queued for cleanup: %s", path_prefix, e.detail)
        return False
    return True


# PUBLIC_INTERFACE
def create_unjumble(data: Dict[str, Any], user) -> Dict[str, Any]:
    """Create an unjumble game from validated request data.

    Expected keys: name, description, thumbnail_image (file), files_to_upload
    (list of files), score_per_sentence, is_randomized, is_publish_immediately,
    sentences ([{"sentence_text", "sentence_image_array_index"?}]).

    Uploads are sequential. If anything fails after the first upload the whole
    media folder of the new game is removed before the error propagates.
    """
    name = data["name"]
    if Game.objects.filter(name=name).exists():
        raise ValidationError({"name": NAME_TAKEN})

    template = _get_template()
    sentences = data["sentences"]
    files = data.get("files_to_upload") or []
    _check_image_indices(sentences, len(files))

    game_id = uuid.uuid4()
    prefix = f"{template.slug}/{game_id}"
    try:
        thumbnail = storage.upload(prefix, data["thumbnail_image"])
        image_paths = [storage.upload(prefix, f) for f in files]
        game_json = {
            "score_per_sentence": data.get("score_per_sentence", default_score_per_sentence()),
            "is_randomized": data.get("is_randomized", False),
            "sentences": [
                {
                    "sentence_text": s["sentence_text"],
                    "sentence_image": (
                        image_paths[s["sentence_image_array_index"]]
                        if s.get("sentence_image_array_index") is not None
                        else None
                    ),
                }
                for s in sentences
            ],
        }
        with transaction.atomic():
            game = Game.objects.create(
                id=game_id,
                name=name,
                description=data.get("description", ""),
                thumbnail_image=thumbnail,
                is_published=data.get("is_publish_immediately", False),
                creator=user,
                game_template=template,
                game_json=game_json,
            )
    except IntegrityError:
        _discard_folder(prefix)
        raise ValidationError({"name": NAME_TAKEN})
    except Exception:
        _discard_folder(prefix)
        raise

    logger.info("Unjumble game %s created by user %s", game.pk, user.pk)
    return {"id": str(game.pk)}


# PUBLIC_INTERFACE
def get_unjumble_for_edit(game_id: Any, user) -> Dict[str, Any]:
    """Return the full editable projection of a game to its creator or a superadmin."""
    game = _get_unjumble_game(game_id)
    ensure_can_manage(game, user)
    return _edit_projection(game)


def _merge_sentences(
    new_sentences: List[Dict[str, Any]],
    old_sentences: List[Dict[str, Any]],
    image_paths: List[str],
    prefix: str,
) -> List[Dict[str, Any]]:
    """Build the replacement sentence list.

    Image resolution per sentence: a new upload index wins, then an explicit
    sentence_image (must be one of the game's stored files, or null to clear),
    then the image previously held at the same position.
    """
    merged = []
    for position, sentence in enumerate(new_sentences):
        if sentence.get("sentence_image_array_index") is not None:
            image = image_paths[sentence["sentence_image_array_index"]]
        elif "sentence_image" in sentence:
            image = sentence["sentence_image"]
            if image is not None and not image.startswith(prefix + "/"):
                raise ValidationError({"sentences": f"Sentence {position} references an unknown image."})
        elif position < len(old_sentences):
            image = old_sentences[position].get("sentence_image")
        else:
            image = None
        merged.append({"sentence_text": sentence["sentence_text"], "sentence_image": image})
    return merged


def _stored_images(doc: Dict[str, Any]) -> List[str]:
    return [s.get("sentence_image") for s in doc.get("sentences", []) if s.get("sentence_image")]


# PUBLIC_INTERFACE
def update_unjumble(game_id: Any, data: Dict[str, Any], user) -> Dict[str, Any]:
    """Apply a partial update to a game.

    Fields missing from data keep their current value. A new thumbnail or new
    images are uploaded only when supplied; replaced files are deleted after
    the record is saved.
    """
    game = _get_unjumble_game(game_id)
    ensure_can_manage(game, user)

    if "name" in data and data["name"] != game.name:
        if Game.objects.filter(name=data["name"]).exclude(pk=game.pk).exists():
            raise ValidationError({"name": NAME_TAKEN})

    files = data.get("files_to_upload") or []
    if "sentences" in data:
        _check_image_indices(data["sentences"], len(files))

    current = game.game_json if isinstance(game.game_json, dict) else {}
    doc = {
        "score_per_sentence": current.get("score_per_sentence", default_score_per_sentence()),
        "is_randomized": current.get("is_randomized", False),
        "sentences": list(current.get("sentences", [])),
    }
    old_thumbnail = game.thumbnail_image
    old_images = _stored_images(current)
    prefix = game.media_prefix

    uploaded: List[str] = []
    try:
        if data.get("thumbnail_image"):
            game.thumbnail_image = storage.upload(prefix, data["thumbnail_image"])
            uploaded.append(game.thumbnail_image)
        image_paths = []
        for f in files:
            image_paths.append(storage.upload(prefix, f))
            uploaded.append(image_paths[-1])

        if "sentences" in data:
            doc["sentences"] = _merge_sentences(data["sentences"], doc["sentences"], image_paths, prefix)
        for field in ("score_per_sentence", "is_randomized"):
            if field in data:
                doc[field] = data[field]
        for field in ("name", "description"):
            if field in data:
                setattr(game, field, data[field])
        if "is_publish_immediately" in data:
            game.is_published = data["is_publish_immediately"]

        game.game_json = doc
        with transaction.atomic():
            game.save(update_fields=[
                "name", "description", "thumbnail_image", "is_published", "game_json", "updated_at",
            ])
    except IntegrityError:
        _discard_files(uploaded)
        raise ValidationError({"name": NAME_TAKEN})
    except Exception:
        _discard_files(uploaded)
        raise

    stale = set(old_images) - set(_stored_images(doc))
    if game.thumbnail_image != old_thumbnail:
        stale.add(old_thumbnail)
    _discard_files(sorted(stale))

    logger.info("Unjumble game %s updated by user %s", game.pk, user.pk)
    return _edit_projection(game)


# PUBLIC_INTERFACE
def update_publish_status(game_id: Any, is_publish: bool, user) -> Dict[str, Any]:
    """Publish or unpublish a game. Publishing requires a playable document."""
    game = _get_unjumble_game(game_id)
    ensure_can_manage(game, user)
    if is_publish:
        try:
            _load_document(game)
        except NotFound:
            raise ValidationError({"is_publish": "Game has no playable sentences."})
    game.is_published = is_publish
    game.save(update_fields=["is_published", "updated_at"])
    logger.info("Game %s publish status set to %s by user %s", game.pk, is_publish, user.pk)
    return {"id": str(game.pk), "is_published": game.is_published}


# PUBLIC_INTERFACE
def delete_unjumble(game_id: Any, user) -> Dict[str, Any]:
    """Delete a game record, then its media folder.

    The record deletion is committed first. If the folder cannot be removed
    the prefix is stored as OrphanedMedia for reap_orphaned_media to retry,
    and the delete still succeeds.
    """
    game = _get_unjumble_game(game_id)
    ensure_can_manage(game, user)
    prefix = game.media_prefix
    pk = game.pk

    with transaction.atomic():
        game.delete()
    logger.info("Unjumble game %s deleted by user %s", pk, user.pk)

    media_removed = _discard_folder(prefix)
    return {"id": str(pk), "media_removed": media_removed}


# PUBLIC_INTERFACE
def reap_orphaned_media() -> Tuple[int, int]:
    """Retry removal of every unresolved orphaned media folder.

    Returns (resolved, still_failing).
    """
    resolved = failed = 0
    for orphan in OrphanedMedia.objects.filter(resolved_at__isnull=True):
        try:
            storage.remove_folder(orphan.path_prefix)
        except MediaStorageError as e:
            orphan.reason = str(e.detail)
            orphan.save(update_fields=["reason", "updated_at"])
            failed += 1
            continue
        orphan.resolved_at = timezone.now()
        orphan.save(update_fields=["resolved_at", "updated_at"])
        resolved += 1
    return resolved, failed

