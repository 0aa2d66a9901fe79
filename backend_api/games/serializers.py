from __future__ import annotations

from typing import Any, Dict, List

from django.conf import settings
from rest_framework import serializers


def _default_score() -> int:
    return int(getattr(settings, "UNJUMBLE_CORRECT_SCORE", 10))


# PUBLIC_INTERFACE
class SentenceInputSerializer(serializers.Serializer):
    """One sentence of an unjumble game as submitted by an admin.

    Fields:
    - sentence_text: the correct sentence (the answer players must restore)
    - sentence_image_array_index (optional): index into files_to_upload
    - sentence_image (optional, update only): keep an already stored image path, or null to clear it
    """

    sentence_text = serializers.CharField(max_length=512)
    sentence_image_array_index = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    sentence_image = serializers.CharField(required=False, allow_null=True, max_length=255)


def _validate_sentences(value: Any) -> List[Dict[str, Any]]:
    """Validate the sentences JSON payload (a list, possibly sent as a JSON string in multipart)."""
    if not isinstance(value, list) or not value:
        raise serializers.ValidationError("Provide a non-empty list of sentences.")
    serializer = SentenceInputSerializer(data=value, many=True)
    if not serializer.is_valid():
        raise serializers.ValidationError(serializer.errors)
    return serializer.validated_data


# PUBLIC_INTERFACE
class CreateUnjumbleRequestSerializer(serializers.Serializer):
    """Request payload (multipart) to create an unjumble game.

    Fields:
    - name: unique game name
    - description (optional)
    - thumbnail_image: required thumbnail file
    - files_to_upload (optional): images referenced by sentence_image_array_index
    - score_per_sentence (optional, default 10)
    - is_randomized (optional, default false): shuffle sentence order in play view
    - is_publish_immediately (optional, default false)
    - sentences: JSON list of {sentence_text, sentence_image_array_index?}
    """

    name = serializers.CharField(max_length=128)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    thumbnail_image = serializers.FileField()
    files_to_upload = serializers.ListField(child=serializers.FileField(), required=False, default=list)
    score_per_sentence = serializers.IntegerField(required=False, min_value=0, default=_default_score)
    is_randomized = serializers.BooleanField(required=False, default=False)
    is_publish_immediately = serializers.BooleanField(required=False, default=False)
    sentences = serializers.JSONField()

    def validate_sentences(self, value: Any) -> List[Dict[str, Any]]:
        return _validate_sentences(value)


# PUBLIC_INTERFACE
class UpdateUnjumbleRequestSerializer(serializers.Serializer):
    """Request payload for a partial update. Use with partial=True: omitted
    fields keep their stored values."""

    name = serializers.CharField(max_length=128)
    description = serializers.CharField(allow_blank=True)
    thumbnail_image = serializers.FileField()
    files_to_upload = serializers.ListField(child=serializers.FileField())
    score_per_sentence = serializers.IntegerField(min_value=0)
    is_randomized = serializers.BooleanField()
    is_publish_immediately = serializers.BooleanField()
    sentences = serializers.JSONField()

    def validate_sentences(self, value: Any) -> List[Dict[str, Any]]:
        return _validate_sentences(value)


# PUBLIC_INTERFACE
class PublishStatusRequestSerializer(serializers.Serializer):
    """Request payload to publish or unpublish a game."""

    is_publish = serializers.BooleanField()


# PUBLIC_INTERFACE
class AnswerSerializer(serializers.Serializer):
    """A single answer; whitespace is preserved because it counts in comparison."""

    sentence_index = serializers.IntegerField(min_value=0)
    answer = serializers.CharField(allow_blank=True, trim_whitespace=False, max_length=512)


# PUBLIC_INTERFACE
class CheckAnswerRequestSerializer(serializers.Serializer):
    """Request payload to check one or more answers for a game."""

    game_id = serializers.UUIDField()
    answers = AnswerSerializer(many=True, allow_empty=False)


# PUBLIC_INTERFACE
class PlayCountRequestSerializer(serializers.Serializer):
    """Request payload to count one play of a game."""

    game_id = serializers.UUIDField()


class AnswerResultSerializer(serializers.Serializer):
    sentence_index = serializers.IntegerField()
    is_correct = serializers.BooleanField()
    score = serializers.IntegerField()
    message = serializers.CharField()


# PUBLIC_INTERFACE
class CheckAnswerResponseSerializer(serializers.Serializer):
    """Response payload after checking answers."""

    status = serializers.BooleanField()
    game_id = serializers.CharField()
    results = AnswerResultSerializer(many=True)
    correct_count = serializers.IntegerField()
    total_score = serializers.IntegerField()
    max_score = serializers.IntegerField()


class JumbledSentenceSerializer(serializers.Serializer):
    sentence_index = serializers.IntegerField()
    jumbled = serializers.CharField()
    sentence_image = serializers.CharField(allow_null=True)


# PUBLIC_INTERFACE
class PuzzleResponseSerializer(serializers.Serializer):
    """A jumbled puzzle; never contains the original sentences."""

    id = serializers.CharField()
    name = serializers.CharField()
    score_per_sentence = serializers.IntegerField()
    questions = JumbledSentenceSerializer(many=True)


# PUBLIC_INTERFACE
class PlayGameResponseSerializer(serializers.Serializer):
    """Public play view of a game."""

    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    thumbnail_image = serializers.CharField()
    score_per_sentence = serializers.IntegerField()
    is_randomized = serializers.BooleanField()
    sentences = JumbledSentenceSerializer(many=True)


class StoredSentenceSerializer(serializers.Serializer):
    sentence_text = serializers.CharField()
    sentence_image = serializers.CharField(allow_null=True)


# PUBLIC_INTERFACE
class EditGameResponseSerializer(serializers.Serializer):
    """Owner view of a game, including answers and bookkeeping fields."""

    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    thumbnail_image = serializers.CharField()
    is_published = serializers.BooleanField()
    creator_id = serializers.IntegerField()
    game_template = serializers.CharField()
    total_played = serializers.IntegerField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    score_per_sentence = serializers.IntegerField()
    is_randomized = serializers.BooleanField()
    sentences = StoredSentenceSerializer(many=True)
