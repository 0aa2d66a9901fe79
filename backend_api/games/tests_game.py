import json
import os
import shutil
import tempfile
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db.models import F
from django.test import override_settings
from django.urls import reverse
from rest_framework.test import APITestCase

from games import storage
from games.exceptions import MediaStorageError
from games.models import Game, GameTemplate, OrphanedMedia, UserRole


def _image(name="image.png"):
    return SimpleUploadedFile(name, b"\x89PNG\r\n\x1a\nfake", content_type="image/png")


def _name_free():
    """Queryset stand-in whose exists() misses a name taken by a concurrent request."""
    taken = mock.MagicMock()
    taken.exclude.return_value = taken
    taken.exists.return_value = False
    return taken


class UnjumbleTestCase(APITestCase):
    def setUp(self):
        self.media_dir = tempfile.mkdtemp()
        media_override = override_settings(MEDIA_ROOT=self.media_dir)
        media_override.enable()
        self.addCleanup(media_override.disable)
        self.addCleanup(shutil.rmtree, self.media_dir, True)

        User = get_user_model()
        self.owner = User.objects.create_user(username="owner", password="pw")
        self.other = User.objects.create_user(username="other", password="pw")
        self.superadmin = User.objects.create_user(username="boss", password="pw")
        UserRole.objects.create(user=self.owner, role=UserRole.ADMIN)
        UserRole.objects.create(user=self.superadmin, role=UserRole.SUPER_ADMIN)
        self.template = GameTemplate.objects.get(slug="unjumble")

    def make_game(self, name="Animals", published=True, sentences=None, creator=None, **doc):
        game_json = {
            "score_per_sentence": doc.get("score_per_sentence", 10),
            "is_randomized": doc.get("is_randomized", False),
            "sentences": sentences if sentences is not None else [
                {"sentence_text": "I like cats", "sentence_image": None},
                {"sentence_text": "apple", "sentence_image": None},
            ],
        }
        return Game.objects.create(
            name=name,
            thumbnail_image="unjumble/thumb.png",
            is_published=published,
            creator=creator or self.owner,
            game_template=self.template,
            game_json=game_json,
        )

    def media_files(self):
        found = []
        for root, _, files in os.walk(self.media_dir):
            found.extend(os.path.join(root, f) for f in files)
        return found


class CreateUnjumbleTests(UnjumbleTestCase):
    def payload(self, name="Fruits", **extra):
        data = {
            "name": name,
            "description": "Put the words back in order",
            "thumbnail_image": _image("thumb.png"),
            "files_to_upload": [_image("one.png"), _image("two.png")],
            "sentences": json.dumps([
                {"sentence_text": "I eat apples", "sentence_image_array_index": 1},
                {"sentence_text": "Bananas are yellow"},
            ]),
        }
        data.update(extra)
        return data

    def test_create_success(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(reverse("unjumble-create"), self.payload(), format="multipart")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["status_code"], 201)
        self.assertEqual(body["message"], "Unjumble game created")

        game = Game.objects.get(pk=body["data"]["id"])
        self.assertEqual(game.creator, self.owner)
        self.assertFalse(game.is_published)
        self.assertEqual(game.game_json["score_per_sentence"], 10)
        sentences = game.game_json["sentences"]
        self.assertEqual([s["sentence_text"] for s in sentences], ["I eat apples", "Bananas are yellow"])
        self.assertTrue(sentences[0]["sentence_image"].startswith(f"unjumble/{game.pk}/"))
        self.assertIsNone(sentences[1]["sentence_image"])
        self.assertTrue(game.thumbnail_image.startswith(f"unjumble/{game.pk}/"))
        self.assertEqual(len(self.media_files()), 3)

    def test_create_requires_authentication(self):
        resp = self.client.post(reverse("unjumble-create"), self.payload(), format="multipart")
        self.assertIn(resp.status_code, (401, 403))
        self.assertFalse(Game.objects.exists())

    def test_duplicate_name_rejected(self):
        self.make_game(name="Fruits")
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(reverse("unjumble-create"), self.payload(name="Fruits"), format="multipart")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "name: Game name already exists")
        self.assertEqual(Game.objects.filter(name="Fruits").count(), 1)
        self.assertEqual(self.media_files(), [])

    def test_racing_create_hits_unique_constraint(self):
        self.make_game(name="Fruits")
        self.client.force_authenticate(user=self.owner)
        with mock.patch.object(Game.objects, "filter", return_value=_name_free()):
            resp = self.client.post(reverse("unjumble-create"), self.payload(name="Fruits"), format="multipart")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "name: Game name already exists")
        self.assertEqual(Game.objects.filter(name="Fruits").count(), 1)
        self.assertEqual(self.media_files(), [])

    def test_image_index_out_of_range_rejected(self):
        self.client.force_authenticate(user=self.owner)
        sentences = json.dumps([{"sentence_text": "Hello there", "sentence_image_array_index": 5}])
        resp = self.client.post(
            reverse("unjumble-create"), self.payload(sentences=sentences), format="multipart"
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Game.objects.exists())

    def test_empty_sentences_rejected(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            reverse("unjumble-create"), self.payload(sentences="[]"), format="multipart"
        )
        self.assertEqual(resp.status_code, 400)

    def test_failed_upload_removes_partial_media(self):
        self.client.force_authenticate(user=self.owner)
        real_upload = storage.upload
        calls = []

        def flaky_upload(prefix, file):
            calls.append(prefix)
            if len(calls) == 3:
                raise MediaStorageError("disk full")
            return real_upload(prefix, file)

        with mock.patch("games.services.storage.upload", side_effect=flaky_upload):
            resp = self.client.post(reverse("unjumble-create"), self.payload(), format="multipart")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["message"], "disk full")
        self.assertFalse(Game.objects.exists())
        self.assertEqual(self.media_files(), [])


class PlayViewTests(UnjumbleTestCase):
    def test_public_play_hides_answers(self):
        game = self.make_game()
        resp = self.client.get(reverse("unjumble-play-public", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["id"], str(game.pk))
        self.assertNotIn("creator_id", data)
        self.assertEqual(len(data["sentences"]), 2)
        first = data["sentences"][0]
        self.assertNotIn("sentence_text", first)
        self.assertNotEqual(first["jumbled"], "I like cats")
        self.assertEqual(sorted(first["jumbled"].split()), ["I", "cats", "like"])

    def test_all_public_routes_serve_play_view(self):
        game = self.make_game()
        for name in ("unjumble-play-public", "unjumble-play", "unjumble-detail"):
            resp = self.client.get(reverse(name, kwargs={"game_id": game.pk}))
            self.assertEqual(resp.status_code, 200, name)

    def test_unpublished_game_not_found_publicly(self):
        game = self.make_game(published=False)
        resp = self.client.get(reverse("unjumble-play-public", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Game not found")

    def test_private_play_for_owner_only(self):
        game = self.make_game(published=False)
        url = reverse("unjumble-play-private", kwargs={"game_id": game.pk})
        self.client.force_authenticate(user=self.other)
        self.assertEqual(self.client.get(url).status_code, 403)
        self.client.force_authenticate(user=self.owner)
        self.assertEqual(self.client.get(url).status_code, 200)

    def test_randomized_game_keeps_sentence_indices(self):
        game = self.make_game(is_randomized=True)
        resp = self.client.get(reverse("unjumble-play-public", kwargs={"game_id": game.pk}))
        indices = sorted(s["sentence_index"] for s in resp.json()["data"]["sentences"])
        self.assertEqual(indices, [0, 1])

    def test_broken_document_reports_missing_data(self):
        game = self.make_game(sentences=[])
        resp = self.client.get(reverse("unjumble-play-public", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Puzzle data not found")


class EditViewTests(UnjumbleTestCase):
    def test_owner_sees_answers(self):
        game = self.make_game(published=False)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(reverse("unjumble-edit", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["sentences"][0]["sentence_text"], "I like cats")
        self.assertEqual(data["creator_id"], self.owner.pk)

    def test_other_user_forbidden(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.other)
        resp = self.client.get(reverse("unjumble-edit", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 403)

    def test_superadmin_allowed(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.superadmin)
        resp = self.client.get(reverse("unjumble-edit", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 200)

    def test_django_superuser_without_role_allowed(self):
        game = self.make_game()
        root = get_user_model().objects.create_superuser(username="root", password="pw")
        self.assertFalse(UserRole.objects.filter(user=root).exists())
        self.client.force_authenticate(user=root)
        resp = self.client.get(reverse("unjumble-edit", kwargs={"game_id": game.pk}))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["creator_id"], self.owner.pk)


class UpdateUnjumbleTests(UnjumbleTestCase):
    def url(self, game):
        return reverse("unjumble-detail", kwargs={"game_id": game.pk})

    def test_update_without_sentences_keeps_them(self):
        game = self.make_game()
        before = game.game_json["sentences"]
        self.client.force_authenticate(user=self.owner)
        resp = self.client.put(self.url(game), {"name": "Pets", "score_per_sentence": 5}, format="multipart")
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertEqual(game.name, "Pets")
        self.assertEqual(game.game_json["sentences"], before)
        self.assertEqual(game.game_json["score_per_sentence"], 5)
        self.assertFalse(game.game_json["is_randomized"])
        self.assertTrue(game.is_published)

    def test_update_replaces_sentences_and_thumbnail(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.owner)
        sentences = json.dumps([{"sentence_text": "Dogs bark loudly", "sentence_image_array_index": 0}])
        resp = self.client.put(
            self.url(game),
            {"sentences": sentences, "files_to_upload": [_image()], "thumbnail_image": _image("new.png")},
            format="multipart",
        )
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertEqual(len(game.game_json["sentences"]), 1)
        self.assertTrue(game.game_json["sentences"][0]["sentence_image"].startswith(game.media_prefix + "/"))
        self.assertTrue(game.thumbnail_image.startswith(game.media_prefix + "/"))
        self.assertEqual(len(self.media_files()), 2)

    def test_sentence_without_image_keeps_image_at_same_position(self):
        game = self.make_game(sentences=[
            {"sentence_text": "Birds can fly", "sentence_image": "unjumble/x/bird.png"},
        ])
        self.client.force_authenticate(user=self.owner)
        sentences = json.dumps([{"sentence_text": "Birds fly high"}])
        resp = self.client.put(self.url(game), {"sentences": sentences}, format="multipart")
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertEqual(game.game_json["sentences"][0]["sentence_image"], "unjumble/x/bird.png")

    def test_update_to_taken_name_rejected(self):
        self.make_game(name="Taken")
        game = self.make_game(name="Mine")
        self.client.force_authenticate(user=self.owner)
        resp = self.client.put(self.url(game), {"name": "Taken"}, format="multipart")
        self.assertEqual(resp.status_code, 400)

    def test_racing_rename_hits_unique_constraint(self):
        self.make_game(name="Taken")
        game = self.make_game(name="Mine")
        self.client.force_authenticate(user=self.owner)
        with mock.patch.object(Game.objects, "filter", return_value=_name_free()):
            resp = self.client.put(
                self.url(game), {"name": "Taken", "thumbnail_image": _image("new.png")}, format="multipart"
            )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "name: Game name already exists")
        game.refresh_from_db()
        self.assertEqual(game.name, "Mine")
        self.assertEqual(game.thumbnail_image, "unjumble/thumb.png")
        self.assertEqual(self.media_files(), [])

    def test_update_keeps_plays_counted_meanwhile(self):
        game = self.make_game()
        real_upload = storage.upload

        def upload_during_play(prefix, file):
            Game.objects.filter(pk=game.pk).update(total_played=F("total_played") + 1)
            return real_upload(prefix, file)

        self.client.force_authenticate(user=self.owner)
        with mock.patch("games.services.storage.upload", side_effect=upload_during_play):
            resp = self.client.put(self.url(game), {"thumbnail_image": _image("new.png")}, format="multipart")
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertEqual(game.total_played, 1)
        self.assertTrue(game.thumbnail_image.startswith(game.media_prefix + "/"))

    def test_non_owner_cannot_update(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.other)
        resp = self.client.put(self.url(game), {"name": "Hijacked"}, format="multipart")
        self.assertEqual(resp.status_code, 403)
        game.refresh_from_db()
        self.assertEqual(game.name, "Animals")

    def test_superadmin_can_update(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.superadmin)
        resp = self.client.put(self.url(game), {"description": "Edited"}, format="multipart")
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertEqual(game.description, "Edited")

    def test_publish_toggle(self):
        game = self.make_game(published=False)
        self.client.force_authenticate(user=self.owner)
        resp = self.client.patch(self.url(game), {"is_publish": True}, format="json")
        self.assertEqual(resp.status_code, 200)
        game.refresh_from_db()
        self.assertTrue(game.is_published)

    def test_publish_requires_playable_document(self):
        game = self.make_game(published=False, sentences=[])
        self.client.force_authenticate(user=self.owner)
        resp = self.client.patch(self.url(game), {"is_publish": True}, format="json")
        self.assertEqual(resp.status_code, 400)


class DeleteUnjumbleTests(UnjumbleTestCase):
    def url(self, game):
        return reverse("unjumble-detail", kwargs={"game_id": game.pk})

    def test_non_owner_cannot_delete(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.other)
        resp = self.client.delete(self.url(game))
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(Game.objects.filter(pk=game.pk).exists())

    def test_anonymous_cannot_delete(self):
        game = self.make_game()
        resp = self.client.delete(self.url(game))
        self.assertIn(resp.status_code, (401, 403))
        self.assertTrue(Game.objects.filter(pk=game.pk).exists())

    def test_owner_delete_removes_media(self):
        game = self.make_game()
        folder = os.path.join(self.media_dir, "unjumble", str(game.pk))
        os.makedirs(folder)
        with open(os.path.join(folder, "thumb.png"), "wb") as fh:
            fh.write(b"x")

        self.client.force_authenticate(user=self.owner)
        resp = self.client.delete(self.url(game))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Game.objects.filter(pk=game.pk).exists())
        self.assertFalse(os.path.exists(folder))
        self.assertFalse(OrphanedMedia.objects.exists())

    def test_superadmin_can_delete(self):
        game = self.make_game()
        self.client.force_authenticate(user=self.superadmin)
        self.assertEqual(self.client.delete(self.url(game)).status_code, 200)
        self.assertFalse(Game.objects.filter(pk=game.pk).exists())

    def test_media_failure_is_queued_and_reaped(self):
        game = self.make_game()
        folder = os.path.join(self.media_dir, "unjumble", str(game.pk))
        os.makedirs(folder)
        with open(os.path.join(folder, "thumb.png"), "wb") as fh:
            fh.write(b"x")

        self.client.force_authenticate(user=self.owner)
        with mock.patch("games.services.storage.remove_folder", side_effect=MediaStorageError("busy")):
            resp = self.client.delete(self.url(game))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Game.objects.filter(pk=game.pk).exists())
        orphan = OrphanedMedia.objects.get()
        self.assertEqual(orphan.path_prefix, f"unjumble/{game.pk}")
        self.assertTrue(os.path.exists(folder))

        call_command("reap_orphaned_media")
        orphan.refresh_from_db()
        self.assertIsNotNone(orphan.resolved_at)
        self.assertFalse(os.path.exists(folder))

    def test_storage_without_listing_is_queued(self):
        game = self.make_game()
        backend = mock.Mock()
        backend.exists.return_value = True
        backend.listdir.side_effect = NotImplementedError("listing not supported")

        self.client.force_authenticate(user=self.owner)
        with mock.patch("games.storage.default_storage", backend):
            resp = self.client.delete(self.url(game))
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(Game.objects.filter(pk=game.pk).exists())
        orphan = OrphanedMedia.objects.get()
        self.assertEqual(orphan.path_prefix, f"unjumble/{game.pk}")
        self.assertIn("listing not supported", orphan.reason)


class CheckAnswerTests(UnjumbleTestCase):
    def check(self, game, answers):
        return self.client.post(
            reverse("unjumble-check-answer"), {"game_id": str(game.pk), "answers": answers}, format="json"
        )

    def test_correct_answer_ignores_case(self):
        game = self.make_game()
        resp = self.check(game, [{"sentence_index": 1, "answer": "Apple"}])
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertTrue(data["status"])
        self.assertEqual(
            data["results"],
            [{"sentence_index": 1, "is_correct": True, "score": 10, "message": "Correct Answer"}],
        )
        self.assertEqual(data["total_score"], 10)

    def test_wrong_answer_scores_zero(self):
        game = self.make_game()
        result = self.check(game, [{"sentence_index": 0, "answer": "cats like I"}]).json()["results"][0]
        self.assertFalse(result["is_correct"])
        self.assertEqual(result["score"], 0)
        self.assertEqual(result["message"], "Wrong Answer")

    def test_leading_whitespace_is_wrong(self):
        game = self.make_game()
        result = self.check(game, [{"sentence_index": 1, "answer": " apple"}]).json()["results"][0]
        self.assertFalse(result["is_correct"])

    def test_batch_scores_every_answer(self):
        game = self.make_game()
        data = self.check(game, [
            {"sentence_index": 0, "answer": "i LIKE cats"},
            {"sentence_index": 1, "answer": "pear"},
        ]).json()
        self.assertEqual([r["is_correct"] for r in data["results"]], [True, False])
        self.assertEqual(data["correct_count"], 1)
        self.assertEqual(data["total_score"], 10)
        self.assertEqual(data["max_score"], 20)

    def test_empty_answers_rejected(self):
        game = self.make_game()
        self.assertEqual(self.check(game, []).status_code, 400)

    def test_out_of_range_and_duplicate_index_rejected(self):
        game = self.make_game()
        self.assertEqual(self.check(game, [{"sentence_index": 9, "answer": "x"}]).status_code, 400)
        dup = [{"sentence_index": 0, "answer": "a"}, {"sentence_index": 0, "answer": "b"}]
        self.assertEqual(self.check(game, dup).status_code, 400)

    def test_unknown_game(self):
        game = self.make_game()
        game_id = game.pk
        game.delete()
        resp = self.client.post(
            reverse("unjumble-check-answer"),
            {"game_id": str(game_id), "answers": [{"sentence_index": 0, "answer": "x"}]},
            format="json",
        )
        self.assertEqual(resp.status_code, 404)


class PuzzleAndPlayCountTests(UnjumbleTestCase):
    def test_puzzle_uses_earliest_published_game(self):
        self.make_game(name="Draft", published=False)
        first = self.make_game(name="First")
        self.make_game(name="Second")
        resp = self.client.get(reverse("unjumble-puzzle"))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["id"], str(first.pk))
        self.assertEqual([q["sentence_index"] for q in data["questions"]], [0, 1])
        self.assertNotIn("apple", [q["jumbled"] for q in data["questions"]])

    def test_puzzle_by_game_id(self):
        self.make_game(name="First")
        second = self.make_game(name="Second")
        resp = self.client.get(reverse("unjumble-puzzle"), {"game_id": str(second.pk)})
        self.assertEqual(resp.json()["data"]["id"], str(second.pk))

    def test_puzzle_not_found(self):
        resp = self.client.get(reverse("unjumble-puzzle"))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Puzzle not found")

    def test_puzzle_with_malformed_game_id(self):
        self.make_game()
        resp = self.client.get(reverse("unjumble-puzzle"), {"game_id": "not-a-uuid"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "Puzzle not found")

    def test_play_count_is_per_game(self):
        game = self.make_game()
        other = self.make_game(name="Other")
        for _ in range(2):
            resp = self.client.post(reverse("unjumble-play-count"), {"game_id": str(game.pk)}, format="json")
            self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["total_played"], 2)
        other.refresh_from_db()
        self.assertEqual(other.total_played, 0)

    def test_play_count_ignores_unpublished(self):
        game = self.make_game(published=False)
        resp = self.client.post(reverse("unjumble-play-count"), {"game_id": str(game.pk)}, format="json")
        self.assertEqual(resp.status_code, 404)
        game.refresh_from_db()
        self.assertEqual(game.total_played, 0)

    def test_health(self):
        resp = self.client.get(reverse("Health"))
        self.assertEqual(resp.status_code, 200)
