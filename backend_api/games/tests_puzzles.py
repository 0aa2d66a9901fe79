import random
from collections import Counter

from django.test import SimpleTestCase, override_settings

from games.puzzles import EngineRegistry, UnjumbleEngine, get_engine, jumble, shuffle_word, shuffle_words


class _NoSwapRandom(random.Random):
    """Fisher-Yates with this source never swaps, so every shuffle returns the input."""

    def randint(self, a, b):
        return b


class ShuffleWordTests(SimpleTestCase):
    def test_returns_distinct_permutation(self):
        for word in ["ab", "apple", "banana", "unjumble", "hello world"]:
            for _ in range(20):
                result = shuffle_word(word)
                self.assertNotEqual(result, word)
                self.assertEqual(Counter(result), Counter(word))

    def test_not_deterministic_across_calls(self):
        results = {shuffle_word("abcdefgh") for _ in range(30)}
        self.assertGreater(len(results), 1)

    def test_all_identical_characters_terminate_unchanged(self):
        self.assertEqual(shuffle_word("aaaa"), "aaaa")
        self.assertEqual(shuffle_word("z"), "z")
        self.assertEqual(shuffle_word(""), "")

    def test_rotation_fallback_after_attempts_exhausted(self):
        self.assertEqual(shuffle_word("abc", max_attempts=3, rng=_NoSwapRandom()), "bca")

    @override_settings(UNJUMBLE_MAX_SHUFFLE_ATTEMPTS=1)
    def test_attempt_limit_comes_from_settings(self):
        self.assertEqual(shuffle_word("abcd", rng=_NoSwapRandom()), "bcda")

    def test_seeded_rng_is_reproducible(self):
        self.assertEqual(
            shuffle_word("scramble", rng=random.Random(7)),
            shuffle_word("scramble", rng=random.Random(7)),
        )


class ShuffleWordsTests(SimpleTestCase):
    def test_reorders_words_only(self):
        sentence = "the quick brown fox"
        for _ in range(20):
            result = shuffle_words(sentence)
            self.assertNotEqual(result, sentence)
            self.assertEqual(sorted(result.split()), sorted(sentence.split()))

    def test_repeated_words_terminate(self):
        self.assertEqual(shuffle_words("go go go"), "go go go")

    def test_jumble_picks_strategy_by_word_count(self):
        self.assertEqual(sorted(jumble("I like cats").split()), ["I", "cats", "like"])
        single = jumble("cats")
        self.assertEqual(Counter(single), Counter("cats"))
        self.assertNotEqual(single, "cats")


class UnjumbleEngineTests(SimpleTestCase):
    def setUp(self):
        self.engine = get_engine("unjumble")()

    def test_registry_resolves_unjumble(self):
        self.assertIsInstance(self.engine, UnjumbleEngine)
        with self.assertRaises(KeyError):
            get_engine("crossword")

    def test_case_insensitive_match(self):
        result = self.engine.evaluate("apple", "Apple")
        self.assertTrue(result["is_correct"])
        self.assertEqual(result["message"], "Correct Answer")

    def test_whitespace_is_not_trimmed(self):
        result = self.engine.evaluate("apple", " apple")
        self.assertFalse(result["is_correct"])
        self.assertEqual(result["message"], "Wrong Answer")

    def test_wrong_order_is_wrong(self):
        self.assertFalse(self.engine.evaluate("I like cats", "cats like I")["is_correct"])


class _ExactEngine:
    def evaluate(self, target, answer):
        correct = target == answer
        return {"is_correct": correct, "message": "Correct Answer" if correct else "Wrong Answer"}


class EngineRegistryTests(SimpleTestCase):
    def setUp(self):
        self.addCleanup(EngineRegistry._registry.pop, "exact-order", None)

    def test_registered_engine_resolves_by_normalised_slug(self):
        EngineRegistry.register(" Exact-Order ", _ExactEngine)
        engine = get_engine("exact-order")()
        self.assertTrue(engine.evaluate("Apple", "Apple")["is_correct"])
        self.assertFalse(engine.evaluate("Apple", "apple")["is_correct"])
        self.assertIs(get_engine("unjumble"), UnjumbleEngine)

    def test_blank_slug_rejected(self):
        with self.assertRaises(ValueError):
            EngineRegistry.register("  ", _ExactEngine)
