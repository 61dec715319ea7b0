"""
Unit tests for the QuizEngine class and the question models it builds.
"""
import unittest
import random
from collections import Counter

from trivia_game.quiz_engine import QuizEngine
from trivia_game.models import GameConfiguration, Question
from tests.test_fixtures import TestFixtures


class TestShuffleAnswers(unittest.TestCase):
    """Test cases for answer shuffling."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = QuizEngine(random.Random(42))

    def test_length_is_incorrect_plus_one(self):
        """Test that the correct answer is added to the incorrect ones."""
        result = self.engine.shuffle_answers("Au", ["Ag", "Gd", "Go"])
        self.assertEqual(len(result), 4)

    def test_correct_answer_appears_exactly_once(self):
        result = self.engine.shuffle_answers("Au", ["Ag", "Gd", "Go"])
        self.assertEqual(result.count("Au"), 1)
        self.assertEqual(sorted(result), sorted(["Au", "Ag", "Gd", "Go"]))

    def test_no_incorrect_answers(self):
        """Test shuffling with only the correct answer."""
        self.assertEqual(self.engine.shuffle_answers("Only", []), ["Only"])

    def test_true_false(self):
        result = self.engine.shuffle_answers("False", ["True"])
        self.assertEqual(sorted(result), ["False", "True"])

    def test_input_not_modified(self):
        """Test that the caller's list is left untouched."""
        incorrect = ["Ag", "Gd", "Go"]
        self.engine.shuffle_answers("Au", incorrect)
        self.assertEqual(incorrect, ["Ag", "Gd", "Go"])

    def test_answers_are_sanitized(self):
        result = self.engine.shuffle_answers("Tom &amp; Jerry", ["It&#039;s"])
        self.assertIn("Tom & Jerry", result)
        self.assertIn("It's", result)

    def test_correct_position_is_roughly_uniform(self):
        """Test that the correct answer lands in every slot about equally often."""
        trials = 4000
        positions = Counter(
            self.engine.shuffle_answers("A", ["B", "C", "D"]).index("A")
            for _ in range(trials)
        )

        self.assertEqual(set(positions.keys()), {0, 1, 2, 3})
        for position in range(4):
            # Expected 1000 per slot; allow a wide margin
            self.assertGreater(positions[position], 800)
            self.assertLess(positions[position], 1200)

    def test_seeded_engines_are_reproducible(self):
        first = QuizEngine(random.Random(7)).shuffle_answers("A", ["B", "C", "D"])
        second = QuizEngine(random.Random(7)).shuffle_answers("A", ["B", "C", "D"])
        self.assertEqual(first, second)


class TestBuildQuestion(unittest.TestCase):
    """Test cases for building questions from raw API records."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = QuizEngine(random.Random(1))
        self.raw_results = TestFixtures.create_raw_results()

    def test_build_question_decodes_text(self):
        question = self.engine.build_question(self.raw_results[0])

        self.assertEqual(question.text, 'What is the chemical symbol for "gold"?')
        self.assertEqual(question.category, "Science & Nature")
        self.assertEqual(question.difficulty, "easy")

    def test_build_question_answers(self):
        """Test that the built question contains every answer once."""
        question = self.engine.build_question(self.raw_results[0])

        self.assertEqual(question.correct_answer, "Au")
        self.assertEqual(len(question.answers), 4)
        self.assertEqual(question.answers.count("Au"), 1)
        self.assertIsInstance(question.answers, tuple)

    def test_build_question_decodes_correct_answer(self):
        raw = {
            "question": "Who?",
            "correct_answer": "Tom &amp; Jerry",
            "incorrect_answers": ["Itchy &amp; Scratchy"]
        }
        question = self.engine.build_question(raw)

        self.assertEqual(question.correct_answer, "Tom & Jerry")
        self.assertIn("Tom & Jerry", question.answers)

    def test_build_question_without_metadata(self):
        question = self.engine.build_question({
            "question": "Q?",
            "correct_answer": "A",
            "incorrect_answers": ["B"]
        })
        self.assertIsNone(question.category)
        self.assertIsNone(question.difficulty)

    def test_duplicate_correct_answer_rejected(self):
        """Test that a correct answer repeated among incorrect ones is rejected."""
        raw = {"question": "Q?", "correct_answer": "A", "incorrect_answers": ["A", "B"]}
        with self.assertRaises(ValueError):
            self.engine.build_question(raw)

    def test_build_questions_preserves_order(self):
        questions = self.engine.build_questions(self.raw_results)

        self.assertEqual(len(questions), 3)
        self.assertEqual(questions[1].text, "Which city is the capital of Australia?")
        self.assertEqual(sorted(questions[2].answers), ["False", "True"])

    def test_build_questions_empty(self):
        self.assertEqual(self.engine.build_questions([]), [])

    def test_questions_get_unique_ids(self):
        questions = self.engine.build_questions(self.raw_results)
        self.assertEqual(len({q.id for q in questions}), 3)


class TestModels(unittest.TestCase):
    """Test cases for model validation."""

    def test_question_requires_correct_answer_among_answers(self):
        with self.assertRaises(ValueError):
            Question("Q?", ["A", "B"], "C")

    def test_question_is_immutable(self):
        question = Question("Q?", ["A", "B"], "A")
        with self.assertRaises(AttributeError):
            question.text = "Changed"

    def test_configuration_defaults(self):
        configuration = GameConfiguration()
        self.assertEqual(configuration.question_count, 5)
        self.assertEqual(configuration.timer_duration, 30)
        self.assertIsNone(configuration.category)

    def test_configuration_rejects_non_positive_values(self):
        with self.assertRaises(ValueError):
            GameConfiguration(question_count=0)
        with self.assertRaises(ValueError):
            GameConfiguration(timer_duration=0)

    def test_configuration_rejects_booleans(self):
        """Test that True is not accepted as a count of one."""
        with self.assertRaises(ValueError):
            GameConfiguration(question_count=True)
        with self.assertRaises(ValueError):
            GameConfiguration(timer_duration=True)


if __name__ == '__main__':
    unittest.main()
