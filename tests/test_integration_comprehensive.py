"""
Comprehensive integration tests for Discord Trivia Bot.
Tests complete game flows from HTTP response to final results.
"""
import unittest
import asyncio
import logging
import random

import aiohttp

from trivia_game.config_manager import ConfigManager
from trivia_game.models import GameState, ResultsSummary
from trivia_game.question_source import OpenTriviaQuestionSource
from trivia_game.quiz_controller import QuizController, SessionListener
from trivia_game.quiz_engine import QuizEngine
from tests.test_fixtures import AsyncTestHelpers, MockHttpObjects, TestFixtures


class CollectingListener(SessionListener):
    """Keeps the questions shown and the final summary."""

    def __init__(self):
        self.shown = []
        self.summary = None
        self.errors = []

    async def on_question(self, channel_id, session):
        self.shown.append(session.current_question)

    async def on_game_over(self, channel_id, session, summary):
        self.summary = summary

    async def on_fetch_failed(self, channel_id, session, error):
        self.errors.append(error)


class TestCompleteTriviaFlow(unittest.IsolatedAsyncioTestCase):
    """Test complete trivia flow from start to finish."""

    CHANNEL = 4242

    def setUp(self):
        """Set up integration test environment."""
        logging.disable(logging.CRITICAL)
        self.http_session = MockHttpObjects.create_mock_session(payload=TestFixtures.create_api_payload())
        self.source = OpenTriviaQuestionSource(
            session=self.http_session,
            quiz_engine=QuizEngine(random.Random(11))
        )
        self.config_manager = ConfigManager()
        self.config_manager.apply_settings({'default_question_count': 3, 'default_timer_duration': 60})
        self.listener = CollectingListener()
        self.controller = QuizController(
            self.source,
            self.config_manager,
            listener=self.listener,
            tick_interval=0.01,
            review_delay=0.01
        )

    async def asyncTearDown(self):
        await self.controller.shutdown()

    def tearDown(self):
        logging.disable(logging.NOTSET)

    async def play_question(self, pick_correct: bool):
        reached = await AsyncTestHelpers.wait_for_condition(
            lambda: self.controller.get_session_state(self.CHANNEL) is GameState.ACTIVE
        )
        self.assertTrue(reached)
        question = self.controller.get_session(self.CHANNEL).current_question
        if pick_correct:
            choice = question.correct_answer
        else:
            choice = next(answer for answer in question.answers if answer != question.correct_answer)
        self.controller.select_answer(self.CHANNEL, choice)
        await self.controller.submit_answer(self.CHANNEL)

    async def test_complete_game(self):
        """Test fetching, decoding, answering and scoring a full game."""
        result = await self.controller.start_game(self.CHANNEL)
        self.assertTrue(result['success'])

        # Request built from the configured defaults
        self.assertEqual(self.http_session.get.call_args.kwargs['params'], {'amount': 3, 'type': 'multiple'})

        await self.play_question(pick_correct=True)
        await self.play_question(pick_correct=False)
        await self.play_question(pick_correct=True)

        await AsyncTestHelpers.wait_for_condition(lambda: self.listener.summary is not None)
        self.assertEqual(self.listener.summary, ResultsSummary(score=2, total=3))

        # Entities decoded before display
        self.assertEqual(self.listener.shown[0].text, 'What is the chemical symbol for "gold"?')
        self.assertEqual(len(self.listener.shown), 3)

    async def test_network_failure_then_retry(self):
        """Test that a failed fetch can be retried into a working game."""
        failing = MockHttpObjects.create_mock_session(get_error=aiohttp.ClientConnectionError("down"))
        self.source._session = failing

        result = await self.controller.start_game(self.CHANNEL)

        self.assertFalse(result['success'])
        self.assertEqual(len(self.listener.errors), 1)
        self.assertEqual(self.controller.get_session_state(self.CHANNEL), GameState.LOADING)

        self.source._session = self.http_session
        result = await self.controller.restart_game(self.CHANNEL)

        self.assertTrue(result['success'])
        self.assertEqual(self.controller.get_session_state(self.CHANNEL), GameState.ACTIVE)

    async def test_concurrent_channels(self):
        """Test that games in different channels run side by side."""
        results = await asyncio.gather(
            self.controller.start_game(1),
            self.controller.start_game(2),
            self.controller.start_game(3)
        )

        self.assertTrue(all(result['success'] for result in results))
        self.assertEqual(len(self.controller.get_all_active_sessions()), 3)

        self.controller.stop_game(2)
        self.assertEqual(set(self.controller.get_all_active_sessions().keys()), {1, 3})


if __name__ == '__main__':
    unittest.main()
