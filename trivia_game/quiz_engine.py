"""
Quiz engine core logic for the trivia game.
Handles answer shuffling, question construction, and countdown ticking.
"""
import random
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from trivia_game.models import Question
from trivia_game.text_sanitizer import sanitize

# Set up logger for timer operations
logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(channel_id: str, interval: float) -> None:
        """Log timer start."""
        logger.debug(
            f"Timer lifecycle: START - Channel {channel_id}, Interval {interval:.3f}s",
            extra={
                'event_type': 'timer_start',
                'channel_id': channel_id,
                'interval': interval,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_tick(channel_id: str, tick_count: int) -> None:
        """Log a single tick."""
        logger.debug(
            f"Timer lifecycle: TICK - Channel {channel_id}, Tick {tick_count}",
            extra={
                'event_type': 'timer_tick',
                'channel_id': channel_id,
                'tick_count': tick_count,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(channel_id: str, completion_type: str, tick_count: int) -> None:
        """Log timer completion (stopped by callback or cancelled)."""
        logger.debug(
            f"Timer lifecycle: COMPLETED - Channel {channel_id}, Type {completion_type}, Ticks {tick_count}",
            extra={
                'event_type': 'timer_completed',
                'channel_id': channel_id,
                'completion_type': completion_type,
                'tick_count': tick_count,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(channel_id: str, error_type: str, error_message: str, context: str = None) -> None:
        """Log timer errors."""
        logger.error(
            f"Timer lifecycle: ERROR - Channel {channel_id}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'channel_id': channel_id,
                'error_type': error_type,
                'error_message': error_message,
                'context': context,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """
    Periodic tick source for a question countdown.

    The timer does not own the countdown value; it only calls ``on_tick`` once
    per interval until the callback returns False or the timer is cancelled.
    """

    def __init__(self, channel_id: str = None, interval: float = 1.0):
        """Initialize the timer."""
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self._channel_id = channel_id
        self._interval = interval
        self._tick_count = 0

    def start(self, on_tick: Callable[[], Awaitable[bool]]) -> asyncio.Task:
        """
        Start ticking as a background task.

        Args:
            on_tick: Awaited once per interval; ticking stops when it returns False

        Returns:
            The asyncio task running the timer

        Raises:
            RuntimeError: If the timer was already started
        """
        if self._task is not None:
            raise RuntimeError(f"Timer for channel {self._channel_id} already started")

        self._is_cancelled = False
        TimerLifecycleLogger.log_timer_start(self._channel_id, self._interval)
        self._task = asyncio.create_task(self._run(on_tick))
        return self._task

    async def _run(self, on_tick: Callable[[], Awaitable[bool]]) -> None:
        try:
            while not self._is_cancelled:
                await asyncio.sleep(self._interval)
                if self._is_cancelled:
                    break
                self._tick_count += 1
                TimerLifecycleLogger.log_timer_tick(self._channel_id, self._tick_count)
                if not await on_tick():
                    break

            TimerLifecycleLogger.log_timer_completion(
                self._channel_id,
                "cancelled" if self._is_cancelled else "stopped_by_callback",
                self._tick_count
            )
        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_timer_completion(
                self._channel_id,
                "asyncio_cancelled",
                self._tick_count
            )
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self._channel_id,
                "tick_execution_error",
                str(e),
                "_run"
            )

    def cancel(self) -> None:
        """
        Cancel the timer.

        When called from inside the tick callback the task is not cancelled
        (that would interrupt the callback); the loop exits on its next check.
        """
        self._is_cancelled = True
        if self._task and not self._task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if self._task is not current:
                logger.debug(f"Cancelling timer task for channel {self._channel_id}")
                self._task.cancel()

    @property
    def is_running(self) -> bool:
        """Check if the timer task is still running."""
        return self._task is not None and not self._task.done() and not self._is_cancelled

    @property
    def is_cancelled(self) -> bool:
        """Check if timer is cancelled."""
        return self._is_cancelled

    @property
    def tick_count(self) -> int:
        """Number of ticks delivered so far."""
        return self._tick_count


class QuizEngine:
    """Turns raw API records into playable questions."""

    def __init__(self, rng: random.Random = None):
        """
        Initialize the quiz engine.

        Args:
            rng: Random generator used for shuffling; a fresh one if None
        """
        self._rng = rng or random.Random()

    def shuffle_answers(self, correct: str, incorrect: Sequence[str]) -> List[str]:
        """
        Combine the correct answer with the incorrect ones in random order.

        Args:
            correct: The correct answer
            incorrect: Incorrect answers (may be empty)

        Returns:
            New list of len(incorrect) + 1 sanitized answers
        """
        options = list(incorrect) + [correct]
        self._rng.shuffle(options)
        return [sanitize(option) for option in options]

    def build_question(self, raw: Dict[str, Any]) -> Question:
        """
        Build a Question from a raw API record.

        Args:
            raw: Dictionary with 'question', 'correct_answer' and
                 'incorrect_answers' keys, HTML-entity encoded

        Returns:
            Question with sanitized text and shuffled answers

        Raises:
            ValueError: If the correct answer does not appear exactly once
        """
        category = raw.get('category')
        difficulty = raw.get('difficulty')
        return Question(
            text=sanitize(raw['question']),
            answers=self.shuffle_answers(raw['correct_answer'], raw['incorrect_answers']),
            correct_answer=sanitize(raw['correct_answer']),
            category=sanitize(category) if category is not None else None,
            difficulty=difficulty
        )

    def build_questions(self, raw_results: Sequence[Dict[str, Any]]) -> List[Question]:
        """
        Build questions preserving the order they were received in.

        Args:
            raw_results: Raw API records

        Returns:
            List of Question objects
        """
        return [self.build_question(raw) for raw in raw_results]
