"""
Game session controller for the trivia game.
Runs the per-channel game loop: fetch, countdown, submission, advance, restart.
"""
import logging
import asyncio
import time
from typing import Any, Dict, Optional

from .models import GameConfiguration, GameState, ResultsSummary
from .game_session import GameSession, summarize
from .question_source import FetchError, QuestionSource
from .quiz_engine import QuizTimer
from .config_manager import ConfigManager


class SessionListener:
    """
    Presentation hooks called by the controller.

    Every hook is a coroutine and a no-op by default; override the ones the
    presentation needs. Exceptions raised by hooks are logged and ignored.
    """

    async def on_loading(self, channel_id: int, session: GameSession) -> None:
        pass

    async def on_question(self, channel_id: int, session: GameSession) -> None:
        pass

    async def on_tick(self, channel_id: int, session: GameSession) -> None:
        pass

    async def on_answer_reviewed(self, channel_id: int, session: GameSession) -> None:
        pass

    async def on_game_over(self, channel_id: int, session: GameSession, summary: ResultsSummary) -> None:
        pass

    async def on_fetch_failed(self, channel_id: int, session: GameSession, error: FetchError) -> None:
        pass


class QuizController:
    """
    Orchestrates trivia games across Discord channels.

    Each channel has at most one GameSession. All mutations happen on the
    asyncio event loop, so a manual submit and a countdown expiry can never
    interleave inside GameSession.submit().
    """

    def __init__(
        self,
        question_source: QuestionSource,
        config_manager: Optional[ConfigManager] = None,
        listener: Optional[SessionListener] = None,
        tick_interval: float = 1.0,
        review_delay: float = 1.0
    ):
        """
        Initialize the quiz controller.

        Args:
            question_source: Source questions are fetched from
            config_manager: Provides the default configuration
            listener: Presentation hooks
            tick_interval: Seconds between countdown ticks
            review_delay: Seconds the answer feedback is shown before advancing
        """
        self.logger = logging.getLogger(__name__)
        self.question_source = question_source
        self.config_manager = config_manager or ConfigManager()
        self.listener = listener
        self.tick_interval = tick_interval
        self.review_delay = review_delay

        # Per-channel state
        self._sessions: Dict[int, GameSession] = {}
        self._timers: Dict[int, QuizTimer] = {}
        self._advance_tasks: Dict[int, asyncio.Task] = {}
        self._fetch_tasks: Dict[int, asyncio.Task] = {}

        self.logger.info("QuizController initialized")

    def get_session(self, channel_id: int) -> Optional[GameSession]:
        """
        Get the session for a channel.

        Args:
            channel_id: Discord channel identifier

        Returns:
            GameSession if one exists, None otherwise
        """
        return self._sessions.get(channel_id)

    def get_session_state(self, channel_id: int) -> Optional[GameState]:
        session = self._sessions.get(channel_id)
        return session.state if session else None

    def get_session_progress(self, channel_id: int) -> Optional[Dict[str, Any]]:
        session = self._sessions.get(channel_id)
        return session.progress() if session else None

    def get_results(self, channel_id: int) -> Optional[ResultsSummary]:
        """Final results for a finished game, None otherwise."""
        session = self._sessions.get(channel_id)
        return summarize(session) if session else None

    def get_all_active_sessions(self) -> Dict[int, Dict[str, Any]]:
        return {channel_id: session.progress() for channel_id, session in self._sessions.items()}

    def _is_current(self, channel_id: int, session: GameSession, generation: int) -> bool:
        return self._sessions.get(channel_id) is session and session.generation == generation

    async def start_game(self, channel_id: int, configuration: Optional[GameConfiguration] = None) -> Dict[str, Any]:
        """
        Start (or restart) a game in a channel and fetch its questions.

        Any game already running in the channel is discarded, including
        its pending fetch, countdown and advance.

        Args:
            channel_id: Discord channel identifier
            configuration: Game configuration, defaults from the config manager if None

        Returns:
            Dictionary with operation results and error information
        """
        if configuration is None:
            configuration = self.config_manager.get_game_configuration()

        self._cancel_pending(channel_id)

        session = self._sessions.get(channel_id)
        if session is None:
            session = GameSession(configuration, channel_id)
            self._sessions[channel_id] = session
        else:
            session.configuration = configuration
        generation = session.restart()

        self.logger.info(
            f"Starting game in channel {channel_id}, generation {generation}",
            extra={
                'event_type': 'game_start',
                'channel_id': channel_id,
                'generation': generation,
                'question_count': configuration.question_count,
                'timestamp': time.time()
            }
        )
        await self._notify('on_loading', channel_id, session)
        if not self._is_current(channel_id, session, generation):
            return self._superseded(channel_id, generation)

        fetch_task = asyncio.create_task(self.question_source.fetch(configuration))
        self._fetch_tasks[channel_id] = fetch_task
        try:
            await asyncio.wait({fetch_task})
        except asyncio.CancelledError:
            fetch_task.cancel()
            raise
        finally:
            if self._fetch_tasks.get(channel_id) is fetch_task:
                del self._fetch_tasks[channel_id]

        if fetch_task.cancelled() or not self._is_current(channel_id, session, generation):
            return self._superseded(channel_id, generation)

        error = fetch_task.exception()
        if error is not None:
            if not isinstance(error, FetchError):
                raise error
            session.record_fetch_error(error, generation)
            self.logger.error(f"Failed to fetch questions for channel {channel_id}: {error}")
            await self._notify('on_fetch_failed', channel_id, session, error)
            return {
                'success': False,
                'error': str(error),
                'error_kind': error.kind.value,
                'user_message': f"❌ No questions available: {error}"
            }

        questions = fetch_task.result()
        if not session.load_questions(questions, generation):
            return {
                'success': False,
                'error': "Questions could not be loaded",
                'user_message': "❌ No questions available"
            }

        self._start_timer(channel_id, session)
        await self._notify('on_question', channel_id, session)

        return {
            'success': True,
            'message': f"Game started with {len(questions)} questions",
            'user_message': f"✅ Game started with {len(questions)} questions",
            'requested': configuration.question_count,
            'received': len(questions),
            'session_info': session.progress()
        }

    def _superseded(self, channel_id: int, generation: int) -> Dict[str, Any]:
        self.logger.info(f"Discarding superseded start for channel {channel_id}, generation {generation}")
        return {
            'success': False,
            'superseded': True,
            'message': "Fetch superseded by a newer game",
            'user_message': "⚠️ This game was replaced by a newer one"
        }

    async def restart_game(self, channel_id: int) -> Dict[str, Any]:
        """
        Restart the game in a channel with its previous configuration.

        Returns:
            Dictionary with operation results and error information
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return {
                'success': False,
                'error': f"No game in channel {channel_id}",
                'user_message': "❌ No game found in this channel. Start one with `/trivia`."
            }
        return await self.start_game(channel_id, session.configuration)

    def select_answer(self, channel_id: int, option: str) -> bool:
        """
        Select an answer for the channel's current question.

        Returns:
            True if the selection was recorded
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return False
        return session.select_answer(option)

    async def submit_answer(self, channel_id: int) -> Optional[bool]:
        """
        Submit the channel's current selection.

        Returns:
            Whether the answer was correct, None if the submit was ignored
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return None

        result = session.submit()
        if result is None:
            self.logger.debug(f"Ignored submit for channel {channel_id} in state {session.state.value}")
            return None

        await self._after_submit(channel_id, session)
        return result

    def stop_game(self, channel_id: int) -> bool:
        """
        Stop and discard the game in a channel.

        Returns:
            True if a game was stopped, False if there was none
        """
        self._cancel_pending(channel_id)
        session = self._sessions.pop(channel_id, None)
        if session is None:
            return False

        self.logger.info(
            f"Stopped game in channel {channel_id}",
            extra={
                'event_type': 'game_stopped',
                'channel_id': channel_id,
                'timestamp': time.time()
            }
        )
        return True

    async def shutdown(self) -> None:
        """Stop every game and release the question source."""
        for channel_id in list(self._sessions.keys()):
            self.stop_game(channel_id)
        await self.question_source.close()

    def _start_timer(self, channel_id: int, session: GameSession) -> None:
        self._cancel_timer(channel_id)
        generation = session.generation
        timer = QuizTimer(str(channel_id), self.tick_interval)
        self._timers[channel_id] = timer
        timer.start(lambda: self._handle_tick(channel_id, session, generation))

    def _cancel_timer(self, channel_id: int) -> None:
        timer = self._timers.pop(channel_id, None)
        if timer is not None:
            timer.cancel()

    def _cancel_pending(self, channel_id: int) -> None:
        self._cancel_timer(channel_id)

        current = asyncio.current_task()
        for tasks in (self._advance_tasks, self._fetch_tasks):
            task = tasks.pop(channel_id, None)
            if task is not None and task is not current and not task.done():
                task.cancel()

    async def _handle_tick(self, channel_id: int, session: GameSession, generation: int) -> bool:
        """Deliver one countdown tick; returns False to stop the timer."""
        if not self._is_current(channel_id, session, generation) or session.state is not GameState.ACTIVE:
            return False

        if session.tick():
            self.logger.info(f"Time expired for channel {channel_id}, question {session.current_index + 1}")
            await self._after_submit(channel_id, session)
            return False

        await self._notify('on_tick', channel_id, session)
        return True

    async def _after_submit(self, channel_id: int, session: GameSession) -> None:
        self._cancel_timer(channel_id)
        generation = session.generation
        await self._notify('on_answer_reviewed', channel_id, session)

        # A restart may have happened while the listener was running
        if self._is_current(channel_id, session, generation):
            self._advance_tasks[channel_id] = asyncio.create_task(
                self._advance_after_delay(channel_id, session, generation)
            )

    async def _advance_after_delay(self, channel_id: int, session: GameSession, generation: int) -> None:
        # Stays registered until done so a restart can cancel it mid-render
        try:
            await asyncio.sleep(self.review_delay)
            if not self._is_current(channel_id, session, generation):
                return

            if session.advance():
                self._start_timer(channel_id, session)
                await self._notify('on_question', channel_id, session)
            elif session.is_game_over:
                await self._notify('on_game_over', channel_id, session, summarize(session))
        finally:
            if self._advance_tasks.get(channel_id) is asyncio.current_task():
                del self._advance_tasks[channel_id]

    async def _notify(self, hook: str, *args) -> None:
        if self.listener is None:
            return
        try:
            await getattr(self.listener, hook)(*args)
        except Exception as e:
            # Presentation failures must not break the game loop
            self.logger.error(f"Listener hook {hook} failed: {e}", exc_info=True)
