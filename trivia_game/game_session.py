"""
Game session state machine for the trivia game.

A session moves LOADING -> ACTIVE -> REVIEWING -> ACTIVE ... -> GAME_OVER.
Invalid calls for the current state are no-ops, never errors.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from .models import GameConfiguration, GameState, Question, ResultsSummary

logger = logging.getLogger(__name__)


class GameSession:
    """Mutable state of one trivia game."""

    def __init__(self, configuration: GameConfiguration, channel_id: Optional[int] = None):
        """
        Initialize a session in the LOADING state.

        Args:
            configuration: Game configuration
            channel_id: Identifier of the channel hosting the game, for logging
        """
        self.configuration = configuration
        self.channel_id = channel_id
        self.questions: List[Question] = []
        self.current_index = 0
        self.selected_answer: Optional[str] = None
        self.is_answer_correct: Optional[bool] = None
        self.remaining_time = configuration.timer_duration
        self.score = 0
        self.state = GameState.LOADING
        self.generation = 0
        self.fetch_error: Optional[Exception] = None

    @property
    def current_question(self) -> Optional[Question]:
        """The question being played, or None outside ACTIVE/REVIEWING."""
        if self.state not in (GameState.ACTIVE, GameState.REVIEWING):
            return None
        return self.questions[self.current_index]

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def is_game_over(self) -> bool:
        return self.state is GameState.GAME_OVER

    def _reset_question_state(self) -> None:
        self.selected_answer = None
        self.is_answer_correct = None
        self.remaining_time = self.configuration.timer_duration

    def load_questions(self, questions: Sequence[Question], generation: int) -> bool:
        """
        Start playing a fetched question list.

        Args:
            questions: Questions in presentation order
            generation: Generation the fetch was issued for

        Returns:
            True if the session became ACTIVE, False if the load was ignored
        """
        if generation != self.generation:
            logger.info(
                f"Discarding questions for stale generation {generation} "
                f"(current {self.generation}) in channel {self.channel_id}"
            )
            return False

        if self.state is not GameState.LOADING:
            logger.warning(f"Cannot load questions in state {self.state.value} for channel {self.channel_id}")
            return False

        if not questions:
            logger.warning(f"Refusing to start channel {self.channel_id} with no questions")
            return False

        self.questions = list(questions)
        self.current_index = 0
        self.fetch_error = None
        self._reset_question_state()
        self.state = GameState.ACTIVE
        logger.debug(f"Loaded {len(self.questions)} questions for channel {self.channel_id}")
        return True

    def record_fetch_error(self, error: Exception, generation: int) -> bool:
        """Remember why loading failed; the session stays in LOADING."""
        if generation != self.generation or self.state is not GameState.LOADING:
            return False
        self.fetch_error = error
        return True

    def select_answer(self, option: str) -> bool:
        """
        Select an answer for the current question.

        Returns:
            True if the selection was recorded, False if it was ignored
        """
        if self.state is not GameState.ACTIVE or self.is_answer_correct is not None:
            return False
        self.selected_answer = option
        return True

    def submit(self) -> Optional[bool]:
        """
        Submit the current selection, which may be empty.

        Returns:
            Whether the answer was correct, or None if the call was ignored
            because nothing is active or this question was already submitted
        """
        if self.state is not GameState.ACTIVE or self.is_answer_correct is not None:
            return None

        question = self.questions[self.current_index]
        if self.selected_answer is not None and self.selected_answer == question.correct_answer:
            self.score += 1
            self.is_answer_correct = True
        else:
            self.is_answer_correct = False

        self.state = GameState.REVIEWING
        logger.debug(
            f"Channel {self.channel_id} question {self.current_index + 1}/{len(self.questions)} "
            f"submitted: correct={self.is_answer_correct}, score={self.score}"
        )
        return self.is_answer_correct

    def advance(self) -> bool:
        """
        Move past a reviewed question.

        Returns:
            True if another question is now active, False if the game is over
            or there was nothing to advance from
        """
        if self.state is not GameState.REVIEWING:
            return False

        if self.current_index + 1 >= len(self.questions):
            self.current_index = len(self.questions)
            self.state = GameState.GAME_OVER
            logger.info(
                f"Game over for channel {self.channel_id}: {self.score}/{len(self.questions)}"
            )
            return False

        self.current_index += 1
        self._reset_question_state()
        self.state = GameState.ACTIVE
        return True

    def tick(self) -> bool:
        """
        Count down one second for the active question.

        Returns:
            True if the countdown expired and the question was auto-submitted
        """
        if self.state is not GameState.ACTIVE:
            return False

        if self.remaining_time > 0:
            self.remaining_time -= 1

        if self.remaining_time <= 0:
            logger.debug(f"Countdown expired for channel {self.channel_id}, auto-submitting")
            return self.submit() is not None
        return False

    def restart(self) -> int:
        """
        Discard all game state and return to LOADING.

        Returns:
            The new generation; results of earlier fetches no longer apply
        """
        self.questions = []
        self.current_index = 0
        self.score = 0
        self.fetch_error = None
        self._reset_question_state()
        self.state = GameState.LOADING
        self.generation += 1
        logger.debug(f"Session for channel {self.channel_id} restarted, generation {self.generation}")
        return self.generation

    def progress(self) -> Dict[str, Any]:
        """Snapshot of the session for status displays."""
        return {
            'state': self.state.value,
            'current_question': min(self.current_index + 1, len(self.questions)),
            'total_questions': len(self.questions),
            'score': self.score,
            'remaining_time': self.remaining_time,
            'selected_answer': self.selected_answer,
            'is_answer_correct': self.is_answer_correct,
            'generation': self.generation,
            'settings': {
                'question_count': self.configuration.question_count,
                'category': self.configuration.category,
                'difficulty': self.configuration.difficulty.value,
                'question_type': self.configuration.question_type.value,
                'timer_duration': self.configuration.timer_duration
            }
        }


def summarize(session: GameSession) -> Optional[ResultsSummary]:
    """
    Final score of a finished session.

    Returns:
        ResultsSummary with the number of questions actually played as total,
        or None if the session is not over
    """
    if not session.is_game_over:
        return None
    return ResultsSummary(score=session.score, total=len(session.questions))
