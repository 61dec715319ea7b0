"""
Core data models for the trivia game.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Difficulty(Enum):
    """Difficulty filter for question requests."""
    ANY = "any"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(Enum):
    """Question format; values are the API's ``type`` parameter."""
    MULTIPLE_CHOICE = "multiple"
    TRUE_FALSE = "boolean"


class GameState(Enum):
    """Enumeration of possible game session states."""
    LOADING = "loading"
    ACTIVE = "active"
    REVIEWING = "reviewing"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class Question:
    """A single trivia question with its answers in display order."""
    text: str
    answers: Tuple[str, ...]
    correct_answer: str
    category: Optional[str] = None
    difficulty: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        # Lists are accepted for convenience but stored as a tuple
        object.__setattr__(self, 'answers', tuple(self.answers))
        occurrences = self.answers.count(self.correct_answer)
        if occurrences != 1:
            raise ValueError(
                f"Correct answer must appear exactly once among answers, found {occurrences}"
            )


@dataclass(frozen=True)
class GameConfiguration:
    """Settings for one game; fixed once the game starts."""
    question_count: int = 5
    category: Optional[int] = None  # None means any category
    difficulty: Difficulty = Difficulty.ANY
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    timer_duration: int = 30

    def __post_init__(self):
        if isinstance(self.question_count, bool) or not isinstance(self.question_count, int) or self.question_count < 1:
            raise ValueError(f"Question count must be a positive integer, got {self.question_count!r}")
        if isinstance(self.timer_duration, bool) or not isinstance(self.timer_duration, int) or self.timer_duration < 1:
            raise ValueError(f"Timer duration must be a positive integer, got {self.timer_duration!r}")


@dataclass(frozen=True)
class ResultsSummary:
    """Final score of a completed game."""
    score: int
    total: int
