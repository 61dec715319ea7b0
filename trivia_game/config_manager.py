"""
Configuration manager for trivia game settings.
"""
import copy
import logging
from typing import Any, Dict, List, Optional, Union

from .models import Difficulty, GameConfiguration, QuestionType


class ConfigManager:
    """Manages default game settings and validates overrides."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 5
    DEFAULT_CATEGORY = None  # Any category
    DEFAULT_DIFFICULTY = Difficulty.ANY
    DEFAULT_QUESTION_TYPE = QuestionType.MULTIPLE_CHOICE
    DEFAULT_TIMER_DURATION = 30

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50  # API limit per request
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 1800  # 30 minutes

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._question_count = self.DEFAULT_QUESTION_COUNT
        self._category: Optional[int] = self.DEFAULT_CATEGORY
        self._difficulty = self.DEFAULT_DIFFICULTY
        self._question_type = self.DEFAULT_QUESTION_TYPE
        self._timer_duration = self.DEFAULT_TIMER_DURATION

    def get_game_configuration(self) -> GameConfiguration:
        """
        Get the current default configuration.

        Returns:
            GameConfiguration built from the current settings
        """
        return GameConfiguration(
            question_count=self._question_count,
            category=self._category,
            difficulty=self._difficulty,
            question_type=self._question_type,
            timer_duration=self._timer_duration
        )

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions per game.

        Args:
            count: Number of questions to request

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        # bool is an int subclass but never a valid count
        if not isinstance(count, int) or isinstance(count, bool):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            }

        if count < self.MIN_QUESTION_COUNT:
            error_msg = f"Question count must be at least {self.MIN_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            }

        if count > self.MAX_QUESTION_COUNT:
            error_msg = f"Question count cannot exceed {self.MAX_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            }

        self._question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> int:
        return self._question_count

    def set_category(self, category: Union[int, str, None]) -> Dict[str, Any]:
        """
        Set the category filter.

        Args:
            category: Category id, or None / 0 / "any" for any category

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(category, str) and category.strip().isdigit():
            category = int(category.strip())

        if category is None or category == 0 or (isinstance(category, str) and category.strip().lower() == "any"):
            self._category = None
            self.logger.info("Category set to any")
            return {
                'success': True,
                'message': "Category set to any",
                'user_message': "✅ Questions will come from any category"
            }

        if not isinstance(category, int) or isinstance(category, bool) or category < 0:
            error_msg = f"Category must be a positive integer id, got {category!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid category: {category}"
            }

        self._category = category
        self.logger.info(f"Category set to {category}")
        return {
            'success': True,
            'message': f"Category set to {category}",
            'user_message': f"✅ Category set to {category}"
        }

    def get_category(self) -> Optional[int]:
        return self._category

    def set_difficulty(self, difficulty: Union[Difficulty, str]) -> Dict[str, Any]:
        """
        Set the difficulty filter.

        Args:
            difficulty: Difficulty member or one of "any", "easy", "medium", "hard"

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(difficulty, str):
            try:
                difficulty = Difficulty(difficulty.strip().lower())
            except ValueError:
                pass

        if not isinstance(difficulty, Difficulty):
            choices = ", ".join(d.value for d in Difficulty)
            error_msg = f"Difficulty must be one of {choices}, got {difficulty!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid difficulty: choose one of {choices}"
            }

        self._difficulty = difficulty
        self.logger.info(f"Difficulty set to {difficulty.value}")
        return {
            'success': True,
            'message': f"Difficulty set to {difficulty.value}",
            'user_message': f"✅ Difficulty set to {difficulty.value}"
        }

    def get_difficulty(self) -> Difficulty:
        return self._difficulty

    def set_question_type(self, question_type: Union[QuestionType, str]) -> Dict[str, Any]:
        """
        Set the question type.

        Args:
            question_type: QuestionType member, its API value ("multiple",
                "boolean") or its name ("multiple_choice", "true_false")

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(question_type, str):
            key = question_type.strip().lower()
            aliases = {member.name.lower(): member for member in QuestionType}
            aliases.update({member.value: member for member in QuestionType})
            question_type = aliases.get(key, question_type)

        if not isinstance(question_type, QuestionType):
            error_msg = f"Question type must be multiple or boolean, got {question_type!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid question type: choose multiple choice or true/false"
            }

        self._question_type = question_type
        self.logger.info(f"Question type set to {question_type.value}")
        return {
            'success': True,
            'message': f"Question type set to {question_type.value}",
            'user_message': f"✅ Question type set to {question_type.value}"
        }

    def get_question_type(self) -> QuestionType:
        return self._question_type

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown duration for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(duration, int) or isinstance(duration, bool):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds ({self.MAX_TIMER_DURATION // 60} minutes)"
            }

        self._timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._timer_duration

    def apply_settings(self, settings: Dict[str, Any]) -> List[str]:
        """
        Apply defaults from the 'trivia' section of config.json.

        Invalid values are logged and skipped so the remaining defaults still apply.

        Args:
            settings: Mapping with optional default_* keys

        Returns:
            User-friendly messages for values that were rejected
        """
        setters = {
            'default_question_count': self.set_question_count,
            'default_category': self.set_category,
            'default_difficulty': self.set_difficulty,
            'default_question_type': self.set_question_type,
            'default_timer_duration': self.set_timer_duration,
        }
        rejected = []
        for key, setter in setters.items():
            if key not in settings:
                continue
            result = setter(settings[key])
            if not result['success']:
                self.logger.warning(f"Ignoring invalid config value {key}={settings[key]!r}")
                rejected.append(result['user_message'])
        return rejected

    def build_configuration(
        self,
        question_count: Optional[int] = None,
        category: Union[int, str, None] = None,
        difficulty: Union[Difficulty, str, None] = None,
        question_type: Union[QuestionType, str, None] = None,
        timer_duration: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Build a configuration from the defaults with per-game overrides.

        Arguments left as None keep the default; pass category 0 or "any"
        to override a default category with any category. The defaults
        themselves are not changed.

        Returns:
            Dictionary with success status and, on success, 'configuration'
        """
        candidate = copy.copy(self)
        overrides = [
            (candidate.set_question_count, question_count),
            (candidate.set_category, category),
            (candidate.set_difficulty, difficulty),
            (candidate.set_question_type, question_type),
            (candidate.set_timer_duration, timer_duration),
        ]
        for setter, value in overrides:
            if value is None:
                continue
            result = setter(value)
            if not result['success']:
                return result

        return {
            'success': True,
            'message': "Configuration built",
            'configuration': candidate.get_game_configuration()
        }

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._question_count = self.DEFAULT_QUESTION_COUNT
        self._category = self.DEFAULT_CATEGORY
        self._difficulty = self.DEFAULT_DIFFICULTY
        self._question_type = self.DEFAULT_QUESTION_TYPE
        self._timer_duration = self.DEFAULT_TIMER_DURATION
        self.logger.info("All settings reset to default values")

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        category_str = str(self._category) if self._category is not None else "any"
        type_str = "true/false" if self._question_type is QuestionType.TRUE_FALSE else "multiple choice"

        return (
            f"Trivia Settings:\n"
            f"• Questions: {self._question_count}\n"
            f"• Category: {category_str}\n"
            f"• Difficulty: {self._difficulty.value}\n"
            f"• Type: {type_str}\n"
            f"• Timer: {self._timer_duration} seconds"
        )
