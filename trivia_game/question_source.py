"""
Question sources for the trivia game.
Fetches questions from the Open Trivia Database over HTTP.
"""
import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp

from .models import Difficulty, GameConfiguration, Question
from .quiz_engine import QuizEngine


DEFAULT_API_URL = "https://opentdb.com/api.php"


class FetchErrorKind(Enum):
    """Reasons a question fetch can fail."""
    NETWORK_UNREACHABLE = "network_unreachable"
    DECODE_FAILURE = "decode_failure"
    INVALID_RESPONSE = "invalid_response"
    NO_RESULTS = "no_results"


class FetchError(Exception):
    """Raised when questions could not be fetched."""

    def __init__(self, kind: FetchErrorKind, message: str, response_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.response_code = response_code


# Open Trivia DB response codes other than 0 (success)
RESPONSE_CODE_MESSAGES = {
    1: "Not enough questions available for the requested filters",
    2: "Invalid request parameter",
    3: "Session token not found",
    4: "Session token has returned all possible questions",
    5: "Too many requests, please wait a few seconds",
}


class QuestionSource(ABC):
    @abstractmethod
    async def fetch(self, configuration: GameConfiguration) -> List[Question]:
        """
        Fetch questions for a game.

        :param configuration: Game configuration with count and filters
        :return: Questions in presentation order
        :raises FetchError: If no questions could be obtained
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the source."""
        pass


class OpenTriviaQuestionSource(QuestionSource):
    """Question source backed by the Open Trivia Database API."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        request_timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
        quiz_engine: Optional[QuizEngine] = None
    ):
        """
        Initialize the source.

        Args:
            api_url: Question endpoint URL
            request_timeout: Total request timeout in seconds
            session: Optional aiohttp session; one is created lazily if None
            quiz_engine: Engine used to build questions from raw records
        """
        self.logger = logging.getLogger(__name__)
        self.api_url = api_url
        self.request_timeout = request_timeout
        self.quiz_engine = quiz_engine or QuizEngine()
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @staticmethod
    def build_query_params(configuration: GameConfiguration) -> Dict[str, Any]:
        """
        Build query parameters for a configuration.

        "Any" selectors are omitted from the request.
        """
        params: Dict[str, Any] = {'amount': configuration.question_count}
        if configuration.category is not None:
            params['category'] = configuration.category
        if configuration.difficulty is not Difficulty.ANY:
            params['difficulty'] = configuration.difficulty.value
        params['type'] = configuration.question_type.value
        return params

    async def fetch(self, configuration: GameConfiguration) -> List[Question]:
        params = self.build_query_params(configuration)
        request_start_time = time.time()

        self.logger.info(
            f"Fetching {configuration.question_count} questions",
            extra={
                'event_type': 'fetch_start',
                'params': params,
                'timestamp': request_start_time
            }
        )

        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with self._get_session().get(self.api_url, params=params, timeout=timeout) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            self.logger.error(f"Question request failed with HTTP status {e.status}: {e.message}")
            raise FetchError(
                FetchErrorKind.NETWORK_UNREACHABLE,
                f"Trivia service returned HTTP {e.status}"
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Could not reach trivia service: {e!r}")
            raise FetchError(
                FetchErrorKind.NETWORK_UNREACHABLE,
                "Could not reach the trivia service"
            ) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self.logger.error(f"Invalid JSON in question response: {e}")
            raise FetchError(
                FetchErrorKind.DECODE_FAILURE,
                "Trivia service returned an unreadable response"
            ) from e

        questions = self.parse_response(payload, configuration)

        self.logger.info(
            f"Fetched {len(questions)} questions in {time.time() - request_start_time:.3f}s",
            extra={
                'event_type': 'fetch_complete',
                'requested': configuration.question_count,
                'received': len(questions),
                'timestamp': time.time()
            }
        )
        return questions

    def parse_response(self, payload: Any, configuration: GameConfiguration) -> List[Question]:
        """
        Validate a decoded response body and build questions from it.

        Expected structure:
        {
            "response_code": 0,
            "results": [
                {
                    "question": str,
                    "correct_answer": str,
                    "incorrect_answers": [str, ...]
                }
            ]
        }

        Args:
            payload: Decoded JSON body
            configuration: Configuration the request was made with

        Returns:
            Questions in the order received

        Raises:
            FetchError: If the body is malformed or reports no results
        """
        if not isinstance(payload, dict):
            raise FetchError(FetchErrorKind.INVALID_RESPONSE, "Response must be a JSON object")

        response_code = payload.get('response_code', 0)
        if response_code != 0:
            message = RESPONSE_CODE_MESSAGES.get(response_code, f"Unexpected response code {response_code}")
            self.logger.warning(f"Trivia service rejected request with code {response_code}: {message}")
            raise FetchError(FetchErrorKind.NO_RESULTS, message, response_code=response_code)

        results = payload.get('results')
        if not isinstance(results, list):
            raise FetchError(FetchErrorKind.INVALID_RESPONSE, "Response must contain a 'results' array")

        for i, raw in enumerate(results):
            self._validate_record(i, raw)

        if not results:
            raise FetchError(FetchErrorKind.NO_RESULTS, "Trivia service returned no questions", response_code=response_code)

        try:
            questions = self.quiz_engine.build_questions(results)
        except ValueError as e:
            raise FetchError(FetchErrorKind.INVALID_RESPONSE, f"Invalid question record: {e}") from e

        if len(questions) < configuration.question_count:
            self.logger.warning(
                f"Requested {configuration.question_count} questions but only received {len(questions)}"
            )
        return questions

    @staticmethod
    def _validate_record(index: int, raw: Any) -> None:
        if not isinstance(raw, dict):
            raise FetchError(FetchErrorKind.INVALID_RESPONSE, f"Question {index} must be an object")

        for key in ('question', 'correct_answer'):
            if not isinstance(raw.get(key), str):
                raise FetchError(FetchErrorKind.INVALID_RESPONSE, f"Question {index} '{key}' field must be a string")

        incorrect = raw.get('incorrect_answers')
        if not isinstance(incorrect, list) or not all(isinstance(answer, str) for answer in incorrect):
            raise FetchError(
                FetchErrorKind.INVALID_RESPONSE,
                f"Question {index} 'incorrect_answers' field must be an array of strings"
            )
