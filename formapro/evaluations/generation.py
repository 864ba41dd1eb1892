"""
Question Generation

``QuestionGenerator`` is the capability the evaluation service uses to turn
session content into quiz items. ``OpenAIQuestionGenerator`` asks a chat
model for a JSON object and validates every returned item; one invalid
item rejects the whole batch.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from formapro.common.error_handling import (
    ErrorCode,
    ExternalServiceError,
    PreconditionError,
)
from formapro.common.logger import get_logger, log_execution_time
from formapro.config import settings
from formapro.evaluations.types import GeneratedQuestion, QuestionType

logger = get_logger("evaluations.generation")


class InvalidQuestionError(ValueError):
    """Raised when a generated item breaks the quiz item rules."""


class QuestionGenerator(ABC):
    """Produces quiz items from document text."""

    @abstractmethod
    async def generate(self, content: str, count: int) -> List[GeneratedQuestion]:
        """
        Generate up to ``count`` validated questions from ``content``.

        Raises:
            PreconditionError: If the generated items are unusable
            ExternalServiceError: If the generation service fails
        """
        pass


def validate_question(item: Any, number: int) -> GeneratedQuestion:
    """
    Validate one generated item.

    Args:
        item: Raw item decoded from the model reply
        number: 1-based position, for error messages

    Returns:
        The validated question

    Raises:
        InvalidQuestionError: If the item is not a usable quiz item
    """
    if not isinstance(item, dict):
        raise InvalidQuestionError(f"Question {number}: item is not an object")

    text = item.get("question")
    if not isinstance(text, str) or not text.strip():
        raise InvalidQuestionError(f"Question {number}: missing or invalid question text")

    kind = QuestionType.parse(item.get("type"))
    if kind is None:
        raise InvalidQuestionError(f"Question {number}: invalid question type {item.get('type')!r}")

    points = item.get("points")
    if points is None or points == 0:
        points = 1
    if isinstance(points, bool) or not isinstance(points, (int, float)) or points < 1:
        raise InvalidQuestionError(f"Question {number}: invalid point value {points!r}")

    options: List[str] = []
    correct_answers: List[str] = []
    if kind.is_choice:
        options = item.get("options")
        correct_answers = item.get("correct_answers")
        if not isinstance(options, list) or len(options) < 2 or not all(isinstance(o, str) for o in options):
            raise InvalidQuestionError(f"Question {number}: missing or insufficient options")
        if not isinstance(correct_answers, list) or not correct_answers:
            raise InvalidQuestionError(f"Question {number}: missing correct answers")
        if any(answer not in options for answer in correct_answers):
            raise InvalidQuestionError(f"Question {number}: correct answers not found in options")
        if len(set(correct_answers)) != len(correct_answers):
            raise InvalidQuestionError(f"Question {number}: duplicate correct answers")
        if kind is QuestionType.SINGLE_CHOICE and len(correct_answers) != 1:
            raise InvalidQuestionError(f"Question {number}: single-choice questions need exactly one correct answer")
        if kind is QuestionType.MULTI_CHOICE and len(correct_answers) < 2:
            raise InvalidQuestionError(f"Question {number}: multiple-choice questions need at least two correct answers")

    explanation = item.get("explanation")
    return GeneratedQuestion(
        question=text.strip(),
        type=kind,
        options=list(options),
        correct_answers=list(correct_answers),
        points=points,
        explanation=explanation if isinstance(explanation, str) and explanation else None,
    )


def validate_questions(payload: Any, count: int) -> List[GeneratedQuestion]:
    """
    Validate a decoded model reply and keep at most ``count`` items.

    Raises:
        PreconditionError: If the reply has no question list, or any item is invalid
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("questions"), list):
        raise PreconditionError(
            "Invalid response format from the question generator",
            code=ErrorCode.INVALID_GENERATION,
        )

    try:
        questions = [
            validate_question(item, number)
            for number, item in enumerate(payload["questions"], start=1)
        ]
    except InvalidQuestionError as e:
        raise PreconditionError(
            str(e),
            code=ErrorCode.INVALID_GENERATION,
            suggestions=["Retry the generation"],
        )

    if not questions:
        raise PreconditionError(
            "No question could be generated from the content",
            code=ErrorCode.INVALID_GENERATION,
            suggestions=["Add more text content to the session documents"],
        )

    return questions[:count]


SYSTEM_PROMPT = (
    "You are an expert in designing training assessments. You write relevant, "
    "varied questions based only on the content you are given."
)

USER_PROMPT = """Based on the following content, write exactly {count} assessment questions in {language}.

DOCUMENT CONTENT:
{content}

INSTRUCTIONS:
1. Write varied questions that test understanding of the content
2. Use 3 question types:
   - Single-choice questions (60% of the questions)
   - Multiple-choice questions (30% of the questions)
   - Open questions (10% of the questions)
3. Questions must be relevant and based only on the content provided
4. For single-choice questions, give 4 options with exactly one correct answer
5. For multiple-choice questions, give 5-6 options with 2-3 correct answers
6. Cover different aspects of the content

RESPONSE FORMAT (JSON):
{{
  "questions": [
    {{
      "question": "Question text",
      "type": "multiple_choice",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "correct_answers": ["Option 2"],
      "points": 1,
      "explanation": "Why the answer is correct (optional)"
    }}
  ]
}}

"type" is "multiple_choice" (single choice), "multiple_choice_multiple" (several correct answers) or "text" (open question).
"options" and "correct_answers" are empty lists for "text" questions.

Write the {count} questions now:"""


class OpenAIQuestionGenerator(QuestionGenerator):
    """Question generator backed by the OpenAI chat completions API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        language: str = "French",
    ):
        self._client = client
        self.model = model or settings.OPENAI_MODEL
        self.temperature = settings.OPENAI_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.OPENAI_MAX_TOKENS
        self.language = language

    def _get_client(self) -> AsyncOpenAI:
        """OpenAI v1 async client with an explicit timeout."""
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise ExternalServiceError("openai", "OPENAI_API_KEY is not configured")
            http_client = httpx.AsyncClient(timeout=settings.OPENAI_TIMEOUT)
            self._client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, http_client=http_client)
        return self._client

    def build_messages(self, content: str, count: int) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT.format(
                count=count, language=self.language, content=content
            )},
        ]

    @log_execution_time(logger)
    async def generate(self, content: str, count: int) -> List[GeneratedQuestion]:
        if not content or not content.strip():
            raise PreconditionError(
                "Document content is empty",
                code=ErrorCode.INSUFFICIENT_CONTENT,
            )

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(content, count),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error(f"Question generation request failed: {e}")
            raise ExternalServiceError("openai", f"Question generation failed: {e}", cause=e)

        raw = response.choices[0].message.content if response.choices else None
        try:
            payload = json.loads(raw or "")
        except json.JSONDecodeError as e:
            logger.warning(f"Unparseable generation reply: {(raw or '')[:200]}")
            raise PreconditionError(
                "The question generator returned invalid JSON",
                code=ErrorCode.INVALID_GENERATION,
                cause=e,
            )

        questions = validate_questions(payload, count)
        logger.info(f"Generated {len(questions)} questions ({count} requested)")
        return questions
