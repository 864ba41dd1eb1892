"""
Evaluation Types

Question kinds and the typed answers submitted for them. Submitted answers
arrive as untyped JSON values; ``parse_answer`` turns each one into the
answer variant its question expects, or ``MalformedAnswer`` when the shape
does not match.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union


class QuestionType(str, enum.Enum):
    """Question kinds, with their stored and wire names."""

    SINGLE_CHOICE = "multiple_choice"
    MULTI_CHOICE = "multiple_choice_multiple"
    TEXT = "text"

    @property
    def is_choice(self) -> bool:
        return self != QuestionType.TEXT

    @classmethod
    def parse(cls, value: Any) -> Optional["QuestionType"]:
        """Return the matching type, or None for an unknown name."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class SingleChoiceAnswer:
    choice: str


@dataclass(frozen=True)
class MultiChoiceAnswer:
    choices: Tuple[str, ...]


@dataclass(frozen=True)
class TextAnswer:
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class MalformedAnswer:
    """Submitted value whose shape does not fit the question type."""
    raw: Any


Answer = Union[SingleChoiceAnswer, MultiChoiceAnswer, TextAnswer, MalformedAnswer]


def parse_answer(question_type: Any, raw: Any) -> Optional[Answer]:
    """
    Parse a submitted JSON value into the answer variant for a question type.

    Args:
        question_type: Stored type of the question
        raw: Submitted value (None when the question was left unanswered)

    Returns:
        The typed answer, or None when nothing was submitted
    """
    if raw is None:
        return None

    kind = QuestionType.parse(question_type)
    if kind == QuestionType.SINGLE_CHOICE and isinstance(raw, str):
        return SingleChoiceAnswer(raw)
    if kind == QuestionType.MULTI_CHOICE and isinstance(raw, list) and all(isinstance(v, str) for v in raw):
        return MultiChoiceAnswer(tuple(raw))
    if kind == QuestionType.TEXT and isinstance(raw, str):
        return TextAnswer(raw)
    return MalformedAnswer(raw)


@dataclass
class GeneratedQuestion:
    """
    Validated quiz item produced by a question generator.

    Choice items have every correct answer drawn from ``options``; text
    items carry empty lists.
    """
    question: str
    type: QuestionType
    options: List[str] = field(default_factory=list)
    correct_answers: List[str] = field(default_factory=list)
    points: float = 1
    explanation: Optional[str] = None
