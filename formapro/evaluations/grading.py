"""
Answer Grading

A single grading rule shared by submission scoring and the per-question
detail view:

- single choice: full points when the answer equals the correct answer
- multiple choice: full points only for exactly the correct set
- free text: half points for any non-blank answer
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from formapro.evaluations.types import (
    Answer,
    MultiChoiceAnswer,
    QuestionType,
    SingleChoiceAnswer,
    TextAnswer,
    parse_answer,
)

TEXT_CREDIT = 0.5


@dataclass(frozen=True)
class GradedAnswer:
    """Outcome of grading one question."""
    points_awarded: float
    is_correct: bool
    answer: Optional[Answer] = None


@dataclass(frozen=True)
class ScoreResult:
    score: float
    total_points: float
    pourcentage: float


def compute_percentage(score: float, total_points: float) -> float:
    """Percentage of points earned, 0 when nothing could be earned. Not rounded."""
    if not total_points:
        return 0.0
    return 100 * score / total_points


def display_percentage(pourcentage: Optional[float]) -> float:
    """Percentage as shown to users, 2 dp."""
    return round(pourcentage or 0.0, 2)


def lookup_answer(reponses: Mapping[Any, Any], question_id: int) -> Any:
    """Find the submitted value for a question, keyed by string or integer id."""
    if not reponses:
        return None
    key = str(question_id)
    if key in reponses:
        return reponses[key]
    return reponses.get(question_id)


def grade_answer(question: Any, raw_answer: Any) -> GradedAnswer:
    """
    Grade one submitted value against a question.

    Args:
        question: Object exposing ``type``, ``correct_answers`` and ``points``
        raw_answer: Submitted JSON value, or None when unanswered

    Returns:
        GradedAnswer with the points earned and the correctness flag
    """
    points = float(question.points or 0)
    correct = list(question.correct_answers or [])
    answer = parse_answer(question.type, raw_answer)
    kind = QuestionType.parse(question.type)

    if kind == QuestionType.SINGLE_CHOICE and isinstance(answer, SingleChoiceAnswer):
        if correct and answer.choice == correct[0]:
            return GradedAnswer(points, True, answer)

    elif kind == QuestionType.MULTI_CHOICE and isinstance(answer, MultiChoiceAnswer):
        if len(answer.choices) == len(correct) and set(answer.choices) == set(correct):
            return GradedAnswer(points, True, answer)

    elif kind == QuestionType.TEXT and isinstance(answer, TextAnswer):
        if not answer.is_blank:
            return GradedAnswer(points * TEXT_CREDIT, True, answer)

    return GradedAnswer(0.0, False, answer)


def score_submission(questions: Iterable[Any], reponses: Mapping[Any, Any]) -> ScoreResult:
    """
    Score a full submission.

    Args:
        questions: Questions of the evaluation, in display order
        reponses: Submitted answers keyed by question id

    Returns:
        ScoreResult with score, total points and percentage
    """
    score = 0.0
    total_points = 0.0
    for question in questions:
        total_points += float(question.points or 0)
        score += grade_answer(question, lookup_answer(reponses, question.id)).points_awarded

    return ScoreResult(
        score=score,
        total_points=total_points,
        pourcentage=compute_percentage(score, total_points),
    )
