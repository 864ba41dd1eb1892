"""
Test doubles and helpers shared by the test modules.
"""

from typing import Dict, List, Optional

from sqlalchemy import func, select

from formapro.common.auth import Principal, PrincipalKind, create_access_token
from formapro.evaluations.extraction import DocumentExtractor, ExtractionError
from formapro.evaluations.generation import QuestionGenerator
from formapro.evaluations.types import GeneratedQuestion, QuestionType
from formapro.training.models import Employe, Entreprise

LONG_TEXT = (
    "Workplace safety training covers hazard identification, protective equipment, "
    "emergency procedures and incident reporting for every team member."
)


class FakeExtractor(DocumentExtractor):
    """Returns canned text per file path; unknown paths fail."""

    def __init__(self, texts: Optional[Dict[str, str]] = None):
        self.texts = texts or {}

    def extract(self, file_path, mime_type):
        if file_path not in self.texts:
            raise ExtractionError(f"File not found: {file_path}")
        return self.texts[file_path]


class FakeGenerator(QuestionGenerator):
    """Returns fixed questions, or raises a configured error."""

    def __init__(self, questions: Optional[List[GeneratedQuestion]] = None, error: Optional[Exception] = None):
        self.questions = questions if questions is not None else sample_questions()
        self.error = error
        self.calls = []

    async def generate(self, content, count):
        self.calls.append((content, count))
        if self.error is not None:
            raise self.error
        return self.questions[:count]


def sample_questions() -> List[GeneratedQuestion]:
    return [
        GeneratedQuestion(
            question="Which equipment protects the eyes?",
            type=QuestionType.SINGLE_CHOICE,
            options=["A", "B", "C", "D"],
            correct_answers=["B"],
            points=2,
        ),
        GeneratedQuestion(
            question="Which items belong in an incident report?",
            type=QuestionType.MULTI_CHOICE,
            options=["A", "B", "C"],
            correct_answers=["A", "C"],
            points=4,
        ),
        GeneratedQuestion(
            question="Describe the evacuation procedure.",
            type=QuestionType.TEXT,
            points=2,
        ),
    ]


def auth_headers(principal: Principal) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(principal)}"}


def admin_auth() -> Dict[str, str]:
    return auth_headers(Principal(kind=PrincipalKind.ADMIN, username="admin"))


def employe_auth(employe: Employe) -> Dict[str, str]:
    return auth_headers(Principal(
        kind=PrincipalKind.EMPLOYE,
        id=employe.id,
        email=employe.email,
        entreprise_id=employe.entreprise_id,
    ))


def entreprise_auth(entreprise: Entreprise) -> Dict[str, str]:
    return auth_headers(Principal(
        kind=PrincipalKind.ENTREPRISE,
        id=entreprise.id,
        email=entreprise.email,
        entreprise_id=entreprise.id,
    ))


async def add_rows(factory, *rows):
    async with factory() as session:
        session.add_all(rows)
        await session.commit()
    return rows


async def count_rows(factory, model) -> int:
    async with factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return int(result.scalar_one())
