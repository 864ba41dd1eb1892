"""
Evaluation Repository

Database access for evaluations, their questions and attempts. Multi-row
writes (an evaluation with its questions, the completed-attempt upsert)
each run in a single transaction.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from formapro.common.db.repository import SQLAlchemyRepository
from formapro.common.db.session import transaction
from formapro.common.error_handling import DatabaseError
from formapro.common.logger import get_logger
from formapro.database.base import utcnow
from formapro.evaluations.grading import ScoreResult
from formapro.evaluations.models import (
    Evaluation,
    EvaluationAttempt,
    EvaluationQuestion,
)
from formapro.evaluations.types import GeneratedQuestion
from formapro.training.models import Employe, Entreprise, Formation, Seance

logger = get_logger("evaluations.repository")


def _row_to_dict(row: Any, extra_columns: Sequence[str]) -> Dict[str, Any]:
    data = row[0].to_dict()
    mapping = row._mapping
    for column in extra_columns:
        data[column] = mapping[column]
    return data


class EvaluationRepository(SQLAlchemyRepository[Evaluation]):
    """Repository for evaluations and their questions."""

    model = Evaluation
    entity_type = "Evaluation"

    async def create_with_questions(
        self,
        seance_id: int,
        employe_id: Optional[int],
        titre: str,
        description: Optional[str],
        nombre_questions: int,
        duree_minutes: int,
        questions: Sequence[GeneratedQuestion],
    ) -> Evaluation:
        """
        Insert an evaluation and its questions (ordre 1..N) atomically.

        Returns:
            The created evaluation
        """
        async with transaction(self._session_factory) as session:
            evaluation = Evaluation(
                seance_id=seance_id,
                employe_id=employe_id,
                titre=titre,
                description=description,
                nombre_questions=nombre_questions,
                duree_minutes=duree_minutes,
            )
            session.add(evaluation)
            await session.flush()

            for ordre, question in enumerate(questions, start=1):
                session.add(EvaluationQuestion(
                    evaluation_id=evaluation.id,
                    question=question.question,
                    type=question.type.value,
                    options=list(question.options),
                    correct_answers=list(question.correct_answers),
                    points=question.points,
                    ordre=ordre,
                    explanation=question.explanation,
                ))

        logger.info(f"Created evaluation {evaluation.id} with {len(questions)} questions")
        return evaluation

    async def list_questions(self, evaluation_id: int) -> List[EvaluationQuestion]:
        """Questions of an evaluation in display order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(EvaluationQuestion)
                .where(EvaluationQuestion.evaluation_id == evaluation_id)
                .order_by(EvaluationQuestion.ordre, EvaluationQuestion.id)
            )
            return list(result.scalars().all())

    async def list_for_seance(self, seance_id: int) -> List[Evaluation]:
        return await self.list({"seance_id": seance_id})

    async def list_for_employe(self, employe_id: int) -> List[Dict[str, Any]]:
        """Evaluations created for an employee, with session and training names, newest first."""
        stmt = (
            select(
                Evaluation,
                Seance.description.label("seance_description"),
                Formation.intitule.label("formation_nom"),
            )
            .join(Seance, Evaluation.seance_id == Seance.id)
            .join(Formation, Seance.formation_id == Formation.id)
            .where(Evaluation.employe_id == employe_id)
            .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                _row_to_dict(row, ("seance_description", "formation_nom"))
                for row in result.all()
            ]

    async def delete(self, evaluation_id: int) -> bool:
        """
        Delete an evaluation; its questions and attempts go with it.

        Returns:
            True if deleted, False if not found
        """
        async with transaction(self._session_factory) as session:
            result = await session.execute(
                delete(Evaluation).where(Evaluation.id == evaluation_id)
            )
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Deleted evaluation {evaluation_id}")
        return deleted


class AttemptRepository(SQLAlchemyRepository[EvaluationAttempt]):
    """Repository for evaluation attempts."""

    model = EvaluationAttempt
    entity_type = "Attempt"

    async def start(self, evaluation_id: int, employe_id: int) -> EvaluationAttempt:
        """Insert an in-progress attempt."""
        async with transaction(self._session_factory) as session:
            attempt = EvaluationAttempt(
                evaluation_id=evaluation_id,
                employe_id=employe_id,
                score=0,
                total_points=0,
                pourcentage=0,
                reponses={},
                temps_utilise=0,
                termine=False,
            )
            session.add(attempt)

        return attempt

    async def _attempt_to_complete(self, session: Any, evaluation_id: int, employe_id: int) -> Optional[EvaluationAttempt]:
        """The completed attempt of the pair if any, else its latest in-progress one."""
        pair = (
            EvaluationAttempt.evaluation_id == evaluation_id,
            EvaluationAttempt.employe_id == employe_id,
        )
        result = await session.execute(
            select(EvaluationAttempt).where(*pair, EvaluationAttempt.termine.is_(True)).limit(1)
        )
        attempt = result.scalar_one_or_none()
        if attempt is not None:
            return attempt

        result = await session.execute(
            select(EvaluationAttempt)
            .where(*pair, EvaluationAttempt.termine.is_(False))
            .order_by(EvaluationAttempt.created_at.desc(), EvaluationAttempt.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def save_completed(
        self,
        evaluation_id: int,
        employe_id: int,
        result: ScoreResult,
        reponses: Mapping[str, Any],
        temps_utilise: int,
    ) -> EvaluationAttempt:
        """
        Record a graded submission as the pair's single completed attempt.

        Updates the completed attempt if one exists, else the latest
        in-progress attempt, else inserts a new one. A concurrent submission
        that completes first trips the unique index; the write is then
        retried once and lands on that attempt.
        """
        for retry in (False, True):
            try:
                async with transaction(self._session_factory) as session:
                    attempt = await self._attempt_to_complete(session, evaluation_id, employe_id)
                    if attempt is None:
                        attempt = EvaluationAttempt(evaluation_id=evaluation_id, employe_id=employe_id)
                        session.add(attempt)

                    attempt.score = result.score
                    attempt.total_points = result.total_points
                    attempt.pourcentage = result.pourcentage
                    attempt.reponses = dict(reponses)
                    attempt.temps_utilise = temps_utilise
                    attempt.termine = True
                    attempt.date_fin = utcnow()
                return attempt
            except IntegrityError as e:
                if retry:
                    logger.error(f"Could not record attempt for evaluation {evaluation_id}: {e}")
                    raise DatabaseError("Failed to record the attempt", cause=e)
                logger.warning(
                    f"Concurrent submission for evaluation {evaluation_id} "
                    f"and employe {employe_id}, retrying as update"
                )

    async def list_for_pair(self, evaluation_id: int, employe_id: int) -> List[EvaluationAttempt]:
        """Attempts of one employee at one evaluation, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(EvaluationAttempt)
                .where(
                    EvaluationAttempt.evaluation_id == evaluation_id,
                    EvaluationAttempt.employe_id == employe_id,
                )
                .order_by(EvaluationAttempt.created_at.desc(), EvaluationAttempt.id.desc())
            )
            return list(result.scalars().all())

    async def list_for_employe(self, employe_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        """Attempts of an employee with evaluation, session and training names, newest first."""
        stmt = (
            select(
                EvaluationAttempt,
                Evaluation.titre.label("evaluation_titre"),
                Seance.description.label("seance_description"),
                Formation.intitule.label("formation_nom"),
            )
            .join(Evaluation, EvaluationAttempt.evaluation_id == Evaluation.id)
            .join(Seance, Evaluation.seance_id == Seance.id)
            .join(Formation, Seance.formation_id == Formation.id)
            .where(EvaluationAttempt.employe_id == employe_id)
            .order_by(EvaluationAttempt.created_at.desc(), EvaluationAttempt.id.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                _row_to_dict(row, ("evaluation_titre", "seance_description", "formation_nom"))
                for row in result.all()
            ]

    async def list_for_entreprise(self, entreprise_id: int) -> List[Dict[str, Any]]:
        """Attempts of every employee of a company, newest first."""
        columns = ("employe_nom", "employe_prenom", "employe_email", "evaluation_titre", "formation_nom")
        stmt = (
            select(
                EvaluationAttempt,
                Employe.nom.label("employe_nom"),
                Employe.prenom.label("employe_prenom"),
                Employe.email.label("employe_email"),
                Evaluation.titre.label("evaluation_titre"),
                Formation.intitule.label("formation_nom"),
            )
            .join(Employe, EvaluationAttempt.employe_id == Employe.id)
            .join(Evaluation, EvaluationAttempt.evaluation_id == Evaluation.id)
            .join(Seance, Evaluation.seance_id == Seance.id)
            .join(Formation, Seance.formation_id == Formation.id)
            .where(Employe.entreprise_id == entreprise_id)
            .order_by(EvaluationAttempt.created_at.desc(), EvaluationAttempt.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_row_to_dict(row, columns) for row in result.all()]

    async def list_all(
        self,
        entreprise_id: Optional[int] = None,
        formation_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Attempts across all companies, optionally filtered by company and
        training, with the company name used for the per-company breakdown.
        """
        columns = (
            "evaluation_titre", "seance_description", "formation_nom",
            "employe_nom", "employe_prenom", "employe_email", "entreprise_nom",
        )
        stmt = (
            select(
                EvaluationAttempt,
                Evaluation.titre.label("evaluation_titre"),
                Seance.description.label("seance_description"),
                Formation.intitule.label("formation_nom"),
                Employe.nom.label("employe_nom"),
                Employe.prenom.label("employe_prenom"),
                Employe.email.label("employe_email"),
                Entreprise.raison_sociale.label("entreprise_nom"),
            )
            .join(Evaluation, EvaluationAttempt.evaluation_id == Evaluation.id)
            .join(Seance, Evaluation.seance_id == Seance.id)
            .join(Formation, Seance.formation_id == Formation.id)
            .join(Employe, EvaluationAttempt.employe_id == Employe.id)
            .outerjoin(Entreprise, Employe.entreprise_id == Entreprise.id)
        )
        if entreprise_id is not None:
            stmt = stmt.where(Employe.entreprise_id == entreprise_id)
        if formation_id is not None:
            stmt = stmt.where(Seance.formation_id == formation_id)
        stmt = stmt.order_by(EvaluationAttempt.created_at.desc(), EvaluationAttempt.id.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_row_to_dict(row, columns) for row in result.all()]
