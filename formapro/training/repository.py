"""
Training Domain Repositories

Read paths over companies, employees, sessions and their media, plus the
bulk attendance update.
"""

from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select

from formapro.common.db.repository import SQLAlchemyRepository
from formapro.common.db.session import transaction
from formapro.common.error_handling import AuthorizationError, NotFoundError
from formapro.common.logger import get_logger
from formapro.training.models import (
    Employe,
    Entreprise,
    Participant,
    Seance,
    SeanceMedia,
)

logger = get_logger("training.repository")


class EntrepriseRepository(SQLAlchemyRepository[Entreprise]):
    model = Entreprise
    entity_type = "Entreprise"

    async def get_by_email(self, email: str) -> Optional[Entreprise]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Entreprise).where(Entreprise.email == email)
            )
            return result.scalar_one_or_none()

    async def count_employees(self, entreprise_id: int) -> int:
        return await EmployeRepository(self._session_factory).count({"entreprise_id": entreprise_id})


class EmployeRepository(SQLAlchemyRepository[Employe]):
    model = Employe
    entity_type = "Employe"

    async def get_by_email(self, email: str) -> Optional[Employe]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Employe).where(Employe.email == email).order_by(Employe.id).limit(1)
            )
            return result.scalar_one_or_none()


class SeanceRepository(SQLAlchemyRepository[Seance]):
    model = Seance
    entity_type = "Seance"

    async def list_media(self, seance_id: int) -> List[SeanceMedia]:
        """
        List the documents uploaded for a session, in upload order.

        Args:
            seance_id: Session ID

        Returns:
            Media rows of the session (empty if none)
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(SeanceMedia)
                .where(SeanceMedia.seance_id == seance_id)
                .order_by(SeanceMedia.created_at, SeanceMedia.id)
            )
            return list(result.scalars().all())


class ParticipantRepository(SQLAlchemyRepository[Participant]):
    model = Participant
    entity_type = "Participant"

    async def bulk_update_presence(
        self, updates: Iterable[Tuple[int, bool]], entreprise_id: Optional[int] = None
    ) -> int:
        """
        Set the attendance flag of several participants at once.

        Either every flag changes or none does: an unknown participant id, or
        one outside the given company, rolls the whole batch back.

        Args:
            updates: (participant_id, present) pairs
            entreprise_id: Restrict the batch to employees of this company

        Returns:
            Number of participants updated

        Raises:
            NotFoundError: If a participant id does not exist
            AuthorizationError: If a participant belongs to another company
        """
        updated = 0
        async with transaction(self._session_factory) as session:
            for participant_id, present in updates:
                participant = await session.get(Participant, participant_id)
                if participant is None:
                    raise NotFoundError("Participant", participant_id)
                if entreprise_id is not None:
                    employe = await session.get(Employe, participant.employe_id)
                    if employe is None or employe.entreprise_id != entreprise_id:
                        raise AuthorizationError("Access denied", resource=f"participant:{participant_id}")
                participant.present = bool(present)
                updated += 1

        logger.info(f"Updated presence of {updated} participants")
        return updated
