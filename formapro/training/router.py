"""
Training Router

Attendance endpoint for the training domain.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import async_sessionmaker

from formapro.common.auth import Principal, PrincipalKind, require_principal
from formapro.common.db.session import session_factory
from formapro.common.error_handling import ValidationError
from formapro.common.logger import get_logger
from formapro.training.repository import ParticipantRepository

logger = get_logger("training.router")

router = APIRouter(tags=["participants"])


class PresenceUpdate(BaseModel):
    participant_id: int = Field(..., gt=0, description="Participant identifier")
    present: bool = Field(..., description="Attendance flag")


class BulkPresenceRequest(BaseModel):
    updates: List[PresenceUpdate] = Field(..., min_length=1, description="Attendance changes to apply")


def get_participant_repository(
    factory: async_sessionmaker = Depends(session_factory),
) -> ParticipantRepository:
    return ParticipantRepository(factory)


@router.put("/participants/presence")
async def update_presence(
    request: BulkPresenceRequest,
    principal: Principal = Depends(require_principal(PrincipalKind.ADMIN, PrincipalKind.ENTREPRISE)),
    repository: ParticipantRepository = Depends(get_participant_repository),
) -> Dict[str, Any]:
    """Apply attendance flags for several participants in one transaction."""
    ids = [update.participant_id for update in request.updates]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValidationError("Duplicate participant ids", details={"participant_ids": duplicates})

    updated = await repository.bulk_update_presence(
        ((update.participant_id, update.present) for update in request.updates),
        entreprise_id=principal.entreprise_id if principal.is_entreprise else None,
    )
    logger.info(f"Presence updated by {principal.kind.value} for {updated} participants")
    return {"success": True, "updated": updated}


__all__ = ["router"]
