"""
Evaluation Router

HTTP endpoints for quiz generation, attempts, attempt details and
analytics. Every route requires a bearer token; employees may only act on
their own behalf and companies only for their own staff.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from formapro.common.auth import (
    Principal,
    PrincipalKind,
    ensure_employe_access,
    get_current_principal,
    require_principal,
)
from formapro.common.db.session import session_factory
from formapro.common.error_handling import AuthorizationError
from formapro.common.logger import get_logger
from formapro.config import settings
from formapro.evaluations.extraction import DocumentExtractor, OfficeDocumentExtractor
from formapro.evaluations.generation import OpenAIQuestionGenerator, QuestionGenerator
from formapro.evaluations.schemas import (
    CreateEvaluationRequest,
    StartAttemptRequest,
    SubmitAttemptRequest,
)
from formapro.evaluations.service import EvaluationService

logger = get_logger("evaluations.router")

router = APIRouter(prefix="/evaluations", tags=["evaluations"])

require_admin = require_principal(PrincipalKind.ADMIN)
require_admin_or_entreprise = require_principal(PrincipalKind.ADMIN, PrincipalKind.ENTREPRISE)


@lru_cache()
def get_document_extractor() -> DocumentExtractor:
    return OfficeDocumentExtractor(upload_root=settings.UPLOAD_ROOT)


@lru_cache()
def get_question_generator() -> QuestionGenerator:
    return OpenAIQuestionGenerator()


def get_evaluation_service(
    factory: async_sessionmaker = Depends(session_factory),
    extractor: DocumentExtractor = Depends(get_document_extractor),
    generator: QuestionGenerator = Depends(get_question_generator),
) -> EvaluationService:
    return EvaluationService(factory, extractor, generator)


async def authorize_employe(principal: Principal, employe_id: int, service: EvaluationService) -> None:
    entreprise_id = None
    if principal.is_entreprise:
        entreprise_id = await service.employe_entreprise_id(employe_id)
    ensure_employe_access(principal, employe_id, entreprise_id)


@router.get("/seance/{seance_id}")
async def list_seance_evaluations(
    seance_id: int = Path(..., ge=1),
    employe_id: Optional[int] = Query(None, alias="employeId", ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> List[Dict[str, Any]]:
    """List the evaluations of a session, with one employee's attempts when requested."""
    if employe_id is not None:
        await authorize_employe(principal, employe_id, service)
    return await service.list_for_seance(seance_id, employe_id)


@router.get("/employe/{employe_id}")
async def list_employe_evaluations(
    employe_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> List[Dict[str, Any]]:
    await authorize_employe(principal, employe_id, service)
    return await service.list_for_employe(employe_id)


@router.get("/validate-seance/{seance_id}")
async def validate_seance(
    seance_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    """Pre-flight check for question generation."""
    return await service.validate_seance(seance_id)


@router.get("/generation-stats/{seance_id}")
async def generation_stats(
    seance_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    return await service.generation_stats(seance_id)


@router.get("/preview/{seance_id}")
async def preview_seance_content(
    seance_id: int = Path(..., ge=1),
    max_length: int = Query(500, ge=1, le=10000),
    principal: Principal = Depends(require_admin),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    return await service.preview_content(seance_id, max_length)


@router.post("/create")
async def create_evaluation(
    request: CreateEvaluationRequest,
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    """Generate a quiz from the session documents and store it."""
    await authorize_employe(principal, request.employe_id, service)
    logger.info(f"Generating evaluation for session {request.seance_id}")
    return await service.create_evaluation(
        seance_id=request.seance_id,
        employe_id=request.employe_id,
        titre=request.titre,
        description=request.description,
        nombre_questions=request.nombre_questions,
        duree_minutes=request.duree_minutes,
    )


@router.get("/attempts/{employe_id}")
async def list_attempts(
    employe_id: int = Path(..., ge=1),
    limit: int = Query(50, ge=1, le=500),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> List[Dict[str, Any]]:
    await authorize_employe(principal, employe_id, service)
    return await service.list_attempts(employe_id, limit)


@router.get("/attempts/{employe_id}/{attempt_id}/details")
async def attempt_details(
    employe_id: int = Path(..., ge=1),
    attempt_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    """Per-question view of an attempt; the attempt must belong to ``employe_id``."""
    await authorize_employe(principal, employe_id, service)
    return await service.attempt_details(employe_id, attempt_id)


@router.get("/analytics/enterprise/{entreprise_id}")
async def enterprise_analytics(
    entreprise_id: int = Path(..., ge=1),
    principal: Principal = Depends(require_admin_or_entreprise),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    if not principal.can_view_entreprise(entreprise_id):
        raise AuthorizationError("Access denied", resource=f"entreprise:{entreprise_id}")
    return await service.enterprise_analytics(entreprise_id)


@router.get("/analytics/admin")
async def admin_analytics(
    entreprise_id: Optional[int] = Query(None, ge=1),
    formation_id: Optional[int] = Query(None, ge=1),
    limit: int = Query(100, ge=1, le=1000),
    principal: Principal = Depends(require_admin),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    return await service.admin_analytics(entreprise_id, formation_id, limit)


@router.get("/{evaluation_id}")
async def get_evaluation(
    evaluation_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    """Evaluation with its questions in display order."""
    return await service.get_evaluation(evaluation_id)


@router.delete("/{evaluation_id}")
async def delete_evaluation(
    evaluation_id: int = Path(..., ge=1),
    principal: Principal = Depends(require_admin),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    return await service.delete_evaluation(evaluation_id)


@router.post("/{evaluation_id}/start")
async def start_attempt(
    request: StartAttemptRequest,
    evaluation_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    await authorize_employe(principal, request.employe_id, service)
    return await service.start_attempt(evaluation_id, request.employe_id)


@router.post("/{evaluation_id}/submit")
async def submit_attempt(
    request: SubmitAttemptRequest,
    evaluation_id: int = Path(..., ge=1),
    principal: Principal = Depends(get_current_principal),
    service: EvaluationService = Depends(get_evaluation_service),
) -> Dict[str, Any]:
    """Grade the answers and record the employee's completed attempt."""
    await authorize_employe(principal, request.employe_id, service)
    return await service.submit_attempt(
        evaluation_id, request.employe_id, request.reponses, request.temps_utilise
    )


__all__ = ["router"]
