"""
Evaluation Service

Business operations of the evaluation subsystem: quiz generation from
session documents, the attempt lifecycle, the per-question detail view and
analytics. Document extraction and question generation are injected
capabilities.
"""

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from formapro.common.error_handling import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    PreconditionError,
)
from formapro.common.logger import LoggerAdapter, get_logger
from formapro.config import settings
from formapro.evaluations.extraction import (
    DocumentExtractor,
    ExtractedContent,
    extraction_summary,
)
from formapro.evaluations.generation import QuestionGenerator
from formapro.evaluations.grading import display_percentage, grade_answer, lookup_answer, score_submission
from formapro.evaluations.repository import AttemptRepository, EvaluationRepository
from formapro.evaluations.statistics import (
    calculate_enterprise_stats,
    calculate_evaluation_stats,
)
from formapro.training.repository import (
    EmployeRepository,
    EntrepriseRepository,
    SeanceRepository,
)

logger = get_logger("evaluations.service")

NO_MEDIA_SUGGESTIONS = ["Add PDF, PowerPoint or Word documents to the session"]
NO_SUPPORTED_MEDIA_SUGGESTIONS = [
    "Add PDF, PowerPoint (.pptx), Word (.docx) or text files",
    "Convert your files to a supported format",
]
INSUFFICIENT_CONTENT_SUGGESTIONS = [
    "Check that your documents contain text",
    "Add more text content to the documents",
]
EXTRACTION_ERROR_SUGGESTIONS = [
    "Check that the files are not corrupted",
    "Try uploading the documents again",
]


def generation_recommendations(summary: Mapping[str, Any]) -> List[str]:
    """Advice on the documents of a session, from its extraction summary."""
    recommendations = []
    supported = summary["supported"]

    if supported == 0:
        recommendations.append("Add PDF, PowerPoint or Word files to enable question generation")
    if summary["unsupported"] > 0:
        recommendations.append(
            f"{summary['unsupported']} file(s) cannot be processed. "
            "Convert them to PDF or PowerPoint if possible"
        )
    if 0 < supported < 3:
        recommendations.append("Add more documents to enrich the content and improve question quality")
    if supported >= 3:
        recommendations.append("There is enough content to generate quality questions")

    return recommendations


class EvaluationService:
    """Evaluation operations over the store and the injected capabilities."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        extractor: DocumentExtractor,
        generator: QuestionGenerator,
        min_content_length: Optional[int] = None,
        min_sample_length: Optional[int] = None,
    ):
        self.evaluations = EvaluationRepository(session_factory)
        self.attempts = AttemptRepository(session_factory)
        self.seances = SeanceRepository(session_factory)
        self.employes = EmployeRepository(session_factory)
        self.entreprises = EntrepriseRepository(session_factory)
        self.extractor = extractor
        self.generator = generator
        self.min_content_length = min_content_length or settings.MIN_CONTENT_LENGTH
        self.min_sample_length = min_sample_length or settings.MIN_SAMPLE_LENGTH

    async def employe_entreprise_id(self, employe_id: int) -> int:
        """Company of an employee; raises NotFoundError for unknown ids."""
        employe = await self.employes.get_or_raise(employe_id)
        return employe.entreprise_id

    # Generation

    async def _collect_content(self, seance_id: int) -> ExtractedContent:
        """
        Extract the text of every document of a session.

        Raises:
            PreconditionError: no media, no supported media, or too little text
        """
        media = await self.seances.list_media(seance_id)
        if not media:
            raise PreconditionError(
                "No media file found for this session. Add documents (PDF, PowerPoint, etc.) first.",
                code=ErrorCode.NO_MEDIA,
                suggestions=NO_MEDIA_SUGGESTIONS,
            )

        summary = extraction_summary(media)
        logger.info(
            f"Session {seance_id}: {summary['total']} media, "
            f"{summary['supported']} supported, {summary['unsupported']} unsupported"
        )
        if summary["supported"] == 0:
            raise PreconditionError(
                "No supported file for content extraction. Supported types: PDF, PowerPoint, Word, text.",
                code=ErrorCode.NO_SUPPORTED_MEDIA,
                details={"unsupportedFiles": summary["unsupportedFiles"]},
                suggestions=NO_SUPPORTED_MEDIA_SUGGESTIONS,
            )

        content = await self.extractor.extract_seance_content(media)
        if content.is_empty or len(content.text) < self.min_content_length:
            raise PreconditionError(
                "The extracted content is insufficient to generate relevant questions. "
                "Check that your documents contain text.",
                code=ErrorCode.INSUFFICIENT_CONTENT,
                details={"failedFiles": [f.filename for f in content.failures]} if content.failures else None,
                suggestions=INSUFFICIENT_CONTENT_SUGGESTIONS,
            )

        return content

    async def create_evaluation(
        self,
        seance_id: int,
        employe_id: Optional[int],
        titre: str,
        description: Optional[str] = None,
        nombre_questions: Optional[int] = None,
        duree_minutes: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate a quiz from the documents of a session and store it.

        Every precondition is checked and every question validated before
        the evaluation and its questions are written in one transaction.

        Returns:
            {success, evaluation_id, message}
        """
        nombre_questions = nombre_questions or settings.DEFAULT_QUESTIONS
        duree_minutes = duree_minutes or settings.DEFAULT_DURATION_MINUTES

        await self.seances.get_or_raise(seance_id)
        if employe_id is not None:
            await self.employes.get_or_raise(employe_id)

        log = LoggerAdapter(logger, {"seance_id": seance_id, "employe_id": employe_id})

        content = await self._collect_content(seance_id)
        text = content.text
        log.info(f"Extracted {len(text)} characters from {len(content.documents)} documents")

        questions = await self.generator.generate(text, nombre_questions)
        log.info(f"Generator returned {len(questions)} questions")

        evaluation = await self.evaluations.create_with_questions(
            seance_id=seance_id,
            employe_id=employe_id,
            titre=titre,
            description=description,
            nombre_questions=nombre_questions,
            duree_minutes=duree_minutes,
            questions=questions,
        )
        return {
            "success": True,
            "evaluation_id": evaluation.id,
            "message": "Evaluation created successfully",
        }

    async def validate_seance(self, seance_id: int) -> Dict[str, Any]:
        """
        Check whether a session's documents can feed question generation.

        Content problems are reported in the result, never raised.
        """
        media = await self.seances.list_media(seance_id)
        if not media:
            return {
                "valid": False,
                "reason": "No media file found",
                "suggestions": NO_MEDIA_SUGGESTIONS,
            }

        summary = extraction_summary(media)
        if summary["supported"] == 0:
            return {
                "valid": False,
                "reason": "No supported file for extraction",
                "suggestions": NO_SUPPORTED_MEDIA_SUGGESTIONS,
                "unsupportedFiles": summary["unsupportedFiles"],
            }

        sample = await self.extractor.extract_seance_content(media[:1])
        if sample.is_empty:
            reason = sample.failures[0].error if sample.failures else "No text could be extracted"
            return {
                "valid": False,
                "reason": "Error while extracting content",
                "suggestions": EXTRACTION_ERROR_SUGGESTIONS,
                "error": reason,
            }

        if len(sample.text) < self.min_sample_length:
            return {
                "valid": False,
                "reason": "Insufficient content in the documents",
                "suggestions": INSUFFICIENT_CONTENT_SUGGESTIONS,
            }

        return {
            "valid": True,
            "extractionSummary": summary,
            "estimatedContentLength": len(sample.text),
        }

    async def generation_stats(self, seance_id: int) -> Dict[str, Any]:
        media = await self.seances.list_media(seance_id)
        summary = extraction_summary(media)
        return {
            "totalFiles": summary["total"],
            "supportedFiles": summary["supported"],
            "unsupportedFiles": summary["unsupported"],
            "canGenerateQuestions": summary["supported"] > 0,
            "supportedFileTypes": summary["supportedFiles"],
            "unsupportedFileTypes": summary["unsupportedFiles"],
            "recommendations": generation_recommendations(summary),
        }

    async def preview_content(self, seance_id: int, max_length: int = 500) -> Dict[str, Any]:
        """Truncated preview of the text generation would receive."""
        media = await self.seances.list_media(seance_id)
        if not media:
            return {"success": False, "message": "No media file found"}

        summary = extraction_summary(media)
        if summary["supported"] == 0:
            return {
                "success": False,
                "message": "No supported file for extraction",
                "extractionSummary": summary,
            }

        content = await self.extractor.extract_seance_content(media)
        text = content.text
        preview = text[:max_length] + "..." if len(text) > max_length else text
        return {
            "success": True,
            "preview": preview,
            "fullLength": len(text),
            "extractionSummary": summary,
        }

    # Reads

    async def get_evaluation(self, evaluation_id: int) -> Dict[str, Any]:
        evaluation = await self.evaluations.get_or_raise(evaluation_id)
        questions = await self.evaluations.list_questions(evaluation_id)
        return {
            **evaluation.to_dict(),
            "questions": [q.to_dict() for q in questions],
        }

    async def list_for_seance(self, seance_id: int, employe_id: Optional[int] = None) -> List[Dict[str, Any]]:
        evaluations = await self.evaluations.list_for_seance(seance_id)
        items = [evaluation.to_dict() for evaluation in evaluations]
        if employe_id is not None:
            for item in items:
                attempts = await self.attempts.list_for_pair(item["id"], employe_id)
                item["attempts"] = [a.to_dict() for a in attempts]
        return items

    async def list_for_employe(self, employe_id: int) -> List[Dict[str, Any]]:
        return await self.evaluations.list_for_employe(employe_id)

    async def delete_evaluation(self, evaluation_id: int) -> Dict[str, Any]:
        if not await self.evaluations.delete(evaluation_id):
            raise NotFoundError("Evaluation", evaluation_id)
        return {"success": True, "message": "Evaluation deleted"}

    # Attempts

    async def start_attempt(self, evaluation_id: int, employe_id: int) -> Dict[str, Any]:
        await self.evaluations.get_or_raise(evaluation_id)
        await self.employes.get_or_raise(employe_id)

        attempt = await self.attempts.start(evaluation_id, employe_id)
        logger.info(f"Employe {employe_id} started evaluation {evaluation_id} (attempt {attempt.id})")
        return {
            "success": True,
            "attempt_id": attempt.id,
            "message": "Attempt started",
        }

    async def submit_attempt(
        self,
        evaluation_id: int,
        employe_id: int,
        reponses: Mapping[str, Any],
        temps_utilise: int,
    ) -> Dict[str, Any]:
        """
        Grade a submission and record it as the employee's completed attempt.

        Returns:
            {success, attempt_id, score, total_points, pourcentage, message}
        """
        await self.evaluations.get_or_raise(evaluation_id)
        await self.employes.get_or_raise(employe_id)

        questions = await self.evaluations.list_questions(evaluation_id)
        result = score_submission(questions, reponses)

        attempt = await self.attempts.save_completed(
            evaluation_id, employe_id, result, reponses, temps_utilise
        )
        logger.info(
            f"Employe {employe_id} completed evaluation {evaluation_id}: "
            f"{result.score}/{result.total_points} ({display_percentage(result.pourcentage)}%)"
        )
        return {
            "success": True,
            "attempt_id": attempt.id,
            "score": result.score,
            "total_points": result.total_points,
            "pourcentage": display_percentage(result.pourcentage),
            "message": "Evaluation completed",
        }

    async def list_attempts(self, employe_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        return await self.attempts.list_for_employe(employe_id, limit)

    async def attempt_details(self, employe_id: int, attempt_id: int) -> Dict[str, Any]:
        """
        Annotate each question of an attempt with the submitted answer and
        its correctness, graded with the same rule as submissions.

        Raises:
            NotFoundError: If the attempt or its evaluation does not exist
            AuthorizationError: If the attempt belongs to another employee
        """
        attempt = await self.attempts.get_or_raise(attempt_id)
        if attempt.employe_id != employe_id:
            raise AuthorizationError("Access denied", resource=f"attempt:{attempt_id}")

        evaluation = await self.evaluations.get_or_raise(attempt.evaluation_id)
        questions = await self.evaluations.list_questions(evaluation.id)
        reponses = attempt.reponses or {}

        annotated = []
        for question in questions:
            user_answer = lookup_answer(reponses, question.id)
            graded = grade_answer(question, user_answer)
            annotated.append({
                **question.to_dict(),
                "user_answer": user_answer,
                "is_correct": graded.is_correct,
                "points_awarded": graded.points_awarded,
            })

        return {
            "attempt": {
                **attempt.to_dict(),
                "evaluation_titre": evaluation.titre,
                "evaluation_description": evaluation.description,
            },
            "questions": annotated,
            "summary": {
                "total_questions": len(questions),
                "correct_answers": sum(1 for q in annotated if q["is_correct"]),
                "score": attempt.score,
                "total_points": attempt.total_points,
                "pourcentage": display_percentage(attempt.pourcentage),
                "temps_utilise": attempt.temps_utilise,
            },
        }

    # Analytics

    async def enterprise_analytics(self, entreprise_id: int) -> Dict[str, Any]:
        entreprise = await self.entreprises.get_or_raise(entreprise_id)
        employees = await self.entreprises.count_employees(entreprise_id)
        attempts = await self.attempts.list_for_entreprise(entreprise_id)
        return {
            "entreprise": {
                "id": entreprise.id,
                "nom": entreprise.raison_sociale,
                "email": entreprise.email,
                "employees": employees,
            },
            "attempts": attempts,
            "statistics": calculate_evaluation_stats(attempts),
        }

    async def admin_analytics(
        self,
        entreprise_id: Optional[int] = None,
        formation_id: Optional[int] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        attempts = await self.attempts.list_all(entreprise_id, formation_id, limit)
        return {
            "attempts": attempts,
            "statistics": calculate_evaluation_stats(attempts),
            "enterpriseBreakdown": calculate_enterprise_stats(attempts),
        }
