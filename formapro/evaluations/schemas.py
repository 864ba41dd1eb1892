"""
Evaluation API request models.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from formapro.config import settings


class CreateEvaluationRequest(BaseModel):
    seance_id: int = Field(..., ge=1, description="Session whose documents feed the quiz")
    employe_id: int = Field(..., ge=1, description="Employee the evaluation is created for")
    titre: str = Field(..., min_length=1, description="Evaluation title")
    description: Optional[str] = Field(None, description="Evaluation description")
    nombre_questions: Optional[int] = Field(None, ge=1, le=settings.MAX_QUESTIONS, description="Number of questions")
    duree_minutes: Optional[int] = Field(None, ge=5, le=120, description="Time limit in minutes")

    @field_validator("titre")
    @classmethod
    def titre_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class StartAttemptRequest(BaseModel):
    employe_id: int = Field(..., ge=1, description="Employee starting the attempt")


class SubmitAttemptRequest(BaseModel):
    employe_id: int = Field(..., ge=1, description="Employee submitting the attempt")
    reponses: Dict[str, Any] = Field(..., description="Answers keyed by question id")
    temps_utilise: int = Field(..., ge=0, description="Elapsed time in seconds")
