"""
SQLAlchemy ORM models for evaluations.

This module defines the database models for AI-generated quizzes:
- Evaluation: a quiz attached to one session
- EvaluationQuestion: one quiz item, immutable after creation
- EvaluationAttempt: one employee's attempt at a quiz
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON,
    String, Text, text,
)

from formapro.database.base import ModelBase, utcnow


class Evaluation(ModelBase):
    """
    Quiz generated from the documents of a session.

    Never mutated after creation; deleting it removes its questions and
    attempts.
    """

    __tablename__ = 'evaluations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    seance_id = Column(
        Integer, ForeignKey('seances.id', ondelete='CASCADE'), nullable=False, index=True
    )
    employe_id = Column(
        Integer, ForeignKey('employes.id', ondelete='CASCADE'), nullable=True, index=True
    )
    titre = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    nombre_questions = Column(Integer, nullable=False, default=20)
    duree_minutes = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class EvaluationQuestion(ModelBase):
    """Quiz item; ``options`` and ``correct_answers`` are empty for text questions."""

    __tablename__ = 'evaluation_questions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    evaluation_id = Column(
        Integer, ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False, index=True
    )
    question = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answers = Column(JSON, nullable=False, default=list)
    points = Column(Float, nullable=False, default=1)
    ordre = Column(Integer, nullable=False)
    explanation = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('idx_evaluation_questions_order', evaluation_id, ordre),
    )


class EvaluationAttempt(ModelBase):
    """
    One employee's attempt at an evaluation.

    At most one completed attempt exists per (evaluation, employee) pair;
    the partial unique index enforces it.
    """

    __tablename__ = 'evaluation_attempts'

    id = Column(Integer, primary_key=True, autoincrement=True)
    evaluation_id = Column(
        Integer, ForeignKey('evaluations.id', ondelete='CASCADE'), nullable=False, index=True
    )
    employe_id = Column(
        Integer, ForeignKey('employes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    score = Column(Float, nullable=False, default=0)
    total_points = Column(Float, nullable=False, default=0)
    pourcentage = Column(Float, nullable=False, default=0)
    reponses = Column(JSON, nullable=False, default=dict)
    temps_utilise = Column(Integer, nullable=True)
    termine = Column(Boolean, nullable=False, default=False)
    date_debut = Column(DateTime, default=utcnow, nullable=False)
    date_fin = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index(
            'uq_evaluation_attempts_completed',
            evaluation_id,
            employe_id,
            unique=True,
            sqlite_where=text('termine = 1'),
            postgresql_where=text('termine'),
        ),
    )
