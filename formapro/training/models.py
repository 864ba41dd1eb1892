"""
SQLAlchemy ORM models for the training domain.

This module defines the tables the evaluation subsystem reads from:
- Entreprise: a tenant company
- Employe: an employee of a company
- Formation: a training program
- Seance: a scheduled session of a formation
- Groupe: a cohort inside a session
- Participant: an employee enrolled in a groupe, with an attendance flag
- SeanceMedia: a document uploaded for a session
"""

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint,
)

from formapro.database.base import ModelBase, utcnow


class Entreprise(ModelBase):
    """Tenant company."""

    __tablename__ = 'entreprises'
    __private_columns__ = ('password_hash', 'password_salt')

    id = Column(Integer, primary_key=True, autoincrement=True)
    raison_sociale = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    telephone = Column(String(50), nullable=True)
    adresse = Column(Text, nullable=True)
    password_hash = Column(String(128), nullable=True)
    password_salt = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Employe(ModelBase):
    """Employee of a company."""

    __tablename__ = 'employes'
    __private_columns__ = ('password_hash', 'password_salt')

    id = Column(Integer, primary_key=True, autoincrement=True)
    entreprise_id = Column(
        Integer, ForeignKey('entreprises.id', ondelete='CASCADE'), nullable=False, index=True
    )
    nom = Column(String(255), nullable=False)
    prenom = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    fonction = Column(String(255), nullable=True)
    telephone = Column(String(50), nullable=True)
    password_hash = Column(String(128), nullable=True)
    password_salt = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Formation(ModelBase):
    __tablename__ = 'formations'

    id = Column(Integer, primary_key=True, autoincrement=True)
    intitule = Column(String(255), nullable=False)
    cible = Column(Text, nullable=True)
    objectifs_pedagogiques = Column(Text, nullable=True)
    duree = Column(Integer, nullable=True)
    prix = Column(Float, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Seance(ModelBase):
    __tablename__ = 'seances'

    id = Column(Integer, primary_key=True, autoincrement=True)
    formation_id = Column(
        Integer, ForeignKey('formations.id', ondelete='CASCADE'), nullable=False, index=True
    )
    description = Column(Text, nullable=True)
    duree = Column(Integer, nullable=True)
    lieu = Column(String(255), nullable=True)
    date_debut = Column(DateTime, nullable=True)
    date_fin = Column(DateTime, nullable=True)
    capacite_max = Column(Integer, nullable=True)
    statut = Column(String(50), nullable=False, default='planifiee')
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Groupe(ModelBase):
    __tablename__ = 'groupes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    seance_id = Column(
        Integer, ForeignKey('seances.id', ondelete='CASCADE'), nullable=False, index=True
    )
    libelle = Column(String(255), nullable=False)
    capacite_max = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Participant(ModelBase):
    """Enrollment of an employee in a groupe."""

    __tablename__ = 'participants'

    id = Column(Integer, primary_key=True, autoincrement=True)
    employe_id = Column(
        Integer, ForeignKey('employes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    groupe_id = Column(
        Integer, ForeignKey('groupes.id', ondelete='CASCADE'), nullable=False, index=True
    )
    present = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('employe_id', 'groupe_id', name='uq_participants_employe_groupe'),
    )


class SeanceMedia(ModelBase):
    """Document uploaded for a session; ``file_path`` points into the upload root."""

    __tablename__ = 'seance_media'

    id = Column(Integer, primary_key=True, autoincrement=True)
    seance_id = Column(
        Integer, ForeignKey('seances.id', ondelete='CASCADE'), nullable=False, index=True
    )
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_type = Column(String(50), nullable=True)
    mime_type = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    file_path = Column(String(1024), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
