"""
Shared fixtures: an in-memory database per test, seeded training data,
fake extraction/generation capabilities and an HTTP client bound to the app.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from formapro.common.auth import hash_password
from formapro.common.db.session import session_factory
from formapro.common.rate_limiter import RateLimiter
from formapro.database.init_db import close_database, get_session_factory, initialize_database
from formapro.evaluations.extraction import TEXT_MIME
from formapro.evaluations.router import get_document_extractor, get_question_generator
from formapro.main import create_app
from formapro.tests.helpers import LONG_TEXT, FakeExtractor, FakeGenerator, add_rows
from formapro.training.models import (
    Employe,
    Entreprise,
    Formation,
    Groupe,
    Participant,
    Seance,
    SeanceMedia,
)


@pytest_asyncio.fixture
async def db():
    """Session factory over a fresh in-memory database."""
    await initialize_database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield get_session_factory()
    await close_database()


@pytest_asyncio.fixture
async def seed(db):
    """
    One company with two employees, a training session with one text
    document, and a cohort with both employees enrolled.
    """
    password, salt = hash_password("secret123")
    entreprise = Entreprise(
        raison_sociale="Acme", email="contact@acme.test",
        password_hash=password, password_salt=salt,
    )
    await add_rows(db, entreprise)

    alice = Employe(
        entreprise_id=entreprise.id, nom="Martin", prenom="Alice", email="alice@acme.test",
        password_hash=password, password_salt=salt,
    )
    bob = Employe(entreprise_id=entreprise.id, nom="Durand", prenom="Bob", email="bob@acme.test")
    formation = Formation(intitule="Safety basics")
    await add_rows(db, alice, bob, formation)

    seance = Seance(formation_id=formation.id, description="Morning session")
    await add_rows(db, seance)

    media = SeanceMedia(
        seance_id=seance.id, filename="safety.txt", original_name="safety.txt",
        file_type="document", mime_type=TEXT_MIME, file_size=len(LONG_TEXT),
        file_path="seances/safety.txt",
    )
    groupe = Groupe(seance_id=seance.id, libelle="Group A")
    await add_rows(db, media, groupe)

    first = Participant(employe_id=alice.id, groupe_id=groupe.id)
    second = Participant(employe_id=bob.id, groupe_id=groupe.id)
    await add_rows(db, first, second)

    return {
        "entreprise": entreprise,
        "alice": alice,
        "bob": bob,
        "formation": formation,
        "seance": seance,
        "media": media,
        "participants": [first, second],
    }


@pytest.fixture
def extractor():
    return FakeExtractor({"seances/safety.txt": LONG_TEXT})


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def app(db, extractor, generator):
    """Application wired to the test database and fake capabilities."""
    app = create_app(limiter=RateLimiter())
    app.dependency_overrides[session_factory] = lambda: db
    app.dependency_overrides[get_document_extractor] = lambda: extractor
    app.dependency_overrides[get_question_generator] = lambda: generator
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
