"""
Shared fixtures for PawMatch tests.
Each test gets a fresh in-memory SQLite database.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pawmatch.db.animal_store import AnimalStore
from pawmatch.db.match_store import MatchStore
from pawmatch.db.tables import init_db
from pawmatch.db.transaction import TransactionScope
from pawmatch.schemas.animal_data import AnimalCreate, AnimalUpdate, Sex
from pawmatch.services.animal_service import AnimalService
from pawmatch.services.match_engine import MatchEngine


@pytest.fixture
def db_engine():
    """Create an in-memory database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def scope(db_engine):
    return TransactionScope(db_engine)


@pytest.fixture
def animal_store():
    return AnimalStore()


@pytest.fixture
def match_store():
    return MatchStore()


@pytest.fixture
def animal_service(animal_store, scope):
    return AnimalService(animal_store, scope)


@pytest.fixture
def match_engine(animal_store, match_store, scope):
    return MatchEngine(animal_store, match_store, scope)


@pytest.fixture
def make_animal(animal_service):
    """Factory that lists an animal for an owner."""
    def _make(owner_id: str, sex: Sex, name: str = "Mochi"):
        return animal_service.create_animal(
            owner_id,
            AnimalCreate(
                name=name,
                breed="Ragdoll",
                sex=sex,
                age_in_months=14,
                description="Calm and affectionate",
                image_urls=["https://example.com/photos/mochi.jpg"],
            ),
        )
    return _make


@pytest.fixture
def fetch_animal(scope, animal_store):
    """Read an animal straight from the store, including soft-deleted ones."""
    def _fetch(animal_id: int):
        found = scope.read(
            "test fetch animal",
            lambda conn: animal_store.get_by_ids(conn, [animal_id], include_deleted=True),
        )
        return found[0]
    return _fetch


@pytest.fixture
def fetch_match(scope, match_store):
    """Read a proposal straight from the store."""
    def _fetch(match_id: int):
        return scope.read("test fetch match", lambda conn: match_store.get_by_id(conn, match_id))
    return _fetch


@pytest.fixture
def set_animal_fields(scope, animal_store):
    """Write animal fields directly, bypassing the service layer."""
    def _set(animal_id: int, **fields):
        scope.run(
            "test set animal",
            lambda tx: animal_store.update(tx, AnimalUpdate(ids=[animal_id], **fields)),
        )
    return _set
