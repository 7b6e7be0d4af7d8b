import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import create_db_engine, create_session_factory
from main import create_app


def make_settings(url: str) -> Settings:
    return Settings(
        DATABASE_URL=url,
        PAGE_TITLE="Visit Counter Test Page",
        SCHEMA_RETRY_ATTEMPTS=1,
        SCHEMA_RETRY_WAIT_SECONDS=0,
    )


@pytest.fixture
def settings(tmp_path):
    return make_settings(f"sqlite:///{tmp_path / 'visits.db'}")


@pytest.fixture
def unreachable_settings(tmp_path):
    # le dossier n'existe pas, sqlite ne peut pas ouvrir le fichier
    return make_settings(f"sqlite:///{tmp_path / 'missing' / 'visits.db'}")


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client
