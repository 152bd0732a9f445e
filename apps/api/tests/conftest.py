import os
import tempfile

# Point the app at a throwaway database and keep extraction offline before anything imports settings.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="branddna-tests-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TEST_DB_DIR}/app.db"
os.environ["OPENROUTER_API_KEY"] = ""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from branddna_api import models  # noqa: F401
from branddna_api.config import Settings
from branddna_api.database import Base
from branddna_api.services.profiles import ProfileService
from fakes import FakeExtractor


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path}/profiles.db",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def service(extractor):
    return ProfileService(settings=Settings(), extractor=extractor)
