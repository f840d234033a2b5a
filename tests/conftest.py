import os

os.environ["ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["ENABLE_REQUEST_LOGGING"] = "false"
os.environ["SEED_ON_STARTUP"] = "false"

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import models
from core.config import Settings
from core.database import Base, enable_sqlite_foreign_keys
from scripts.seed_quiz import build_procedures, build_questions


@pytest.fixture
def db_url(tmp_path):
    """Async URL of a temporary SQLite database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test_dentalogix.db'}"


@pytest.fixture
def sync_session_factory(db_url):
    engine = create_engine(db_url.replace("sqlite+aiosqlite", "sqlite"))
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def seeded(sync_session_factory):
    """Default questions and procedures loaded into the temporary database."""
    with sync_session_factory() as db:
        db.add_all(build_procedures())
        db.add_all(build_questions())
        db.commit()
    return sync_session_factory


@pytest.fixture
def bank(seeded):
    """Question and option ids of the seeded bank, by question category and option label."""
    result = {}
    with seeded() as db:
        for question in db.scalars(select(models.QuizQuestion)).all():
            result[question.category] = {
                "id": question.id,
                "options": {option.label: option.id for option in question.options},
            }
    return result


@pytest.fixture
def async_session_factory(db_url, sync_session_factory):
    engine = create_async_engine(db_url, poolclass=NullPool)
    enable_sqlite_foreign_keys(engine.sync_engine)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(async_session_factory):
    async with async_session_factory() as s:
        yield s


@pytest.fixture
def config():
    return Settings(
        _env_file=None,
        MAILGUN_API_KEY="key-test",
        MAILGUN_API_URL="https://mail.test/v3/messages",
        MAIL_FROM="hello@dentalogix.test",
        NOTIFICATION_EMAIL="front-desk@dentalogix.test",
        SITE_URL="https://dentalogix.test",
    )
