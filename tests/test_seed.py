from sqlalchemy import func, select

from models.quiz import DentalProcedure, QuizOption, QuizQuestion
from scripts import seed_quiz as seed_module
from scripts.seed_quiz import DEFAULT_PROCEDURES, DEFAULT_QUESTIONS, build_procedures, seed_quiz


async def test_seed_fills_empty_database(session, sync_session_factory):
    seeded = await seed_quiz(session)
    assert seeded == {"questions": 8, "procedures": 12}

    with sync_session_factory() as db:
        assert db.scalar(select(func.count()).select_from(QuizQuestion)) == len(DEFAULT_QUESTIONS)
        assert db.scalar(select(func.count()).select_from(QuizOption)) == 35
        assert db.scalar(select(func.count()).select_from(DentalProcedure)) == len(DEFAULT_PROCEDURES)


async def test_seed_is_idempotent(session):
    await seed_quiz(session)
    assert await seed_quiz(session) == {"questions": 0, "procedures": 0}


def test_default_content_is_consistent():
    keys = [p["key"] for p in DEFAULT_PROCEDURES]
    assert len(keys) == len(set(keys))
    multi = [q["category"] for q in DEFAULT_QUESTIONS if q["is_multi_select"]]
    assert multi == ["concerns"]


async def test_concurrent_seed_rolls_back_whole(session, sync_session_factory, monkeypatch):
    def procedures_after_another_worker():
        # another process commits the catalog between our counts and our commit
        with sync_session_factory() as db:
            db.add_all(build_procedures())
            db.commit()
        return build_procedures()

    monkeypatch.setattr(seed_module, "build_procedures", procedures_after_another_worker)

    assert await seed_quiz(session) == {"questions": 0, "procedures": 0}

    with sync_session_factory() as db:
        assert db.scalar(select(func.count()).select_from(DentalProcedure)) == len(DEFAULT_PROCEDURES)
        assert db.scalar(select(func.count()).select_from(QuizQuestion)) == 0
