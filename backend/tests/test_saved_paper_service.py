"""
QPaperHub Backend — Saved-Papers Service Tests
================================================

What:  Tests for SavedPaperService against a real (SQLite) database.
How:   Each test gets a fresh database from the `db_session` fixture, so the
       ON CONFLICT statements and unique constraints are exercised for real.

Test Strategy:
    ✅ save is idempotent (set semantics per collection)
    ✅ unsave of an absent reference is a no-op
    ✅ collections are independent and keep creation order
    ✅ NotFoundError for unknown users and collections
    ✅ ValidationError for missing, blank or over-long fields
    ✅ concurrent first saves leave one record, collection and reference
    ✅ timestamps come back as UTC regardless of dialect
    ✅ database failures and timeouts surface as PersistenceError
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.database import guarded
from app.exceptions import NotFoundError, PersistenceError, ValidationError
from app.models.saved_paper import SavedCollection, SavedCollectionPaper, SavedPaperRecord
from app.services.saved_paper_service import MAX_FIELD_LENGTH, SavedPaperService


@pytest.fixture
def service():
    return SavedPaperService()


def as_dict(collections):
    return {c.collection_name: c.papers for c in collections}


class TestSave:

    @pytest.mark.asyncio
    async def test_first_save_creates_record_and_collection(self, service, db_session):
        record = await service.save(db_session, "u1", "finals", "p1")

        assert record.user_id == "u1"
        assert len(record.saved_papers) == 1
        assert record.saved_papers[0].collection_name == "finals"
        assert record.saved_papers[0].papers == ["p1"]
        assert record.created_at is not None
        assert record.updated_at is not None

    @pytest.mark.asyncio
    async def test_save_twice_keeps_single_reference(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        record = await service.save(db_session, "u1", "finals", "p1")

        assert record.saved_papers[0].papers == ["p1"]
        count = await db_session.scalar(select(func.count()).select_from(SavedCollectionPaper))
        assert count == 1

    @pytest.mark.asyncio
    async def test_save_appends_in_order(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        await service.save(db_session, "u1", "finals", "p2")
        record = await service.save(db_session, "u1", "finals", "p3")

        assert record.saved_papers[0].papers == ["p1", "p2", "p3"]

    @pytest.mark.asyncio
    async def test_two_collection_names_are_independent(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        record = await service.save(db_session, "u1", "midterms", "p2")

        assert [c.collection_name for c in record.saved_papers] == ["finals", "midterms"]
        assert as_dict(record.saved_papers) == {"finals": ["p1"], "midterms": ["p2"]}

    @pytest.mark.asyncio
    async def test_users_do_not_share_collections(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        record = await service.save(db_session, "u2", "finals", "p9")

        assert as_dict(record.saved_papers) == {"finals": ["p9"]}
        records = await db_session.scalar(select(func.count()).select_from(SavedPaperRecord))
        collections = await db_session.scalar(select(func.count()).select_from(SavedCollection))
        assert records == 2
        assert collections == 2

    @pytest.mark.asyncio
    async def test_fields_are_stripped(self, service, db_session):
        record = await service.save(db_session, "  u1 ", " finals ", " p1")

        assert record.user_id == "u1"
        assert as_dict(record.saved_papers) == {"finals": ["p1"]}

    @pytest.mark.asyncio
    async def test_repeat_save_keeps_created_at(self, service, db_session):
        first = await service.save(db_session, "u1", "finals", "p1")
        second = await service.save(db_session, "u1", "finals", "p1")

        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id, collection_name, paper_id, missing",
        [
            (None, "finals", "p1", "user_id"),
            ("u1", None, "p1", "collection_name"),
            ("u1", "finals", None, "paper_id"),
            ("u1", "   ", "p1", "collection_name"),
            ("", "", "", "user_id"),
        ],
    )
    async def test_missing_fields_rejected(
        self, service, db_session, user_id, collection_name, paper_id, missing,
    ):
        with pytest.raises(ValidationError) as exc_info:
            await service.save(db_session, user_id, collection_name, paper_id)

        assert exc_info.value.field == missing
        assert "Missing required fields" in exc_info.value.message
        count = await db_session.scalar(select(func.count()).select_from(SavedPaperRecord))
        assert count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["user_id", "collection_name", "paper_id"])
    async def test_over_long_field_rejected(self, service, db_session, field):
        args = {"user_id": "u1", "collection_name": "finals", "paper_id": "p1"}
        args[field] = "x" * (MAX_FIELD_LENGTH + 1)

        with pytest.raises(ValidationError) as exc_info:
            await service.save(db_session, **args)

        assert exc_info.value.field == field
        count = await db_session.scalar(select(func.count()).select_from(SavedPaperRecord))
        assert count == 0

    @pytest.mark.asyncio
    async def test_field_at_column_width_accepted(self, service, db_session):
        paper_id = "p" * MAX_FIELD_LENGTH

        record = await service.save(db_session, "u1", "finals", paper_id)

        assert record.saved_papers[0].papers == [paper_id]

    @pytest.mark.asyncio
    async def test_timestamps_are_utc(self, service, db_session):
        record = await service.save(db_session, "u1", "finals", "p1")

        assert record.created_at.utcoffset() == timedelta(0)
        assert record.updated_at.utcoffset() == timedelta(0)


class TestUnsave:

    @pytest.mark.asyncio
    async def test_unsave_removes_reference_and_keeps_collection(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        collections = await service.unsave(db_session, "u1", "finals", "p1")

        assert as_dict(collections) == {"finals": []}

    @pytest.mark.asyncio
    async def test_unsave_twice_is_noop(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        await service.save(db_session, "u1", "finals", "p2")

        first = await service.unsave(db_session, "u1", "finals", "p1")
        second = await service.unsave(db_session, "u1", "finals", "p1")

        assert as_dict(first) == {"finals": ["p2"]}
        assert as_dict(second) == {"finals": ["p2"]}

    @pytest.mark.asyncio
    async def test_unsave_leaves_other_collections_alone(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        await service.save(db_session, "u1", "midterms", "p1")

        collections = await service.unsave(db_session, "u1", "finals", "p1")

        assert as_dict(collections) == {"finals": [], "midterms": ["p1"]}

    @pytest.mark.asyncio
    async def test_unknown_user_raises_not_found(self, service, db_session):
        with pytest.raises(NotFoundError, match="No saved papers found"):
            await service.unsave(db_session, "nobody", "finals", "p1")

    @pytest.mark.asyncio
    async def test_unknown_collection_raises_not_found(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")

        with pytest.raises(NotFoundError) as exc_info:
            await service.unsave(db_session, "u1", "quizzes", "p1")

        assert "quizzes" in exc_info.value.message
        assert exc_info.value.resource == "collection"

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, service, db_session):
        with pytest.raises(ValidationError):
            await service.unsave(db_session, "u1", "finals", "")


class TestListCollections:

    @pytest.mark.asyncio
    async def test_list_after_single_save(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")

        collections = await service.list_collections(db_session, "u1")

        assert len(collections) == 1
        assert collections[0].collection_name == "finals"
        assert collections[0].papers == ["p1"]

    @pytest.mark.asyncio
    async def test_list_unknown_user_raises_not_found(self, service, db_session):
        with pytest.raises(NotFoundError):
            await service.list_collections(db_session, "nobody")

    @pytest.mark.asyncio
    async def test_list_blank_user_rejected(self, service, db_session):
        with pytest.raises(ValidationError):
            await service.list_collections(db_session, "  ")


class TestScenario:

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, service, db_session):
        await service.save(db_session, "u1", "finals", "p1")
        unchanged = await service.save(db_session, "u1", "finals", "p1")
        assert as_dict(unchanged.saved_papers) == {"finals": ["p1"]}

        record = await service.save(db_session, "u1", "midterms", "p2")
        assert as_dict(record.saved_papers) == {"finals": ["p1"], "midterms": ["p2"]}

        collections = await service.unsave(db_session, "u1", "finals", "p1")
        assert as_dict(collections) == {"finals": [], "midterms": ["p2"]}

        with pytest.raises(NotFoundError):
            await service.unsave(db_session, "u2", "finals", "p1")


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_first_saves_create_one_of_each(self, service, database):
        async def save_in_own_session():
            async with database.session() as session:
                record = await service.save(session, "u1", "finals", "p1")
                await session.commit()
                return record

        results = await asyncio.gather(*(save_in_own_session() for _ in range(8)))

        assert all(r.saved_papers[0].papers == ["p1"] for r in results)
        async with database.session() as session:
            counts = [
                await session.scalar(select(func.count()).select_from(model))
                for model in (SavedPaperRecord, SavedCollection, SavedCollectionPaper)
            ]
        assert counts == [1, 1, 1]


class TestPersistenceGuard:

    @pytest.mark.asyncio
    async def test_driver_error_becomes_persistence_error(self, service):
        session = MagicMock()
        session.bind.dialect.name = "sqlite"
        session.execute = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")))

        with pytest.raises(PersistenceError) as exc_info:
            await service.save(session, "u1", "finals", "p1")

        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_unsupported_dialect_rejected(self, service):
        session = MagicMock()
        session.bind.dialect.name = "oracle"

        with pytest.raises(PersistenceError) as exc_info:
            await service.save(session, "u1", "finals", "p1")

        assert exc_info.value.context["dialect"] == "oracle"

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        async def stalled():
            await asyncio.sleep(5)

        with pytest.raises(PersistenceError) as exc_info:
            await guarded(stalled(), "stalled write", timeout=0.01)

        assert exc_info.value.retryable is True
        assert exc_info.value.context["operation"] == "stalled write"

    @pytest.mark.asyncio
    async def test_application_errors_pass_through(self):
        async def failing():
            raise NotFoundError(resource="collection")

        with pytest.raises(NotFoundError):
            await guarded(failing(), "lookup")
