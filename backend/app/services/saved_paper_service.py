"""
QPaperHub Backend — Saved-Papers Service
==========================================

What:  Per-user named collections of paper references with idempotent add and
       remove.
Who:   Called by the /api/save-paper, /api/unsave-paper and
       /api/saved-papers/{user_id} route handlers.

Data Shape (as returned to clients):
    {
        "user_id": "u1",
        "saved_papers": [
            {"collection_name": "finals",   "papers": ["p1"]},
            {"collection_name": "midterms", "papers": ["p2"]}
        ],
        "created_at": ..., "updated_at": ...
    }

Write Strategy (save):
    One transaction, three conditional writes, one commit:

        INSERT record      ON CONFLICT (user_id) DO UPDATE SET updated_at
        INSERT collection  ON CONFLICT (user_id, collection_name) DO NOTHING
        INSERT reference   ON CONFLICT (collection_id, paper_id) DO NOTHING

    The unique constraints decide "already there", not a prior read, so two
    concurrent saves for the same new user and collection converge on a
    single record, a single collection and a single reference.

State Machine (per user):
    ABSENT ──save──▶ ONE COLLECTION ──save(new name)──▶ MANY COLLECTIONS
    No operation deletes the record; removing the last reference leaves an
    empty collection in place.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import guarded
from app.exceptions import NotFoundError, PersistenceError, ValidationError
from app.models.saved_paper import SavedCollection, SavedCollectionPaper, SavedPaperRecord
from app.schemas.saved_paper import SavedCollectionResponse, SavedRecordResponse

logger = logging.getLogger(__name__)

# Dialects that support INSERT ... ON CONFLICT
_UPSERT_INSERTS: Dict[str, Callable] = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}

# Width of the user_id, collection_name and paper_id columns
MAX_FIELD_LENGTH = 255


def _require(**fields: Optional[str]) -> Dict[str, str]:
    """
    Strip each field and reject missing, blank or over-long ones.

    Returns the stripped values keyed by field name.
    Raises ValidationError listing every missing field, or naming the first
    field longer than MAX_FIELD_LENGTH.
    """
    cleaned: Dict[str, str] = {}
    missing: List[str] = []
    for name, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
        else:
            cleaned[name] = value.strip()
    if missing:
        raise ValidationError(
            message=f"Missing required fields: {', '.join(missing)}",
            field=missing[0],
            context={"missing": missing},
        )
    for name, value in cleaned.items():
        if len(value) > MAX_FIELD_LENGTH:
            raise ValidationError(
                message=f"{name} must be at most {MAX_FIELD_LENGTH} characters.",
                field=name,
                context={"max_length": MAX_FIELD_LENGTH, "length": len(value)},
            )
    return cleaned


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were written as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SavedPaperService:
    """
    Business logic for saved-paper collections.

    Responsibilities:
        - save():             add a reference, creating record/collection on demand
        - unsave():           remove a reference from an existing collection
        - list_collections(): the user's ordered collections

    Every database round trip runs under `guarded()`, which applies the
    configured timeout and converts driver errors into PersistenceError.
    """

    # ── Public operations ─────────────────────────────────────────────────

    async def save(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        collection_name: Optional[str],
        paper_id: Optional[str],
    ) -> SavedRecordResponse:
        """
        Add `paper_id` to the user's `collection_name`, with set semantics.

        Returns:
            The full record after the write.

        Raises:
            ValidationError: any argument missing or blank
            PersistenceError: database failure or timeout
        """
        args = _require(user_id=user_id, collection_name=collection_name, paper_id=paper_id)
        record = await guarded(
            self._save(db, args["user_id"], args["collection_name"], args["paper_id"]),
            "save paper",
        )
        logger.info(
            "Saved paper %s to collection '%s' for user %s",
            args["paper_id"], args["collection_name"], args["user_id"],
        )
        return record

    async def unsave(
        self,
        db: AsyncSession,
        user_id: Optional[str],
        collection_name: Optional[str],
        paper_id: Optional[str],
    ) -> List[SavedCollectionResponse]:
        """
        Remove `paper_id` from the user's `collection_name`.

        Removing a reference that is not present is a no-op.

        Returns:
            The user's collections after the write.

        Raises:
            ValidationError: any argument missing or blank
            NotFoundError: no record for the user, or no such collection
            PersistenceError: database failure or timeout
        """
        args = _require(user_id=user_id, collection_name=collection_name, paper_id=paper_id)
        collections = await guarded(
            self._unsave(db, args["user_id"], args["collection_name"], args["paper_id"]),
            "unsave paper",
        )
        logger.info(
            "Removed paper %s from collection '%s' for user %s",
            args["paper_id"], args["collection_name"], args["user_id"],
        )
        return collections

    async def list_collections(
        self,
        db: AsyncSession,
        user_id: Optional[str],
    ) -> List[SavedCollectionResponse]:
        """
        Return the user's collections in creation order.

        Raises:
            ValidationError: user_id missing or blank
            NotFoundError: no record for the user
        """
        args = _require(user_id=user_id)
        return await guarded(self._list(db, args["user_id"]), "list saved papers")

    # ── Transaction bodies ────────────────────────────────────────────────

    async def _save(
        self, db: AsyncSession, user_id: str, collection_name: str, paper_id: str,
    ) -> SavedRecordResponse:
        insert = self._insert_for(db)
        now = datetime.now(timezone.utc)

        await db.execute(
            insert(SavedPaperRecord)
            .values(user_id=user_id, created_at=now, updated_at=now)
            .on_conflict_do_update(
                index_elements=["user_id"],
                set_={"updated_at": now},
            )
        )
        await db.execute(
            insert(SavedCollection)
            .values(user_id=user_id, collection_name=collection_name, created_at=now)
            .on_conflict_do_nothing(
                index_elements=["user_id", "collection_name"],
            )
        )
        collection_id = await self._collection_id(db, user_id, collection_name)
        await db.execute(
            insert(SavedCollectionPaper)
            .values(collection_id=collection_id, paper_id=paper_id, added_at=now)
            .on_conflict_do_nothing(
                index_elements=["collection_id", "paper_id"],
            )
        )

        record = await self._load_record(db, user_id)
        await db.commit()
        return record

    async def _unsave(
        self, db: AsyncSession, user_id: str, collection_name: str, paper_id: str,
    ) -> List[SavedCollectionResponse]:
        if not await self._record_exists(db, user_id):
            raise NotFoundError(
                resource="saved papers record",
                resource_id=user_id,
                message="No saved papers found for this user.",
            )

        collection_id = await self._collection_id(db, user_id, collection_name)
        if collection_id is None:
            raise NotFoundError(
                resource="collection",
                resource_id=collection_name,
                message=f"Collection '{collection_name}' not found for this user.",
            )

        await db.execute(
            delete(SavedCollectionPaper).where(
                SavedCollectionPaper.collection_id == collection_id,
                SavedCollectionPaper.paper_id == paper_id,
            )
        )
        await db.execute(
            update(SavedPaperRecord)
            .where(SavedPaperRecord.user_id == user_id)
            .values(updated_at=datetime.now(timezone.utc))
        )

        collections = await self._load_collections(db, user_id)
        await db.commit()
        return collections

    async def _list(self, db: AsyncSession, user_id: str) -> List[SavedCollectionResponse]:
        if not await self._record_exists(db, user_id):
            raise NotFoundError(
                resource="saved papers record",
                resource_id=user_id,
                message="No saved papers found for this user.",
            )
        return await self._load_collections(db, user_id)

    # ── Queries ───────────────────────────────────────────────────────────

    @staticmethod
    def _insert_for(db: AsyncSession) -> Callable:
        dialect = db.bind.dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise PersistenceError(
                message="Saving papers is not supported by the configured database.",
                context={"dialect": dialect},
            )

    @staticmethod
    async def _record_exists(db: AsyncSession, user_id: str) -> bool:
        result = await db.execute(
            select(SavedPaperRecord.user_id).where(SavedPaperRecord.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _collection_id(
        db: AsyncSession, user_id: str, collection_name: str,
    ) -> Optional[int]:
        result = await db.execute(
            select(SavedCollection.id).where(
                SavedCollection.user_id == user_id,
                SavedCollection.collection_name == collection_name,
            )
        )
        return result.scalar_one_or_none()

    async def _load_record(self, db: AsyncSession, user_id: str) -> SavedRecordResponse:
        # Column select bypasses the identity map, so updated_at is current
        result = await db.execute(
            select(SavedPaperRecord.created_at, SavedPaperRecord.updated_at)
            .where(SavedPaperRecord.user_id == user_id)
        )
        created_at, updated_at = result.one()
        return SavedRecordResponse(
            user_id=user_id,
            saved_papers=await self._load_collections(db, user_id),
            created_at=_as_utc(created_at),
            updated_at=_as_utc(updated_at),
        )

    @staticmethod
    async def _load_collections(
        db: AsyncSession, user_id: str,
    ) -> List[SavedCollectionResponse]:
        collection_rows = (
            await db.execute(
                select(SavedCollection.id, SavedCollection.collection_name)
                .where(SavedCollection.user_id == user_id)
                .order_by(SavedCollection.id)
            )
        ).all()

        papers: Dict[int, List[str]] = {row.id: [] for row in collection_rows}
        if papers:
            reference_rows = await db.execute(
                select(SavedCollectionPaper.collection_id, SavedCollectionPaper.paper_id)
                .where(SavedCollectionPaper.collection_id.in_(list(papers)))
                .order_by(SavedCollectionPaper.id)
            )
            for collection_id, paper_id in reference_rows:
                papers[collection_id].append(paper_id)

        return [
            SavedCollectionResponse(collection_name=row.collection_name, papers=papers[row.id])
            for row in collection_rows
        ]


# ── Singleton Instance ────────────────────────────────────────────────────
saved_paper_service = SavedPaperService()
