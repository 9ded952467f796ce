"""
QPaperHub Backend — Saved-Collections SQLAlchemy Models
=========================================================

What:  The per-user saved-papers record, its named sub-collections, and the
       paper references inside each sub-collection.
Who:   Owned exclusively by SavedPaperService; no other component reads or
       writes these tables.

Table Design:
    saved_paper_records      one row per user_id (the "record")
    saved_collections        one row per (user_id, collection_name); the
                             autoincrement id preserves creation order
    saved_collection_papers  one row per (collection_id, paper_id)

    The two UNIQUE constraints carry the invariants:
        - sub-collection names are unique within a record
        - a paper reference appears at most once in a sub-collection
    SavedPaperService writes with ON CONFLICT DO NOTHING against them, so
    concurrent saves can never create duplicates.

    paper_id is an opaque string with no foreign key to papers: deleting a
    paper leaves dangling references in place.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedPaperRecord(Base):
    """A user's saved-papers record. Created lazily, never deleted."""

    __tablename__ = "saved_paper_records"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<SavedPaperRecord(user_id='{self.user_id}')>"


class SavedCollection(Base):
    """A named bucket of paper references inside one record."""

    __tablename__ = "saved_collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("saved_paper_records.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    collection_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "collection_name", name="uq_saved_collections_user_name"),
    )

    def __repr__(self) -> str:
        return f"<SavedCollection(user_id='{self.user_id}', name='{self.collection_name}')>"


class SavedCollectionPaper(Base):
    """One paper reference in a sub-collection."""

    __tablename__ = "saved_collection_papers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("saved_collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    paper_id: Mapped[str] = mapped_column(String(255), nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint("collection_id", "paper_id", name="uq_saved_collection_papers_ref"),
    )
