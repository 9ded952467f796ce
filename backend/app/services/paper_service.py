"""
QPaperHub Backend — Paper Service (Upload and Catalog Orchestrator)
=====================================================================

What:  Upload → validate → store → publish → persist workflow, plus the
       lookup, edit and delete operations on paper metadata.
Who:   Called by the papers router; uses FileService for validation and the
       ObjectStore injected per call for file hosting.

Orchestration Flow (POST /api/upload):
    ┌──────────┐    ┌────────────┐    ┌──────────────┐    ┌──────────┐
    │  Upload  │───▶│  Validate  │───▶│ Object store │───▶│  Persist │
    │  (Route) │    │ file+tags  │    │ store+public │    │   (DB)   │
    └──────────┘    └────────────┘    └──────────────┘    └──────────┘

    On failure:
    - Validation fails  → ValidationError, nothing stored
    - Store fails       → UpstreamServiceError, nothing persisted
    - Publish fails     → stored object removed best-effort, error propagates
    - Persist fails     → stored object removed best-effort, PersistenceError

PaperService is stateless: the session and the object store arrive with each
call, so tests can hand in a temporary database and a fake store.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import guarded
from app.exceptions import NotFoundError, ValidationError
from app.models.paper import Paper
from app.schemas.paper import PaperResponse, PaperTags
from app.services.file_service import FileService, file_service
from app.services.object_store import ObjectStore, StoredObject

logger = logging.getLogger(__name__)

# Request field → papers column it is stored in
_FIELD_COLUMNS = {
    "filename": "filename",
    "year": "year_of_study",
    "branch": "branch",
    "semester": "semester",
    "subject": "subject",
    "paper_type": "paper_type",
    "contributor": "contributor",
    "newFilename": "filename",
    "newSubject": "subject",
}


def _check_lengths(**values: Optional[str]) -> None:
    """Reject values wider than their papers column (ValidationError naming the field)."""
    for field, value in values.items():
        if value is None:
            continue
        limit = Paper.__table__.c[_FIELD_COLUMNS[field]].type.length
        if len(value) > limit:
            raise ValidationError(
                message=f"{field} must be at most {limit} characters.",
                field=field,
                context={"max_length": limit, "length": len(value)},
            )


class PaperService:
    """
    Business logic layer for question papers.

    Responsibilities:
        - upload_paper():               full upload workflow
        - papers_by_year_and_subject(): exact tag lookup
        - papers_by_subject():          case-insensitive subject lookup
        - search_papers():              optional tag filters
        - papers_by_contributor():      contribution lookup
        - delete_paper():               object + metadata removal
        - update_paper():               rename / re-subject
    """

    def __init__(self, validator: Optional[FileService] = None):
        self.validator = validator or file_service

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload_paper(
        self,
        db: AsyncSession,
        object_store: ObjectStore,
        filename: Optional[str],
        content: bytes,
        tags: PaperTags,
        content_length: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> PaperResponse:
        """
        Validate, host and record one question paper.

        Raises:
            ValidationError: bad file, or neither tag set is complete
            UpstreamServiceError / CircuitBreakerOpenError: object store failure
            PersistenceError: metadata write failed (stored object cleaned up)
        """
        # ── Step 1: Validate file and tags ────────────────────────────────
        _, mime_type = self.validator.validate(
            filename=filename,
            content=content,
            content_length=content_length,
            content_type=content_type,
        )
        tags = tags.cleaned()
        if not (tags.has_academic_tags or tags.has_contribution_tags):
            raise ValidationError(
                message=(
                    "Provide either year, branch, semester and subject, "
                    "or paper_type and contributor."
                ),
                field="tags",
            )
        _check_lengths(
            filename=filename,
            year=tags.year,
            branch=tags.branch,
            semester=tags.semester,
            subject=tags.subject,
            paper_type=tags.paper_type,
            contributor=tags.contributor,
        )

        # ── Step 2: Host the file ─────────────────────────────────────────
        stored = await object_store.store(content, filename, mime_type)
        try:
            await object_store.make_public(stored.object_id)
        except Exception:
            await self._discard_object(object_store, stored)
            raise

        # ── Step 3: Persist metadata ──────────────────────────────────────
        paper = Paper(
            filename=filename,
            drive_file_id=stored.object_id,
            drive_link=stored.public_url,
            year_of_study=tags.year,
            branch=tags.branch,
            semester=tags.semester,
            subject=tags.subject,
            paper_type=tags.paper_type,
            contributor=tags.contributor,
        )
        try:
            await guarded(self._insert(db, paper), "insert paper")
        except Exception:
            await self._discard_object(object_store, stored)
            raise

        logger.info(
            "Paper %s uploaded as %s (%d bytes)", paper.id, stored.object_id, len(content),
        )
        return PaperResponse.from_model(paper)

    # ── Lookups ───────────────────────────────────────────────────────────

    async def papers_by_year_and_subject(
        self, db: AsyncSession, year: str, subject: str,
    ) -> List[PaperResponse]:
        papers = await self._select(
            db,
            select(Paper).where(Paper.year_of_study == year, Paper.subject == subject),
        )
        if not papers:
            raise NotFoundError(
                resource="papers",
                resource_id=f"{year}/{subject}",
                message="No papers found for this year and subject.",
            )
        return papers

    async def papers_by_subject(self, db: AsyncSession, subject: str) -> List[PaperResponse]:
        """Case-insensitive exact subject match; 404 when nothing matches."""
        papers = await self._select(
            db,
            select(Paper).where(func.lower(Paper.subject) == subject.strip().lower()),
        )
        if not papers:
            raise NotFoundError(
                resource="papers",
                resource_id=subject,
                message="No papers found for this subject.",
            )
        return papers

    async def search_papers(
        self,
        db: AsyncSession,
        branch: Optional[str] = None,
        semester: Optional[str] = None,
        subject: Optional[str] = None,
        year: Optional[str] = None,
        contributor: Optional[str] = None,
    ) -> List[PaperResponse]:
        """Filter by whichever tags are supplied; an empty result is not an error."""
        stmt = select(Paper)
        if branch:
            stmt = stmt.where(Paper.branch == branch)
        if semester:
            stmt = stmt.where(Paper.semester == semester)
        if subject:
            stmt = stmt.where(func.lower(Paper.subject) == subject.strip().lower())
        if year:
            stmt = stmt.where(Paper.year_of_study == year)
        if contributor:
            stmt = stmt.where(Paper.contributor == contributor)
        return await self._select(db, stmt)

    async def papers_by_contributor(
        self, db: AsyncSession, contributor: str,
    ) -> List[PaperResponse]:
        papers = await self._select(db, select(Paper).where(Paper.contributor == contributor))
        if not papers:
            raise NotFoundError(
                resource="papers",
                resource_id=contributor,
                message="No papers found for this contributor.",
            )
        return papers

    # ── Mutations ─────────────────────────────────────────────────────────

    async def delete_paper(
        self, db: AsyncSession, object_store: ObjectStore, drive_file_id: str,
    ) -> None:
        """
        Remove the hosted file, then its metadata row.

        Raises:
            NotFoundError: no paper with that object id (store left untouched)
            UpstreamServiceError: the store refused the delete (row kept)
        """
        paper = await self._get_by_object_id(db, drive_file_id)
        if paper is None:
            raise NotFoundError(resource="paper", resource_id=drive_file_id)

        await object_store.delete(drive_file_id)
        await guarded(self._delete_row(db, paper.id), "delete paper")
        logger.info("Deleted paper %s (%s)", paper.id, drive_file_id)

    async def update_paper(
        self,
        db: AsyncSession,
        paper_id: str,
        new_filename: Optional[str] = None,
        new_subject: Optional[str] = None,
    ) -> PaperResponse:
        """
        Rename a paper and/or change its subject.

        Raises:
            ValidationError: neither field supplied
            NotFoundError: unknown paper id
        """
        new_filename = new_filename.strip() if new_filename else None
        new_subject = new_subject.strip() if new_subject else None
        if not new_filename and not new_subject:
            raise ValidationError(
                message="Provide newFilename or newSubject to update.",
                field="newFilename",
            )
        _check_lengths(newFilename=new_filename, newSubject=new_subject)

        try:
            key = uuid.UUID(paper_id)
        except (ValueError, TypeError):
            raise NotFoundError(resource="paper", resource_id=paper_id)

        paper = await guarded(db.get(Paper, key), "load paper")
        if paper is None:
            raise NotFoundError(resource="paper", resource_id=paper_id)

        if new_filename:
            paper.filename = new_filename
        if new_subject:
            paper.subject = new_subject
        await guarded(db.commit(), "update paper")

        logger.info("Updated paper %s", paper_id)
        return PaperResponse.from_model(paper)

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    async def _insert(db: AsyncSession, paper: Paper) -> None:
        db.add(paper)
        await db.commit()

    @staticmethod
    async def _delete_row(db: AsyncSession, paper_id: uuid.UUID) -> None:
        await db.execute(delete(Paper).where(Paper.id == paper_id))
        await db.commit()

    @staticmethod
    async def _get_by_object_id(db: AsyncSession, drive_file_id: str) -> Optional[Paper]:
        result = await guarded(
            db.execute(select(Paper).where(Paper.drive_file_id == drive_file_id)),
            "load paper",
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _select(db: AsyncSession, stmt) -> List[PaperResponse]:
        result = await guarded(
            db.execute(stmt.order_by(desc(Paper.uploaded_at))),
            "query papers",
        )
        return [PaperResponse.from_model(p) for p in result.scalars().all()]

    @staticmethod
    async def _discard_object(object_store: ObjectStore, stored: StoredObject) -> None:
        """Best-effort removal of an object whose upload could not be completed."""
        try:
            await object_store.delete(stored.object_id)
            logger.info("Cleaned up orphaned object %s", stored.object_id)
        except Exception as e:
            logger.warning("Failed to clean up object %s: %s", stored.object_id, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
paper_service = PaperService()
