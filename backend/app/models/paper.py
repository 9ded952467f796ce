"""
QPaperHub Backend — Paper SQLAlchemy Model
============================================

What:  ORM model for the `papers` table: one row per uploaded question paper.
Who:   Used by PaperService for CRUD operations and by Alembic for schema management.

Table Design:
    - UUID primary key, exposed to clients as a string (the "paper reference"
      saved into collections)
    - drive_file_id: object-store id, unique; DELETE /api/delete/{id} uses it
    - drive_link: public view URL returned by the object store
    - Academic tags (year_of_study, branch, semester, subject) and contribution
      tags (paper_type, contributor) are all nullable; PaperService requires at
      least one complete tag set per upload
    - uploaded_at: UTC with timezone

    Indexes cover the lookup routes: subject, (year_of_study, subject),
    (branch, semester) and contributor.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Paper(Base):
    """
    Metadata for one question paper stored in the object store.

    Lifecycle:
        1. Created after the object store accepted the upload
        2. filename / subject may be edited (PUT /api/update/{id})
        3. Deleted together with its stored object (DELETE /api/delete/{file_id});
           saved-collection references are not touched
    """

    __tablename__ = "papers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)

    drive_file_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Object-store id of the uploaded file",
    )
    drive_link: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        comment="Publicly readable link to the file",
    )

    # ── Academic tags ─────────────────────────────────────────────────────
    year_of_study: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    branch: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    semester: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Contribution tags ─────────────────────────────────────────────────
    paper_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    contributor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_papers_subject", "subject"),
        Index("idx_papers_year_subject", "year_of_study", "subject"),
        Index("idx_papers_branch_semester", "branch", "semester"),
        Index("idx_papers_contributor", "contributor"),
    )

    def __repr__(self) -> str:
        return f"<Paper(id={self.id}, filename='{self.filename}', subject='{self.subject}')>"
