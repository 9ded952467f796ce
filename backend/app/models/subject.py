"""
QPaperHub Backend — Subject Catalog SQLAlchemy Model
======================================================

What:  Flattened program → branch → semester → subject lookup structure.
How:   One row per subject name; `position` keeps the curriculum order inside
       a (program, branch, semester) group. The flat subject listing is the
       DISTINCT subject_name projection of the same table.
"""

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class SubjectCatalogEntry(Base):
    __tablename__ = "subject_catalog"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    program: Mapped[str] = mapped_column(String(64), nullable=False)
    branch: Mapped[str] = mapped_column(String(64), nullable=False)
    semester: Mapped[str] = mapped_column(String(32), nullable=False)
    subject_name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "program", "branch", "semester", "subject_name",
            name="uq_subject_catalog_entry",
        ),
        Index("idx_subject_catalog_group", "program", "branch", "semester"),
    )

    def __repr__(self) -> str:
        return (
            f"<SubjectCatalogEntry({self.program}/{self.branch}/{self.semester}: "
            f"'{self.subject_name}')>"
        )
