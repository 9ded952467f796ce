"""
QPaperHub Backend — Subject Catalog Service
=============================================

What:  Read and maintain the program → branch → semester → subjects lookup.
Who:   Called by the subjects router.

Every lookup is scoped to one program (CATALOG_PROGRAM, "BTech" by default).
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import guarded
from app.exceptions import NotFoundError, ValidationError
from app.models.subject import SubjectCatalogEntry

logger = logging.getLogger(__name__)


def _column_width(column: str) -> int:
    return SubjectCatalogEntry.__table__.c[column].type.length


def unique_names(subjects: List[str]) -> List[str]:
    """Strip names and drop repeats, keeping the first occurrence's position."""
    seen = set()
    names: List[str] = []
    for raw in subjects:
        name = raw.strip() if isinstance(raw, str) else ""
        if not name:
            raise ValidationError(message="Subject names must not be blank.", field="subjects")
        if len(name) > _column_width("subject_name"):
            raise ValidationError(
                message=f"Subject names must be at most {_column_width('subject_name')} characters.",
                field="subjects",
            )
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


class CatalogService:

    def __init__(self, program: Optional[str] = None):
        self.program = program or settings.catalog_program

    async def subjects_for(self, db: AsyncSession, branch: str, semester: str) -> List[str]:
        """
        Ordered subject names for one branch and semester.

        Raises NotFoundError when the group has no subjects.
        """
        result = await guarded(
            db.execute(
                select(SubjectCatalogEntry.subject_name)
                .where(
                    SubjectCatalogEntry.program == self.program,
                    SubjectCatalogEntry.branch == branch,
                    SubjectCatalogEntry.semester == semester,
                )
                .order_by(SubjectCatalogEntry.position, SubjectCatalogEntry.id)
            ),
            "load subjects",
        )
        names = list(result.scalars().all())
        if not names:
            raise NotFoundError(
                resource="subjects",
                resource_id=f"{self.program}/{branch}/{semester}",
                message="No subjects found for this branch and semester.",
            )
        return names

    async def list_subjects(self, db: AsyncSession) -> List[str]:
        """Every distinct subject name, sorted."""
        result = await guarded(
            db.execute(
                select(SubjectCatalogEntry.subject_name)
                .distinct()
                .order_by(SubjectCatalogEntry.subject_name)
            ),
            "list subjects",
        )
        return list(result.scalars().all())

    async def replace_subjects(
        self, db: AsyncSession, branch: str, semester: str, subjects: List[str],
    ) -> List[str]:
        """Replace the group's subject list in one transaction; returns the stored list."""
        for field, value in (("branch", branch), ("semester", semester)):
            if len(value) > _column_width(field):
                raise ValidationError(
                    message=f"{field} must be at most {_column_width(field)} characters.",
                    field=field,
                )
        names = unique_names(subjects)
        await guarded(self._replace(db, branch, semester, names), "replace subjects")
        logger.info(
            "Replaced subjects for %s/%s/%s (%d names)",
            self.program, branch, semester, len(names),
        )
        return names

    async def _replace(
        self, db: AsyncSession, branch: str, semester: str, names: List[str],
    ) -> None:
        await db.execute(
            delete(SubjectCatalogEntry).where(
                SubjectCatalogEntry.program == self.program,
                SubjectCatalogEntry.branch == branch,
                SubjectCatalogEntry.semester == semester,
            )
        )
        db.add_all(
            SubjectCatalogEntry(
                program=self.program,
                branch=branch,
                semester=semester,
                subject_name=name,
                position=position,
            )
            for position, name in enumerate(names)
        )
        await db.commit()


# ── Singleton Instance ────────────────────────────────────────────────────
catalog_service = CatalogService()
