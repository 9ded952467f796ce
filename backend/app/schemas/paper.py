"""
QPaperHub Backend — Paper Request/Response Schemas
====================================================

What:  API contracts for uploads, lookups and metadata edits.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.paper import Paper


class PaperTags(BaseModel):
    """
    Descriptive tags submitted with an upload.

    Either the academic set (year, branch, semester, subject) or the
    contribution set (paper_type, contributor) must be complete.
    """
    year: Optional[str] = None
    branch: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    paper_type: Optional[str] = None
    contributor: Optional[str] = None

    def cleaned(self) -> "PaperTags":
        """Copy with surrounding whitespace stripped and blanks turned into None."""
        values = {}
        for name, value in self.model_dump().items():
            if isinstance(value, str):
                value = value.strip() or None
            values[name] = value
        return PaperTags(**values)

    @property
    def has_academic_tags(self) -> bool:
        return all([self.year, self.branch, self.semester, self.subject])

    @property
    def has_contribution_tags(self) -> bool:
        return all([self.paper_type, self.contributor])


class PaperResponse(BaseModel):
    """Full representation of a stored question paper."""
    id: str = Field(description="Paper reference (UUID string)")
    filename: str
    drive_file_id: str = Field(description="Object-store id of the file")
    drive_link: str = Field(description="Publicly readable link")
    year_of_study: Optional[str] = None
    branch: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    paper_type: Optional[str] = None
    contributor: Optional[str] = None
    uploaded_at: datetime

    @classmethod
    def from_model(cls, paper: Paper) -> "PaperResponse":
        return cls(
            id=str(paper.id),
            filename=paper.filename,
            drive_file_id=paper.drive_file_id,
            drive_link=paper.drive_link,
            year_of_study=paper.year_of_study,
            branch=paper.branch,
            semester=paper.semester,
            subject=paper.subject,
            paper_type=paper.paper_type,
            contributor=paper.contributor,
            uploaded_at=paper.uploaded_at,
        )


class PaperUpdateRequest(BaseModel):
    """Body of PUT /api/update/{paper_id}; at least one field is required."""
    new_filename: Optional[str] = Field(default=None, alias="newFilename")
    new_subject: Optional[str] = Field(default=None, alias="newSubject")

    model_config = ConfigDict(populate_by_name=True)
