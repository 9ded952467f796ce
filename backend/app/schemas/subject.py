"""
QPaperHub Backend — Subject Catalog Schemas
"""

from typing import List

from pydantic import BaseModel, Field


class SubjectListUpdate(BaseModel):
    """Body of PUT /api/subjects/{branch}/{semester}; order is preserved."""
    subjects: List[str] = Field(default_factory=list)
