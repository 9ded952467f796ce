"""
QPaperHub Backend — Saved-Papers Schemas
==========================================

What:  Request body for save/unsave and the document-shaped responses.

Request fields are optional at the schema level so that a missing field is
reported by SavedPaperService as a 400 ValidationError naming the field,
rather than by FastAPI's generic body validation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SavePaperRequest(BaseModel):
    """Body of POST /api/save-paper and POST /api/unsave-paper."""
    user_id: Optional[str] = Field(default=None, description="Opaque user identifier")
    collection_name: Optional[str] = Field(
        default=None, description="Name of the sub-collection, e.g. 'finals'"
    )
    paper_id: Optional[str] = Field(default=None, description="Paper reference to add or remove")


class SavedCollectionResponse(BaseModel):
    """One named sub-collection and its paper references."""
    collection_name: str
    papers: List[str] = Field(default_factory=list)


class SavedRecordResponse(BaseModel):
    """
    A user's full saved-papers record.

    Example:
        {
            "user_id": "u1",
            "saved_papers": [
                {"collection_name": "finals", "papers": ["p1"]},
                {"collection_name": "midterms", "papers": ["p2"]}
            ],
            "created_at": "2025-01-15T12:00:00Z",
            "updated_at": "2025-01-15T12:05:00Z"
        }
    """
    user_id: str
    saved_papers: List[SavedCollectionResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
