"""
QPaperHub Backend — Credential Schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Body of POST /api/createUser and POST /api/loginUser."""
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)


class UserResponse(BaseModel):
    """Public view of an account; the password hash is never exposed."""
    username: str
    created_at: datetime
