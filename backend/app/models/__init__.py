# Models package init
"""
QPaperHub Backend — ORM Models
================================

Importing this package registers every table on `Base.metadata`
(used by `Database.create_all` and Alembic autogenerate).
"""

from app.models.paper import Paper
from app.models.saved_paper import SavedCollection, SavedCollectionPaper, SavedPaperRecord
from app.models.subject import SubjectCatalogEntry
from app.models.user import User

__all__ = [
    "Paper",
    "SavedCollection",
    "SavedCollectionPaper",
    "SavedPaperRecord",
    "SubjectCatalogEntry",
    "User",
]
