"""
QPaperHub Backend — Application Package Initializer
====================================================

What: Marks the `app` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, response envelopes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← saved collections, papers, users, catalog
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database / Object Store (I/O)     │  ← injected clients, owned by app.state
    └─────────────────────────────────────┘

    Routes never talk to the database or Google Drive directly; they receive
    an AsyncSession and an ObjectStore through FastAPI dependencies and hand
    them to a service.
"""

__version__ = "1.0.0"
