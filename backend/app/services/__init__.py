# Services package init
"""
QPaperHub Backend — Services Layer
====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services are stateless; the AsyncSession (and, for papers, the
       ObjectStore) is passed in on every call by the route handlers.

Service Inventory:
    - SavedPaperService: per-user named collections of paper references
    - UserService:       account creation and credential checks
    - PaperService:      upload → validate → store → persist, lookups, edits
    - CatalogService:    branch/semester subject lists
    - FileService:       upload validation (extension, size, MIME type)
    - ObjectStore (abstract): file hosting interface
        - DriveObjectStore: Google Drive v3 with retry + circuit breaker
        - LocalObjectStore: local directory served by /api/files
"""
