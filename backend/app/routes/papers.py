"""
QPaperHub Backend — Paper Route Handlers
==========================================

What:  Upload, browse, edit and delete question papers, and serve files held
       by the local object store.
How:   Extracts request data, delegates to PaperService, returns ApiResponse.
Who:   Called by the frontend upload form, browse pages and admin tools.

Request Flow (POST /api/upload):
    1. Client sends multipart/form-data: `file` plus tag fields
    2. File content is read into memory (bounded by size validation)
    3. PaperService validates → stores → publishes → persists
    4. 201 Created with the stored paper

Caching Strategy:
    - Lookups: short private cache (papers can be renamed or deleted)
    - /api/files: long public cache (object ids are never reused)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import NotFoundError
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.paper import PaperResponse, PaperTags, PaperUpdateRequest
from app.services.file_service import EXTENSION_MIME_TYPES
from app.services.local_store import LocalObjectStore
from app.services.object_store import ObjectStore, get_object_store
from app.services.paper_service import paper_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["Papers"])

LIST_CACHE_CONTROL = "private, max-age=5, must-revalidate"


@router.post(
    "/upload",
    status_code=201,
    response_model=ApiResponse[PaperResponse],
    responses={
        400: {"description": "Invalid file or incomplete tags", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        500: {"description": "Object store or database failure", "model": ErrorResponse},
        503: {"description": "Object store temporarily suspended", "model": ErrorResponse},
    },
    summary="Upload a question paper",
    description=(
        "Upload a PDF, image or Word document with either academic tags "
        "(year, branch, semester, subject) or contribution tags (paper_type, contributor)."
    ),
)
async def upload_paper(
    file: UploadFile = File(..., description="Paper file (pdf, png, jpg, jpeg, doc, docx)"),
    year: Optional[str] = Form(default=None),
    branch: Optional[str] = Form(default=None),
    semester: Optional[str] = Form(default=None),
    subject: Optional[str] = Form(default=None),
    paper_type: Optional[str] = Form(default=None),
    contributor: Optional[str] = Form(default=None),
    db: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore = Depends(get_object_store),
) -> ApiResponse[PaperResponse]:
    content = await file.read()

    logger.info(
        "Received upload: filename=%s, size=%d bytes",
        file.filename or "unknown",
        len(content),
    )

    try:
        paper = await paper_service.upload_paper(
            db,
            object_store,
            filename=file.filename,
            content=content,
            tags=PaperTags(
                year=year,
                branch=branch,
                semester=semester,
                subject=subject,
                paper_type=paper_type,
                contributor=contributor,
            ),
            content_length=file.size,
            content_type=file.content_type,
        )
    finally:
        await file.close()

    return ApiResponse(message="File uploaded successfully.", data=paper)


@router.get(
    "/questionpapers/{year}/{subject}",
    response_model=ApiResponse[List[PaperResponse]],
    responses={404: {"description": "No matching papers", "model": ErrorResponse}},
    summary="Papers for a year of study and subject",
)
async def papers_by_year_and_subject(
    year: str,
    subject: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[PaperResponse]]:
    papers = await paper_service.papers_by_year_and_subject(db, year=year, subject=subject)
    response.headers["Cache-Control"] = LIST_CACHE_CONTROL
    return ApiResponse(data=papers)


@router.get(
    "/questionpapers/{subject}",
    response_model=ApiResponse[List[PaperResponse]],
    responses={404: {"description": "No matching papers", "model": ErrorResponse}},
    summary="Papers for a subject (case-insensitive)",
)
async def papers_by_subject(
    subject: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[PaperResponse]]:
    papers = await paper_service.papers_by_subject(db, subject=subject)
    response.headers["Cache-Control"] = LIST_CACHE_CONTROL
    return ApiResponse(data=papers)


@router.get(
    "/papers",
    response_model=ApiResponse[List[PaperResponse]],
    summary="Search papers by tags",
    description="Every query parameter is optional; omitted ones do not filter.",
)
async def search_papers(
    response: Response,
    branch: Optional[str] = Query(default=None),
    semester: Optional[str] = Query(default=None),
    subject: Optional[str] = Query(default=None, description="Case-insensitive"),
    year: Optional[str] = Query(default=None),
    contributor: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[PaperResponse]]:
    papers = await paper_service.search_papers(
        db,
        branch=branch,
        semester=semester,
        subject=subject,
        year=year,
        contributor=contributor,
    )
    response.headers["X-Total-Count"] = str(len(papers))
    response.headers["Cache-Control"] = LIST_CACHE_CONTROL
    return ApiResponse(data=papers)


@router.get(
    "/papers/contributor/{contributor}",
    response_model=ApiResponse[List[PaperResponse]],
    responses={404: {"description": "No papers from this contributor", "model": ErrorResponse}},
    summary="Papers uploaded by a contributor",
)
async def papers_by_contributor(
    contributor: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[PaperResponse]]:
    papers = await paper_service.papers_by_contributor(db, contributor=contributor)
    return ApiResponse(data=papers)


@router.put(
    "/update/{paper_id}",
    response_model=ApiResponse[PaperResponse],
    responses={
        400: {"description": "Nothing to update", "model": ErrorResponse},
        404: {"description": "Paper not found", "model": ErrorResponse},
    },
    summary="Rename a paper or change its subject",
)
async def update_paper(
    paper_id: str,
    body: PaperUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PaperResponse]:
    paper = await paper_service.update_paper(
        db,
        paper_id=paper_id,
        new_filename=body.new_filename,
        new_subject=body.new_subject,
    )
    return ApiResponse(message="Paper updated successfully.", data=paper)


@router.delete(
    "/delete/{drive_file_id}",
    response_model=ApiResponse[None],
    responses={
        404: {"description": "Paper not found", "model": ErrorResponse},
        500: {"description": "Object store failure", "model": ErrorResponse},
    },
    summary="Delete a paper and its stored file",
)
async def delete_paper(
    drive_file_id: str,
    db: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore = Depends(get_object_store),
) -> ApiResponse[None]:
    await paper_service.delete_paper(db, object_store, drive_file_id=drive_file_id)
    return ApiResponse(message="File deleted successfully.")


@router.get(
    "/files/{object_id}",
    summary="Serve a file held by the local object store",
    responses={
        200: {"description": "File content"},
        400: {"description": "Invalid object id", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(
    object_id: str,
    object_store: ObjectStore = Depends(get_object_store),
) -> FileResponse:
    """
    Return a stored file.

    Only the local backend serves bytes itself; Drive links point at Google
    directly, so with the Drive backend every id is a 404 here.
    """
    if not isinstance(object_store, LocalObjectStore):
        raise NotFoundError(resource="file", resource_id=object_id)

    path = object_store.resolve(object_id)
    return FileResponse(
        path=str(path),
        media_type=EXTENSION_MIME_TYPES.get(path.suffix.lower(), "application/octet-stream"),
        headers={"Cache-Control": "public, max-age=86400"},
    )
