"""
QPaperHub Backend — Saved-Papers Route Handlers
=================================================

What:  Save, unsave and list a user's paper collections.
Who:   Called by the frontend "save to collection" controls and the saved
       papers page.

Request Flow (POST /api/save-paper):
    1. Body parsed into SavePaperRequest (all fields optional at this layer)
    2. SavedPaperService validates fields and performs the idempotent write
    3. Full record returned in the ApiResponse envelope
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.saved_paper import (
    SavedCollectionResponse,
    SavedRecordResponse,
    SavePaperRequest,
)
from app.services.saved_paper_service import saved_paper_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Saved Papers"])


@router.post(
    "/save-paper",
    response_model=ApiResponse[SavedRecordResponse],
    responses={
        400: {"description": "Missing user_id, collection_name or paper_id", "model": ErrorResponse},
        500: {"description": "Database failure", "model": ErrorResponse},
    },
    summary="Save a paper into a named collection",
    description=(
        "Adds the paper reference to the user's collection, creating the user's record "
        "and the collection on demand. Saving a reference that is already present "
        "changes nothing."
    ),
)
async def save_paper(
    body: SavePaperRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[SavedRecordResponse]:
    record = await saved_paper_service.save(
        db,
        user_id=body.user_id,
        collection_name=body.collection_name,
        paper_id=body.paper_id,
    )
    return ApiResponse(message="Paper saved successfully.", data=record)


@router.get(
    "/saved-papers/{user_id}",
    response_model=ApiResponse[List[SavedCollectionResponse]],
    responses={
        404: {"description": "User has no saved papers", "model": ErrorResponse},
    },
    summary="List a user's saved-paper collections",
)
async def list_saved_papers(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[SavedCollectionResponse]]:
    collections = await saved_paper_service.list_collections(db, user_id=user_id)
    return ApiResponse(data=collections)


@router.post(
    "/unsave-paper",
    response_model=ApiResponse[List[SavedCollectionResponse]],
    responses={
        400: {"description": "Missing user_id, collection_name or paper_id", "model": ErrorResponse},
        404: {"description": "No record for the user, or no such collection", "model": ErrorResponse},
    },
    summary="Remove a paper from a named collection",
    description=(
        "Removes the paper reference from the collection. Removing a reference that is "
        "not present is a no-op; the collection itself is kept even when it becomes empty."
    ),
)
async def unsave_paper(
    body: SavePaperRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[SavedCollectionResponse]]:
    collections = await saved_paper_service.unsave(
        db,
        user_id=body.user_id,
        collection_name=body.collection_name,
        paper_id=body.paper_id,
    )
    return ApiResponse(message="Paper removed successfully.", data=collections)
