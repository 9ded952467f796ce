"""
QPaperHub Backend — Subject Catalog Route Handlers
====================================================

What:  Subject lists per branch and semester, and the flat subject listing.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.subject import SubjectListUpdate
from app.services.catalog_service import catalog_service

router = APIRouter(prefix="/api", tags=["Subjects"])


@router.get(
    "/subjects",
    response_model=ApiResponse[List[str]],
    summary="All subject names, sorted",
)
async def list_subjects(
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[str]]:
    return ApiResponse(data=await catalog_service.list_subjects(db))


@router.get(
    "/subjects/{branch}/{semester}",
    response_model=ApiResponse[List[str]],
    responses={404: {"description": "No subjects for this branch and semester", "model": ErrorResponse}},
    summary="Subjects for a branch and semester",
)
async def subjects_for(
    branch: str,
    semester: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[str]]:
    subjects = await catalog_service.subjects_for(db, branch=branch, semester=semester)
    return ApiResponse(data=subjects)


@router.put(
    "/subjects/{branch}/{semester}",
    response_model=ApiResponse[List[str]],
    responses={400: {"description": "Blank subject name", "model": ErrorResponse}},
    summary="Replace the subjects for a branch and semester",
)
async def replace_subjects(
    branch: str,
    semester: str,
    body: SubjectListUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[str]]:
    subjects = await catalog_service.replace_subjects(
        db, branch=branch, semester=semester, subjects=body.subjects,
    )
    return ApiResponse(message="Subjects updated successfully.", data=subjects)
