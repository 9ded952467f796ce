"""
QPaperHub Backend — User Route Handlers
=========================================

What:  Account creation and login checks. No session or token is issued.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.user import CredentialsRequest, UserResponse
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


@router.post(
    "/createUser",
    response_model=ApiResponse[UserResponse],
    responses={
        400: {"description": "Invalid credentials or username taken", "model": ErrorResponse},
    },
    summary="Create a user account",
)
async def create_user(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserResponse]:
    user = await user_service.create_user(db, username=body.username, password=body.password)
    return ApiResponse(message="User created successfully.", data=user)


@router.post(
    "/loginUser",
    response_model=ApiResponse[UserResponse],
    responses={
        400: {"description": "Missing or too-short credentials", "model": ErrorResponse},
        401: {"description": "Unknown username or wrong password", "model": ErrorResponse},
    },
    summary="Check a username and password",
)
async def login_user(
    body: CredentialsRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserResponse]:
    user = await user_service.verify_user(db, username=body.username, password=body.password)
    return ApiResponse(message="Login successful.", data=user)
