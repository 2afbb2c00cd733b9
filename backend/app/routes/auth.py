"""
TreeSpotter Backend - Auth Routes
==================================

What:  POST /register and POST /login. The only unauthenticated endpoints
       besides /health.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from app.schemas.common import CreatedResponse, ErrorResponse
from app.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Create a user account",
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> CreatedResponse:
    user_id = await auth_service.register(db, data)
    return CreatedResponse(message="User registered successfully", id=user_id)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange credentials for a bearer token",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await auth_service.login(db, data)
    return TokenResponse(token=token)
