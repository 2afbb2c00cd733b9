"""
TreeSpotter Backend - Tree Image Routes
========================================

What:  Upload, list, edit and delete the photos attached to a tree.
How:   Upload is multipart/form-data with the file in `treeImage` and an
       optional `description` field. The file is read fully into memory
       (10MB ceiling) before validation.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.image import ImageResponse, ImageUpdate, ImageUploadResponse
from app.security import get_current_user_id
from app.services.image_service import image_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trees", tags=["Images"])


@router.get(
    "/{tree_id}/images",
    response_model=List[ImageResponse],
    responses={404: {"description": "Tree not found", "model": ErrorResponse}},
)
async def list_images(
    tree_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[ImageResponse]:
    return await image_service.list_images(db, tree_id, user_id)


@router.post(
    "/{tree_id}/uploadImage",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid file", "model": ErrorResponse},
        404: {"description": "Tree not found", "model": ErrorResponse},
    },
    summary="Attach a photo to a tree",
)
async def upload_image(
    request: Request,
    tree_id: int,
    tree_image: UploadFile = File(..., alias="treeImage"),
    description: str = Form(default=""),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ImageUploadResponse:
    content = await tree_image.read()

    content_length = request.headers.get("content-length")
    content_length_int = int(content_length) if content_length and content_length.isdigit() else None

    image_id, path = await image_service.upload_image(
        db=db,
        tree_id=tree_id,
        user_id=user_id,
        filename=tree_image.filename or "",
        content=content,
        description=description,
        content_length=content_length_int,
    )
    return ImageUploadResponse(id=image_id, path=path)


@router.put(
    "/images/{image_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Neither or both fields given", "model": ErrorResponse},
        404: {"description": "Image not found", "model": ErrorResponse},
    },
)
async def update_image(
    image_id: int,
    data: ImageUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await image_service.update_image(db, image_id, data, user_id)
    return MessageResponse(message="Image updated successfully", id=image_id)


@router.delete(
    "/images/{image_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Image not found", "model": ErrorResponse},
        500: {"description": "Image file missing or not removable", "model": ErrorResponse},
    },
)
async def delete_image(
    image_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await image_service.delete_image(db, image_id, user_id)
    return MessageResponse(message="Image deleted successfully", id=image_id)
