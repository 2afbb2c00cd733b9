"""
TreeSpotter Backend - Tree Routes
==================================

What:  Owner-scoped tree CRUD. Creating or deleting a tree also updates the
       parent meadow's tree_ids in the same transaction.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import CreatedResponse, ErrorResponse, MessageResponse
from app.schemas.tree import TreeCreate, TreeResponse, TreeUpdate
from app.security import get_current_user_id
from app.services.orchard_service import orchard_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trees", tags=["Trees"])

_not_found = {404: {"description": "Tree not found", "model": ErrorResponse}}


@router.get("/{tree_id}", response_model=TreeResponse, responses=_not_found)
async def get_tree(
    tree_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> TreeResponse:
    tree = await orchard_service.get_tree(db, tree_id, user_id)
    return TreeResponse.model_validate(tree)


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Parent meadow not found", "model": ErrorResponse}},
)
async def create_tree(
    data: TreeCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CreatedResponse:
    tree_id = await orchard_service.create_tree(db, data, user_id)
    return CreatedResponse(message="Tree created successfully", id=tree_id)


@router.put("/{tree_id}", response_model=MessageResponse, responses=_not_found)
async def update_tree(
    tree_id: int,
    data: TreeUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await orchard_service.update_tree(db, tree_id, data, user_id)
    return MessageResponse(message="Tree updated successfully", id=tree_id)


@router.delete("/{tree_id}", response_model=MessageResponse, responses=_not_found)
async def delete_tree(
    tree_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await orchard_service.delete_tree(db, tree_id, user_id)
    return MessageResponse(message="Tree deleted successfully", id=tree_id)
