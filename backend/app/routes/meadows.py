"""
TreeSpotter Backend - Meadow Routes
====================================

What:  Owner-scoped meadow CRUD, the trees of a meadow, and the tree_ids
       repair endpoint.
How:   Every handler resolves the user from the bearer token and delegates to
       OrchardService. DELETE cascades to the meadow's trees and their images.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import CreatedResponse, ErrorResponse, MessageResponse
from app.schemas.meadow import (
    MeadowCreate,
    MeadowDeleteResponse,
    MeadowResponse,
    MeadowUpdate,
    ReconcileResponse,
)
from app.schemas.tree import TreeResponse
from app.security import get_current_user_id
from app.services.orchard_service import orchard_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meadows", tags=["Meadows"])

_not_found = {404: {"description": "Meadow not found", "model": ErrorResponse}}


@router.get("", response_model=List[MeadowResponse], summary="List the user's meadows")
async def list_meadows(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[MeadowResponse]:
    meadows = await orchard_service.list_meadows(db, user_id)
    return [MeadowResponse.model_validate(m) for m in meadows]


@router.get("/{meadow_id}", response_model=MeadowResponse, responses=_not_found)
async def get_meadow(
    meadow_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MeadowResponse:
    meadow = await orchard_service.get_meadow(db, meadow_id, user_id)
    return MeadowResponse.model_validate(meadow)


@router.get(
    "/{meadow_id}/trees",
    response_model=List[TreeResponse],
    responses=_not_found,
    summary="Trees of a meadow, in the meadow's list order",
)
async def list_trees_of_meadow(
    meadow_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[TreeResponse]:
    trees = await orchard_service.list_trees_for_meadow(db, meadow_id, user_id)
    return [TreeResponse.model_validate(t) for t in trees]


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_meadow(
    data: MeadowCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> CreatedResponse:
    meadow_id = await orchard_service.create_meadow(db, data, user_id)
    return CreatedResponse(message="Meadow created successfully", id=meadow_id)


@router.put("/{meadow_id}", response_model=MessageResponse, responses=_not_found)
async def update_meadow(
    meadow_id: int,
    data: MeadowUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await orchard_service.update_meadow(db, meadow_id, data, user_id)
    return MessageResponse(message="Meadow updated successfully", id=meadow_id)


@router.delete(
    "/{meadow_id}",
    response_model=MeadowDeleteResponse,
    responses=_not_found,
    summary="Delete a meadow with all its trees and their images",
)
async def delete_meadow(
    meadow_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> MeadowDeleteResponse:
    report = await orchard_service.delete_meadow(db, meadow_id, user_id)
    return MeadowDeleteResponse(
        message="Meadow deleted successfully",
        id=report.meadow_id,
        deleted_tree_ids=report.deleted_tree_ids,
        skipped_tree_ids=report.skipped_tree_ids,
    )


@router.post(
    "/{meadow_id}/reconcile",
    response_model=ReconcileResponse,
    responses=_not_found,
    summary="Rebuild tree_ids from the trees that point at the meadow",
)
async def reconcile_meadow(
    meadow_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReconcileResponse:
    report = await orchard_service.reconcile_meadow(db, meadow_id, user_id)
    return ReconcileResponse(
        meadow_id=report.meadow_id,
        tree_ids=report.tree_ids,
        added=report.added,
        removed=report.removed,
    )
