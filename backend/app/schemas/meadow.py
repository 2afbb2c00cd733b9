"""
TreeSpotter Backend - Meadow Schemas
=====================================

What:  Request and response models for /meadows.

tree_ids is read-only over the API except at creation time: updates accept
location/name/size only, and the list is maintained by tree insert/delete.
"""

from typing import List

from pydantic import BaseModel, Field


class MeadowCreate(BaseModel):
    location: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=255)
    size: float = Field(default=0.0, ge=0)
    tree_ids: List[int] = Field(
        default_factory=list,
        description="Initial tree IDs; normally left empty",
    )


class MeadowUpdate(BaseModel):
    """Editable meadow fields. Anything else in the payload is ignored."""
    location: str = Field(default="", max_length=255)
    name: str = Field(default="", max_length=255)
    size: float = Field(default=0.0, ge=0)


class MeadowResponse(BaseModel):
    id: int
    location: str
    name: str
    size: float
    tree_ids: List[int]

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    """Outcome of recomputing a meadow's tree_ids from the tree rows."""
    meadow_id: int
    tree_ids: List[int] = Field(description="The list after reconciliation")
    added: List[int] = Field(description="IDs that were missing from the list")
    removed: List[int] = Field(description="Stale IDs dropped from the list")


class MeadowDeleteResponse(BaseModel):
    message: str
    id: int
    deleted_tree_ids: List[int] = Field(default_factory=list)
    skipped_tree_ids: List[int] = Field(
        default_factory=list,
        description="Listed tree IDs that no longer had a row",
    )
