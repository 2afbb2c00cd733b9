"""
TreeSpotter Backend - Tree Schemas
===================================

What:  Request and response models for /trees.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TreeCreate(BaseModel):
    plant_date: datetime
    meadow_id: int = Field(gt=0)
    position: str = Field(default="", max_length=255)
    type: str = Field(default="", max_length=255)


class TreeUpdate(BaseModel):
    """No meadow_id: trees cannot move between meadows."""
    plant_date: datetime
    position: str = Field(default="", max_length=255)
    type: str = Field(default="", max_length=255)


class TreeResponse(BaseModel):
    id: int
    plant_date: datetime
    meadow_id: int
    position: str
    type: str

    model_config = {"from_attributes": True}
