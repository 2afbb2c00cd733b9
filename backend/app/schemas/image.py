"""
TreeSpotter Backend - Image Schemas
====================================

What:  Response model for tree images and the edit payload.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ImageResponse(BaseModel):
    """
    path always starts with "/" so clients can resolve it against the server
    origin directly.
    """
    id: int
    path: str
    description: str
    datetime: datetime


class ImageUploadResponse(BaseModel):
    message: str = "Image uploaded successfully"
    id: int
    path: str


class ImageUpdate(BaseModel):
    """
    Exactly one of the two fields must be given per request.

    The aliases keep the field names the mobile client already sends.
    """
    new_description: Optional[str] = Field(default=None, alias="newDescription")
    new_datetime: Optional[datetime] = Field(default=None, alias="newDatetime")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def exactly_one_field(self) -> "ImageUpdate":
        has_description = self.new_description is not None
        has_datetime = self.new_datetime is not None
        if has_description == has_datetime:
            raise ValueError("Provide exactly one of newDescription or newDatetime")
        return self
