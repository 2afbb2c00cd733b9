"""
TreeSpotter Backend - Repositories (Data Access Layer)
=======================================================

What:  One repository per table. Each receives the request's AsyncSession at
       construction and filters every statement by the owning user's ID.
Who:   Built per call by OrchardService and ImageService.

Conventions:
    - find_* returns None / [] for "not found for this owner"
    - mutating calls raise NotFoundError when no owned row matched
    - SQLAlchemy failures are wrapped in DatabaseError with the operation name
"""

from app.repositories.image_repository import ImageRepository
from app.repositories.meadow_repository import MeadowRepository
from app.repositories.tree_repository import TreeRepository

__all__ = ["ImageRepository", "MeadowRepository", "TreeRepository"]
