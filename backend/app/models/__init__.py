"""
ORM models. Importing this package registers every table with Base.metadata,
which Alembic autogenerate and the test suite rely on.
"""

from app.models.user import User
from app.models.meadow import Meadow
from app.models.tree import Tree
from app.models.image import Image

__all__ = ["User", "Meadow", "Tree", "Image"]
