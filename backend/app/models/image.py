"""
TreeSpotter Backend - Image SQLAlchemy Model
=============================================

What:  ORM model for the `images` table: metadata of a photo attached to a
       tree. The bytes live on disk at `path`; this row only points at them.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Image(Base):
    """
    A photo record attached to a tree.

    Lifecycle:
        1. Created on upload after the file has been written
        2. description or datetime edited (one per request)
        3. Deleted on its own (file first, then row) or with its tree
    """

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Stored as written by FileService, e.g. "uploads/<uuid>.jpg"
    path: Mapped[str] = mapped_column(String(512), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Column is named "datetime"; the attribute name avoids shadowing the type
    taken_at: Mapped[datetime] = mapped_column(
        "datetime",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    tree_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trees.id"),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_images_tree_id_user_id", "tree_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, path='{self.path}', tree_id={self.tree_id})>"
