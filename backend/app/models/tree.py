"""
TreeSpotter Backend - Tree SQLAlchemy Model
============================================

What:  ORM model for the `trees` table (a planting record).

meadow_id is the source of truth for membership; the parent meadow's
tree_ids list mirrors it. meadow_id is fixed at insert time.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Tree(Base):
    """A tree planted in exactly one meadow of the same owner."""

    __tablename__ = "trees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    plant_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    meadow_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("meadows.id"),
        nullable=False,
    )

    # Free-form coordinate descriptor, e.g. "10,20"
    position: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Species
    type: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_trees_user_id", "user_id"),
        Index("idx_trees_meadow_id", "meadow_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Tree(id={self.id}, type='{self.type}', "
            f"meadow_id={self.meadow_id}, user_id={self.user_id})>"
        )
