"""
TreeSpotter Backend - Meadow SQLAlchemy Model
==============================================

What:  ORM model for the `meadows` table (a user-owned land plot).

Denormalized tree list:
    tree_ids duplicates what trees.meadow_id already says: the ordered IDs of
    the trees planted in this meadow, serialized into one JSON column rather
    than a join table. It is only ever written by
    MeadowRepository.update_tree_ids (and insert/reconcile), always under a
    row lock inside the request transaction, so it stays equal to the set of
    trees pointing at this meadow.
"""

from typing import List

from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Meadow(Base):
    """
    A land plot holding zero or more trees.

    Lifecycle:
        1. Created with an empty (or caller-supplied) tree_ids list
        2. tree_ids grows/shrinks by one ID per tree insert/delete
        3. Deleted together with every tree it holds
    """

    __tablename__ = "meadows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    size: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    tree_ids: Mapped[List[int]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered IDs of the trees in this meadow (denormalized)",
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_meadows_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Meadow(id={self.id}, name='{self.name}', "
            f"tree_ids={self.tree_ids}, user_id={self.user_id})>"
        )
