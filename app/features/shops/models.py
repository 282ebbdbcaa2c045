"""
Shop model.

A shop is the tenant boundary: it owns its catalog of groups, and every
user's group membership and effective permissions are scoped to one shop.
"""
from datetime import datetime
from sqlalchemy import String, Boolean, ForeignKey, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from app.core.database.base import Base, TimestampMixin


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.ulid()


class Shop(Base, TimestampMixin):
    """
    Shop (tenant) record.

    ``group_revision`` is the optimistic-concurrency counter guarding the
    shop's group catalog and the per-user projections derived from it. Any
    write touching either bumps it, so two overlapping writers on the same
    shop cannot both commit.
    """
    __tablename__ = "shops"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    
    owner_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    group_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    groups_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    
    groups: Mapped[list["ShopGroup"]] = relationship(  # type: ignore
        "ShopGroup",
        back_populates="shop",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ShopGroup.id"
    )
    
    __mapper_args__ = {
        "version_id_col": group_revision,
    }
    
    def __repr__(self) -> str:
        return f"<Shop(id={self.id}, name={self.name!r}, revision={self.group_revision})>"
