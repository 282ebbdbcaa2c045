"""
Group catalog, per-user projections, and audit log models.

- ``ShopGroup``: one row per group; ids are unique within their shop only.
- ``UserShopAccess``: one row per (user, shop) holding the membership array
  (source of truth) and the effective-permission array (derived cache).
- ``AuditLog``: one row per committed group operation.
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON, Text, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from app.core.database.base import Base, TimestampMixin


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return ulid.ulid()


class ShopGroup(Base, TimestampMixin):
    """
    Named bundle of permission strings scoped to a single shop.
    
    Permission strings are opaque tokens; the stored list is deduplicated and
    keeps first-occurrence order.
    """
    __tablename__ = "shop_groups"
    
    shop_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("shops.id", ondelete="CASCADE"),
        primary_key=True
    )
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    
    shop: Mapped["Shop"] = relationship("Shop", back_populates="groups")  # type: ignore
    
    def __repr__(self) -> str:
        return f"<ShopGroup(id={self.id}, name={self.name!r}, shop_id={self.shop_id})>"


class UserShopAccess(Base, TimestampMixin):
    """
    A user's access inside one shop.
    
    ``groups`` is the membership list. ``permissions`` is always the union of
    the permissions of those groups and is only ever written by the
    permission projector.
    """
    __tablename__ = "user_shop_access"
    
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )
    shop_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("shops.id", ondelete="CASCADE"),
        primary_key=True,
        index=True
    )
    
    groups: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    
    user: Mapped["User"] = relationship("User", back_populates="shop_access")  # type: ignore
    
    __mapper_args__ = {
        "version_id_col": revision,
    }
    
    def __repr__(self) -> str:
        return f"<UserShopAccess(user_id={self.user_id}, shop_id={self.shop_id}, groups={self.groups})>"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for group operations.
    
    ``action`` holds the stable call name, e.g. ``group/addUser``.
    """
    __tablename__ = "audit_logs"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    # Actor
    user_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    shop_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    group_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    
    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, shop_id={self.shop_id})>"
