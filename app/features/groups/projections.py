"""
Per-user projections of the group catalog.

Membership (the list of group ids a user holds in a shop) is the source of
truth. Effective permissions are a cache derived from it: they are always
recomputed in full from the current catalog and overwritten, never patched.
"""
from typing import List, Optional
from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.groups.models import UserShopAccess
from app.features.groups.store import GroupStore
from app.features.groups.errors import ProjectionError
from app.utils import get_logger


log = get_logger(__name__)


async def get_access(session: AsyncSession, user_id: str, shop_id: str) -> Optional[UserShopAccess]:
    """Return the user's access row for a shop, if any."""
    return await session.get(UserShopAccess, (user_id, shop_id))


class PermissionProjector:
    """Derives a user's effective permissions in a shop from their memberships."""

    def __init__(self, session: AsyncSession, store: GroupStore):
        self.session = session
        self.store = store

    async def recompute_permissions(self, shop_id: str, user_id: str) -> List[str]:
        access = await get_access(self.session, user_id, shop_id)
        if access is None:
            return []
        
        groups = await self.store.get_groups(shop_id, access.groups)
        missing = [group_id for group_id in access.groups if group_id not in groups]
        if missing:
            raise ProjectionError(
                f"User {user_id} belongs to groups missing from shop {shop_id}: {', '.join(missing)}"
            )
        
        permissions: dict[str, None] = {}
        for group_id in access.groups:
            for permission in groups[group_id].permissions:
                permissions.setdefault(permission)
        
        access.permissions = list(permissions)
        log.debug("Recomputed permissions for user %s in shop %s: %s", user_id, shop_id, access.permissions)
        return access.permissions


class MembershipProjector:
    """Maintains each user's per-shop membership list."""

    def __init__(self, session: AsyncSession, permissions: PermissionProjector):
        self.session = session
        self.permissions = permissions

    async def add_membership(self, shop_id: str, user_id: str, group_id: str) -> None:
        """Add ``group_id`` to the user's memberships. Adding twice is a no-op."""
        access = await get_access(self.session, user_id, shop_id)
        if access is None:
            access = UserShopAccess(user_id=user_id, shop_id=shop_id, groups=[], permissions=[])
            self.session.add(access)
            await self.session.flush()
        
        if group_id not in access.groups:
            access.groups = [*access.groups, group_id]
        
        await self.permissions.recompute_permissions(shop_id, user_id)

    async def remove_membership(self, shop_id: str, user_id: str, group_id: str) -> None:
        """Remove ``group_id`` from the user's memberships. Absent ids are a no-op."""
        access = await get_access(self.session, user_id, shop_id)
        if access is None:
            return
        
        if group_id in access.groups:
            access.groups = [g for g in access.groups if g != group_id]
        
        await self.permissions.recompute_permissions(shop_id, user_id)

    async def members_of(self, shop_id: str, group_id: str) -> List[str]:
        """Ids of users currently holding ``group_id`` in ``shop_id``."""
        # Narrow in SQL on the serialized id; the exact check below stays authoritative.
        result = await self.session.execute(
            select(UserShopAccess)
            .where(
                UserShopAccess.shop_id == shop_id,
                cast(UserShopAccess.groups, String).contains(f'"{group_id}"', autoescape=True),
            )
            .order_by(UserShopAccess.user_id)
        )
        return [access.user_id for access in result.scalars().all() if group_id in access.groups]
