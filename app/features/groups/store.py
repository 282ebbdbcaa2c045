"""
Group catalog access for a single shop.

All reads and writes are keyed by ``shop_id`` (and ``group_id`` for groups).
Writes are flushed immediately so later reads in the same transaction, in
particular the permission projector's, see the new catalog.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import ulid

from app.features.shops.models import Shop
from app.features.groups.models import ShopGroup
from app.features.groups.schemas import GroupCreate, GroupUpdate
from app.features.groups.errors import ConcurrentModification, NotFound
from app.utils import get_logger, slugify


log = get_logger(__name__)

MAX_ID_ATTEMPTS = 5


class GroupStore:
    """Reads and writes the group catalog embedded in a shop."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_shop(self, shop_id: str) -> Shop:
        shop = await self.session.get(Shop, shop_id)
        if shop is None:
            raise NotFound("Shop", shop_id)
        return shop

    def touch_shop(self, shop: Shop) -> None:
        """Mark the shop's group data as changed."""
        shop.groups_changed_at = datetime.now(timezone.utc)

    async def lock_shop(self, shop_id: str) -> Shop:
        """
        Load the shop and claim its group data for this transaction.

        The flush bumps ``group_revision`` with a compare-and-set UPDATE before
        any other write, so a writer that read an older revision fails here
        with ``StaleDataError`` instead of colliding later on the access rows.
        """
        shop = await self.get_shop(shop_id)
        self.touch_shop(shop)
        await self.session.flush()
        return shop

    async def _new_group_id(self, shop_id: str) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = ulid.ulid()
            if await self.get_group(shop_id, candidate) is None:
                return candidate
            log.warning("Group id collision in shop %s, regenerating", shop_id)
        raise ConcurrentModification(f"Could not allocate a group id in shop {shop_id}")

    async def create_group(self, shop_id: str, group_data: GroupCreate) -> str:
        """Insert a new group and return its id."""
        await self.get_shop(shop_id)
        group = ShopGroup(
            shop_id=shop_id,
            id=await self._new_group_id(shop_id),
            name=group_data.name,
            slug=slugify(group_data.name),
            description=group_data.description,
            permissions=list(dict.fromkeys(group_data.permissions)),
        )
        self.session.add(group)
        await self.session.flush()
        return group.id

    async def get_group(self, shop_id: str, group_id: str) -> Optional[ShopGroup]:
        result = await self.session.execute(
            select(ShopGroup).where(
                ShopGroup.shop_id == shop_id,
                ShopGroup.id == group_id,
            )
        )
        return result.scalar_one_or_none()

    async def require_group(self, shop_id: str, group_id: str) -> ShopGroup:
        group = await self.get_group(shop_id, group_id)
        if group is None:
            raise NotFound("Group", group_id)
        return group

    async def update_group(self, shop_id: str, group_id: str, group_data: GroupUpdate) -> ShopGroup:
        """Replace the provided fields of one group; the id never changes."""
        await self.get_shop(shop_id)
        group = await self.require_group(shop_id, group_id)
        
        update_data = group_data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in update_data:
            group.name = update_data["name"]
            group.slug = slugify(update_data["name"])
        if "description" in update_data:
            group.description = update_data["description"]
        if "permissions" in update_data:
            group.permissions = list(dict.fromkeys(update_data["permissions"]))
        
        await self.session.flush()
        return group

    async def remove_group(self, shop_id: str, group_id: str) -> None:
        await self.get_shop(shop_id)
        group = await self.require_group(shop_id, group_id)
        await self.session.delete(group)
        await self.session.flush()

    async def list_groups(self, shop_id: str) -> List[ShopGroup]:
        await self.get_shop(shop_id)
        result = await self.session.execute(
            select(ShopGroup).where(ShopGroup.shop_id == shop_id).order_by(ShopGroup.id)
        )
        return list(result.scalars().all())

    async def get_groups(self, shop_id: str, group_ids: List[str]) -> Dict[str, ShopGroup]:
        """Fetch several groups of one shop, keyed by id. Unknown ids are absent."""
        if not group_ids:
            return {}
        result = await self.session.execute(
            select(ShopGroup).where(
                ShopGroup.shop_id == shop_id,
                ShopGroup.id.in_(group_ids),
            )
        )
        return {group.id: group for group in result.scalars().all()}
