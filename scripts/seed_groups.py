"""
Seed script to populate the default groups of a shop.

Creates the owner, shop manager, customer, and guest groups in the given
shop, skipping any that already exist, and adds the shop owner to the owner
group.

Usage:
    python -m scripts.seed_groups <shop_id>
"""
import asyncio
import sys

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.shops.models import Shop
from app.features.groups.defaults import DEFAULT_GROUPS, ensure_default_groups
from app.features.groups.dependencies import ShopPermissionChecker
from app.features.groups.service import GroupService, Identity
from app.utils import get_logger


log = get_logger(__name__)

# Seeding runs outside any request, with admin rights
SEED_IDENTITY = Identity(user_id=None, is_admin=True)


async def main(shop_id: str):
    log.info("Starting group seeding for shop %s...", shop_id)
    await init_db()
    
    service = GroupService(AsyncSessionLocal, ShopPermissionChecker(AsyncSessionLocal))
    group_ids = await ensure_default_groups(service, SEED_IDENTITY, shop_id)
    
    async with AsyncSessionLocal() as session:
        shop = await session.get(Shop, shop_id)
        owner_id = shop.owner_id if shop else None
    
    if owner_id:
        await service.add_user(SEED_IDENTITY, owner_id, group_ids["owner"], shop_id)
        log.info("Added shop owner %s to the owner group", owner_id)
    
    log.info("Group seeding completed successfully!")
    for name, group_config in DEFAULT_GROUPS.items():
        log.info("  - %s: %s", name, group_config["description"])


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
