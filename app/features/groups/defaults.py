"""
Default groups every shop starts with.
"""
from typing import Dict

from app.features.groups.schemas import GroupCreate
from app.features.groups.service import GroupService, Identity
from app.utils import get_logger, slugify


log = get_logger(__name__)


DEFAULT_GROUPS = {
    "owner": {
        "description": "Shop owners; full control of the shop",
        "permissions": [
            "owner", "admin", "dashboard", "shopSettings",
            "orders", "accounts", "products", "createProduct",
            "guest", "account/profile", "product", "tag", "index",
            "cart/checkout", "cart/completed",
        ],
    },
    "shop manager": {
        "description": "Staff managing the day-to-day operation of the shop",
        "permissions": [
            "admin", "dashboard", "shopSettings",
            "orders", "accounts", "products", "createProduct",
            "guest", "account/profile", "product", "tag", "index",
            "cart/checkout", "cart/completed",
        ],
    },
    "customer": {
        "description": "Registered customers",
        "permissions": [
            "guest", "account/profile", "product", "tag", "index",
            "cart/checkout", "cart/completed",
        ],
    },
    "guest": {
        "description": "Anonymous visitors",
        "permissions": [
            "anonymous", "guest", "product", "tag", "index",
            "cart/checkout", "cart/completed",
        ],
    },
}


async def ensure_default_groups(service: GroupService, identity: Identity, shop_id: str) -> Dict[str, str]:
    """
    Create any missing default group in a shop.

    Existing groups are matched by slug and left untouched.

    Returns:
        Mapping of default group slug -> group id
    """
    existing = {group.slug: group.id for group in await service.list_groups(shop_id)}
    group_ids = {}
    
    for name, group_config in DEFAULT_GROUPS.items():
        slug = slugify(name)
        if slug in existing:
            log.debug("Group %r already exists in shop %s, skipping", name, shop_id)
            group_ids[slug] = existing[slug]
            continue
        
        group_ids[slug] = await service.create_group(
            identity,
            GroupCreate(name=name, **group_config),
            shop_id,
        )
        log.info("Created default group %r in shop %s", name, shop_id)
    
    return group_ids
