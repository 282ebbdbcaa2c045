"""
Permission checking and dependency wiring for shop groups.

Implements:
- The shop-scoped permission predicate used to gate group administration
- FastAPI dependencies providing the caller identity and the group service
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database.engine import get_session_factory
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.features.shops.models import Shop
from app.features.groups.projections import get_access
from app.features.groups.service import GroupService, Identity
from app.utils import get_logger


log = get_logger(__name__)

OWNER_PERMISSION = "owner"


class ShopPermissionChecker:
    """
    Decide whether an identity may perform ``action`` in a shop.

    Granted when any of these hold:
    1. The identity is a global admin
    2. The identity owns the shop
    3. The identity's effective permissions in the shop include ``action``
       or the ``owner`` permission
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def __call__(self, identity: Identity, action: str, shop_id: str) -> bool:
        if identity.is_admin:
            log.debug("User %s is admin - granted %s in shop %s", identity.user_id, action, shop_id)
            return True

        if identity.user_id is None:
            return False

        async with self.session_factory() as session:
            shop = await session.get(Shop, shop_id)
            if shop is None:
                log.debug("Shop %s not found - denied %s to user %s", shop_id, action, identity.user_id)
                return False

            if shop.owner_id == identity.user_id:
                return True

            access = await get_access(session, identity.user_id, shop_id)
            if access is not None and (action in access.permissions or OWNER_PERMISSION in access.permissions):
                log.debug("User %s granted %s in shop %s via group permissions", identity.user_id, action, shop_id)
                return True

        log.debug("User %s denied %s in shop %s", identity.user_id, action, shop_id)
        return False


async def get_identity(
    user: Annotated[User, Depends(get_current_user)]
) -> Identity:
    """Identity of the authenticated caller."""
    return Identity(user_id=user.id, is_admin=user.is_admin)


def get_group_service(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
) -> GroupService:
    """
    Group service bound to the application's session factory.

    Usage:
        @router.post("/shops/{shop_id}/groups")
        async def create_group(
            service: GroupService = Depends(get_group_service),
            identity: Identity = Depends(get_identity),
        ):
            ...
    """
    return GroupService(session_factory, ShopPermissionChecker(session_factory))
