"""
Group lifecycle service.

Orchestrates the group operations of a shop:

    group/createGroup   group/updateGroup   group/removeGroup
    group/addUser       group/removeUser

Every mutating call first asks the permission predicate whether the caller
may administer the shop, then performs the catalog change and all dependent
projection writes in one transaction. The first write of that transaction
bumps the shop's group revision, so overlapping writers on the same shop are
serialized: the loser is retried from scratch against the fresh state.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core import config
from app.core.database.transaction import RetriesExhausted, run_in_transaction, run_read
from app.features.users.models import User
from app.features.groups.models import AuditLog, ShopGroup, UserShopAccess
from app.features.groups.schemas import GroupCreate, GroupUpdate
from app.features.groups.store import GroupStore
from app.features.groups.projections import MembershipProjector, PermissionProjector, get_access
from app.features.groups.errors import AccessDenied, ConcurrentModification, NotFound, ValidationError
from app.utils import get_logger


log = get_logger(__name__)

ADMIN_ACTION = "admin"


@dataclass(frozen=True)
class Identity:
    """The caller of a lifecycle operation."""
    user_id: Optional[str]
    is_admin: bool = False


PermissionPredicate = Callable[[Identity, str, str], Awaitable[bool]]


def _parse(model: type[BaseModel], data: Union[BaseModel, Dict[str, Any]]) -> Any:
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = {
            ".".join(str(part) for part in error["loc"]) or "root": error["msg"]
            for error in exc.errors()
        }
        raise ValidationError(f"Invalid group data: {errors}", errors) from exc


class _Unit:
    """Collaborators bound to the session of one transaction attempt."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = GroupStore(session)
        self.permissions = PermissionProjector(session, self.store)
        self.memberships = MembershipProjector(session, self.permissions)

    def audit(self, identity: Identity, action: str, shop_id: str,
              group_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        self.session.add(AuditLog(
            user_id=identity.user_id,
            action=action,
            shop_id=shop_id,
            group_id=group_id,
            details=details,
        ))


class GroupService:
    """Entry point for group operations on a shop."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        has_permission: PermissionPredicate,
        max_attempts: int = config.GROUP_WRITE_RETRIES,
    ):
        self.session_factory = session_factory
        self.has_permission = has_permission
        self.max_attempts = max_attempts

    async def _authorize(self, identity: Identity, shop_id: str) -> None:
        if not await self.has_permission(identity, ADMIN_ACTION, shop_id):
            log.warning("Access denied: user %s is not an admin of shop %s", identity.user_id, shop_id)
            raise AccessDenied(ADMIN_ACTION, shop_id)

    async def _write(self, operation: str, work: Callable[[_Unit], Awaitable[Any]]) -> Any:
        async def attempt(session: AsyncSession) -> Any:
            return await work(_Unit(session))

        try:
            return await run_in_transaction(self.session_factory, attempt, max_attempts=self.max_attempts)
        except RetriesExhausted as exc:
            raise ConcurrentModification(
                f"{operation} conflicted with concurrent changes {exc.attempts} times, giving up"
            ) from exc

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_group(self, identity: Identity, group_data: Union[GroupCreate, Dict[str, Any]],
                           shop_id: str) -> str:
        """Create a group in the shop's catalog and return its id."""
        await self._authorize(identity, shop_id)
        data = _parse(GroupCreate, group_data)

        async def work(unit: _Unit) -> str:
            await unit.store.lock_shop(shop_id)
            group_id = await unit.store.create_group(shop_id, data)
            unit.audit(identity, "group/createGroup", shop_id, group_id, data.model_dump())
            return group_id

        group_id = await self._write("group/createGroup", work)
        log.info("Created group %s (%r) in shop %s", group_id, data.name, shop_id)
        return group_id

    async def update_group(self, identity: Identity, group_id: str,
                           group_data: Union[GroupUpdate, Dict[str, Any]], shop_id: str) -> None:
        """
        Update a group, then recompute permissions for every current member.

        Members see the new permission set without having to re-join.
        """
        await self._authorize(identity, shop_id)
        data = _parse(GroupUpdate, group_data)

        async def work(unit: _Unit) -> List[str]:
            await unit.store.lock_shop(shop_id)
            await unit.store.update_group(shop_id, group_id, data)
            members = await unit.memberships.members_of(shop_id, group_id)
            for user_id in members:
                await unit.permissions.recompute_permissions(shop_id, user_id)
            unit.audit(identity, "group/updateGroup", shop_id, group_id,
                       data.model_dump(exclude_unset=True))
            return members

        members = await self._write("group/updateGroup", work)
        log.info("Updated group %s in shop %s, recomputed %d member(s)", group_id, shop_id, len(members))

    async def remove_group(self, identity: Identity, group_id: str, shop_id: str) -> None:
        """Delete a group and strip it from every member's projections."""
        await self._authorize(identity, shop_id)

        async def work(unit: _Unit) -> List[str]:
            await unit.store.lock_shop(shop_id)
            group = await unit.store.require_group(shop_id, group_id)
            name = group.name
            members = await unit.memberships.members_of(shop_id, group_id)
            await unit.store.remove_group(shop_id, group_id)
            for user_id in members:
                await unit.memberships.remove_membership(shop_id, user_id, group_id)
            unit.audit(identity, "group/removeGroup", shop_id, group_id,
                       {"name": name, "members": members})
            return members

        members = await self._write("group/removeGroup", work)
        log.info("Removed group %s from shop %s, detached %d member(s)", group_id, shop_id, len(members))

    async def add_user(self, identity: Identity, user_id: str, group_id: str, shop_id: str) -> None:
        """Add a user to a group of the shop. Repeating the call is a no-op."""
        await self._authorize(identity, shop_id)

        async def work(unit: _Unit) -> None:
            await unit.store.lock_shop(shop_id)
            await unit.store.require_group(shop_id, group_id)
            if await unit.session.get(User, user_id) is None:
                raise NotFound("User", user_id)
            await unit.memberships.add_membership(shop_id, user_id, group_id)
            unit.audit(identity, "group/addUser", shop_id, group_id, {"user_id": user_id})

        await self._write("group/addUser", work)
        log.info("Added user %s to group %s in shop %s", user_id, group_id, shop_id)

    async def remove_user(self, identity: Identity, user_id: str, group_id: str, shop_id: str) -> None:
        """Remove a user from a group of the shop. Removing a non-member is a no-op."""
        await self._authorize(identity, shop_id)

        async def work(unit: _Unit) -> None:
            await unit.store.lock_shop(shop_id)
            await unit.memberships.remove_membership(shop_id, user_id, group_id)
            unit.audit(identity, "group/removeUser", shop_id, group_id, {"user_id": user_id})

        await self._write("group/removeUser", work)
        log.info("Removed user %s from group %s in shop %s", user_id, group_id, shop_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_group(self, shop_id: str, group_id: str) -> ShopGroup:
        async def work(session: AsyncSession) -> ShopGroup:
            store = GroupStore(session)
            await store.get_shop(shop_id)
            return await store.require_group(shop_id, group_id)
        return await run_read(self.session_factory, work)

    async def list_groups(self, shop_id: str) -> List[ShopGroup]:
        return await run_read(self.session_factory, lambda session: GroupStore(session).list_groups(shop_id))

    async def list_members(self, shop_id: str, group_id: str) -> List[str]:
        async def work(session: AsyncSession) -> List[str]:
            unit = _Unit(session)
            await unit.store.get_shop(shop_id)
            await unit.store.require_group(shop_id, group_id)
            return await unit.memberships.members_of(shop_id, group_id)
        return await run_read(self.session_factory, work)

    async def get_user_access(self, user_id: str, shop_id: str) -> UserShopAccess:
        """The user's memberships and effective permissions in the shop (empty if none)."""
        async def work(session: AsyncSession) -> UserShopAccess:
            await GroupStore(session).get_shop(shop_id)
            access = await get_access(session, user_id, shop_id)
            if access is None:
                return UserShopAccess(user_id=user_id, shop_id=shop_id, groups=[], permissions=[])
            return access
        return await run_read(self.session_factory, work)
