import pytest

from app.features.groups.errors import ProjectionError
from app.features.groups.models import UserShopAccess
from app.features.groups.projections import MembershipProjector, PermissionProjector, get_access
from app.features.groups.schemas import GroupCreate
from app.features.groups.store import GroupStore


def projectors(session):
    store = GroupStore(session)
    permissions = PermissionProjector(session, store)
    return store, permissions, MembershipProjector(session, permissions)


async def test_permissions_are_union_of_group_permissions(session_factory, shop, user):
    async with session_factory() as session:
        store, _, memberships = projectors(session)
        manager = await store.create_group(shop.id, GroupCreate(name="Manager", permissions=["a", "b"]))
        clerk = await store.create_group(shop.id, GroupCreate(name="Clerk", permissions=["b", "c"]))

        await memberships.add_membership(shop.id, user.id, manager)
        await memberships.add_membership(shop.id, user.id, clerk)

        access = await get_access(session, user.id, shop.id)
        assert access.groups == [manager, clerk]
        assert access.permissions == ["a", "b", "c"]


async def test_add_membership_is_idempotent(session_factory, shop, user):
    async with session_factory() as session:
        store, _, memberships = projectors(session)
        group_id = await store.create_group(shop.id, GroupCreate(name="Staff", permissions=["a"]))

        await memberships.add_membership(shop.id, user.id, group_id)
        await memberships.add_membership(shop.id, user.id, group_id)

        access = await get_access(session, user.id, shop.id)
        assert access.groups == [group_id]
        assert access.permissions == ["a"]


async def test_recompute_overwrites_stale_permissions(session_factory, shop, user):
    async with session_factory() as session:
        store, permissions, memberships = projectors(session)
        group_id = await store.create_group(shop.id, GroupCreate(name="Staff", permissions=["a"]))
        await memberships.add_membership(shop.id, user.id, group_id)

        access = await get_access(session, user.id, shop.id)
        access.permissions = ["a", "left-over"]

        assert await permissions.recompute_permissions(shop.id, user.id) == ["a"]
        assert access.permissions == ["a"]


async def test_remove_last_membership_clears_permissions(session_factory, shop, user):
    async with session_factory() as session:
        store, _, memberships = projectors(session)
        group_id = await store.create_group(shop.id, GroupCreate(name="Staff", permissions=["a"]))
        await memberships.add_membership(shop.id, user.id, group_id)

        await memberships.remove_membership(shop.id, user.id, group_id)

        access = await get_access(session, user.id, shop.id)
        assert access.groups == []
        assert access.permissions == []


async def test_remove_membership_without_access_row(session_factory, shop, user):
    async with session_factory() as session:
        _, permissions, memberships = projectors(session)
        await memberships.remove_membership(shop.id, user.id, "01UNKNOWNGROUP000000000000")

        assert await get_access(session, user.id, shop.id) is None
        assert await permissions.recompute_permissions(shop.id, user.id) == []


async def test_dangling_membership_is_a_projection_error(session_factory, shop, user):
    async with session_factory() as session:
        _, permissions, _ = projectors(session)
        session.add(UserShopAccess(
            user_id=user.id,
            shop_id=shop.id,
            groups=["01DELETEDGROUP000000000000"],
            permissions=[],
        ))
        await session.flush()

        with pytest.raises(ProjectionError, match="01DELETEDGROUP000000000000"):
            await permissions.recompute_permissions(shop.id, user.id)


async def test_members_of_lists_only_holders(session_factory, shop, user, owner):
    async with session_factory() as session:
        store, _, memberships = projectors(session)
        staff = await store.create_group(shop.id, GroupCreate(name="Staff"))
        other = await store.create_group(shop.id, GroupCreate(name="Other"))
        await memberships.add_membership(shop.id, user.id, staff)
        await memberships.add_membership(shop.id, owner.id, other)
        await session.flush()

        assert await memberships.members_of(shop.id, staff) == [user.id]
        assert await memberships.members_of(shop.id, other) == [owner.id]


async def test_members_of_matches_whole_group_ids(session_factory, shop, user, owner):
    async with session_factory() as session:
        _, _, memberships = projectors(session)
        session.add_all([
            UserShopAccess(user_id=user.id, shop_id=shop.id, groups=["STAFF"], permissions=[]),
            UserShopAccess(user_id=owner.id, shop_id=shop.id, groups=["STAFF2", "XSTAFF"], permissions=[]),
        ])
        await session.flush()

        assert await memberships.members_of(shop.id, "STAFF") == [user.id]
        assert await memberships.members_of(shop.id, "STAFF2") == [owner.id]
        assert await memberships.members_of(shop.id, "STAF") == []
