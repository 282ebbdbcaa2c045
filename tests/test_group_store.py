import pytest
from sqlalchemy.orm.exc import StaleDataError

from app.features.groups.errors import ConcurrentModification, NotFound
from app.features.groups.schemas import GroupCreate, GroupUpdate
from app.features.groups.store import GroupStore

from conftest import load_shop


async def test_create_group_stores_slug_and_unique_permissions(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        group_id = await store.create_group(
            shop.id, GroupCreate(name="  Shop Manager ", permissions=["orders", "orders", "refunds"])
        )
        await session.commit()

    async with session_factory() as session:
        group = await GroupStore(session).require_group(shop.id, group_id)
        assert group.name == "Shop Manager"
        assert group.slug == "shop-manager"
        assert group.permissions == ["orders", "refunds"]


async def test_group_ids_are_unique_within_shop(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        ids = [await store.create_group(shop.id, GroupCreate(name="Staff")) for _ in range(5)]
        await session.commit()

    assert len(set(ids)) == 5


async def test_unknown_shop_raises_not_found(session_factory):
    async with session_factory() as session:
        store = GroupStore(session)
        with pytest.raises(NotFound, match="Shop"):
            await store.create_group("01UNKNOWNSHOP0000000000000", GroupCreate(name="Staff"))
        with pytest.raises(NotFound):
            await store.list_groups("01UNKNOWNSHOP0000000000000")


async def test_get_group_returns_none_when_missing(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        assert await store.get_group(shop.id, "01UNKNOWNGROUP000000000000") is None
        with pytest.raises(NotFound, match="Group"):
            await store.require_group(shop.id, "01UNKNOWNGROUP000000000000")


async def test_update_group_replaces_only_given_fields(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        group_id = await store.create_group(
            shop.id, GroupCreate(name="Staff", description="Counter staff", permissions=["a", "b"])
        )
        await store.update_group(shop.id, group_id, GroupUpdate(permissions=["c"]))
        await session.commit()

    async with session_factory() as session:
        group = await GroupStore(session).require_group(shop.id, group_id)
        assert group.name == "Staff"
        assert group.description == "Counter staff"
        assert group.permissions == ["c"]


async def test_remove_group(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        keep = await store.create_group(shop.id, GroupCreate(name="Keep"))
        drop = await store.create_group(shop.id, GroupCreate(name="Drop"))
        await store.remove_group(shop.id, drop)
        await session.commit()

    async with session_factory() as session:
        groups = await GroupStore(session).list_groups(shop.id)
        assert [group.id for group in groups] == [keep]


async def test_get_groups_skips_unknown_ids(session_factory, shop):
    async with session_factory() as session:
        store = GroupStore(session)
        first = await store.create_group(shop.id, GroupCreate(name="First"))
        second = await store.create_group(shop.id, GroupCreate(name="Second"))

        found = await store.get_groups(shop.id, [first, "01UNKNOWNGROUP000000000000", second])
        assert set(found) == {first, second}
        assert await store.get_groups(shop.id, []) == {}


async def test_exhausted_id_allocation_is_a_group_error(session_factory, shop, monkeypatch):
    async with session_factory() as session:
        store = GroupStore(session)
        taken = await store.create_group(shop.id, GroupCreate(name="Staff"))

        monkeypatch.setattr("ulid.ulid", lambda: taken)
        with pytest.raises(ConcurrentModification, match="group id"):
            await store.create_group(shop.id, GroupCreate(name="Other"))


async def test_lock_shop_bumps_revision_immediately(session_factory, shop):
    async with session_factory() as session:
        locked = await GroupStore(session).lock_shop(shop.id)
        assert locked.group_revision == shop.group_revision + 1
        await session.commit()

    assert (await load_shop(session_factory, shop.id)).group_revision == shop.group_revision + 1


async def test_lock_shop_fails_for_stale_reader(session_factory, shop):
    async with session_factory() as stale:
        await GroupStore(stale).get_shop(shop.id)

        async with session_factory() as winner:
            await GroupStore(winner).lock_shop(shop.id)
            await winner.commit()

        with pytest.raises(StaleDataError):
            await GroupStore(stale).lock_shop(shop.id)
