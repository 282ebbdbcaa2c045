"""
Shared fixtures: a throwaway SQLite database per test, seeded users and shop,
and group services wired to stub permission predicates.
"""
import pytest

from app.core.database.engine import build_engine, build_session_factory, init_db
from app.features.users.models import User
from app.features.shops.models import Shop
from app.features.groups.models import ShopGroup, UserShopAccess, AuditLog  # noqa: F401
from app.features.groups.service import GroupService, Identity


SAMPLE_GROUP = {
    "name": "Shop Manager",
    "permissions": ["sample-role1", "sample-role2"],
}


def permission_stub(granted: bool):
    """Permission predicate that always answers ``granted`` and records its calls."""
    calls = []

    async def has_permission(identity, action, shop_id):
        calls.append((identity, action, shop_id))
        return granted

    has_permission.calls = calls
    return has_permission


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'groups.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


async def make_user(session_factory, email: str, is_admin: bool = False) -> User:
    async with session_factory() as session:
        user = User(appwrite_id=f"aw-{email}", email=email, name=email.split("@")[0], is_admin=is_admin)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest.fixture
async def owner(session_factory):
    return await make_user(session_factory, "owner@example.com")


@pytest.fixture
async def user(session_factory):
    return await make_user(session_factory, "member@example.com")


@pytest.fixture
async def shop(session_factory, owner):
    async with session_factory() as session:
        shop = Shop(name="Example Shop", slug="example-shop", owner_id=owner.id)
        session.add(shop)
        await session.commit()
        await session.refresh(shop)
        return shop


@pytest.fixture
def identity(owner):
    return Identity(user_id=owner.id)


@pytest.fixture
def allow():
    return permission_stub(True)


@pytest.fixture
def deny():
    return permission_stub(False)


@pytest.fixture
def service(session_factory, allow):
    return GroupService(session_factory, allow)


@pytest.fixture
def denied_service(session_factory, deny):
    return GroupService(session_factory, deny)


async def load_access(session_factory, user_id: str, shop_id: str):
    async with session_factory() as session:
        return await session.get(UserShopAccess, (user_id, shop_id))


async def load_shop(session_factory, shop_id: str) -> Shop:
    async with session_factory() as session:
        return await session.get(Shop, shop_id)
