import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.core.database.engine import get_db, get_session_factory
from app.features.users.dependencies import get_current_user
from app.features.users.models import User

from conftest import SAMPLE_GROUP, make_user


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def login(user):
    async def override_get_current_user():
        return user
    app.dependency_overrides[get_current_user] = override_get_current_user


async def test_owner_manages_groups_over_http(client, shop, owner, user):
    login(owner)

    response = await client.post(f"/shops/{shop.id}/groups", json=SAMPLE_GROUP)
    assert response.status_code == 201
    group = response.json()
    assert group["slug"] == "shop-manager"
    assert group["permissions"] == SAMPLE_GROUP["permissions"]

    response = await client.post(f"/shops/{shop.id}/groups/{group['id']}/users", json={"user_id": user.id})
    assert response.status_code == 200
    assert response.json()["groups"] == [group["id"]]
    assert response.json()["permissions"] == SAMPLE_GROUP["permissions"]

    response = await client.put(
        f"/shops/{shop.id}/groups/{group['id']}",
        json={"permissions": ["new-permissions"]},
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Shop Manager"

    response = await client.get(f"/shops/{shop.id}/users/{user.id}/access")
    assert response.json()["permissions"] == ["new-permissions"]

    response = await client.get(f"/shops/{shop.id}/groups/{group['id']}/users")
    assert response.json()["user_ids"] == [user.id]

    response = await client.delete(f"/shops/{shop.id}/groups/{group['id']}/users/{user.id}")
    assert response.status_code == 200
    assert response.json()["groups"] == []

    response = await client.delete(f"/shops/{shop.id}/groups/{group['id']}")
    assert response.status_code == 204

    response = await client.get(f"/shops/{shop.id}/groups")
    assert response.json() == []


async def test_non_admin_gets_access_denied(client, shop, user):
    login(user)

    response = await client.post(f"/shops/{shop.id}/groups", json=SAMPLE_GROUP)

    assert response.status_code == 403
    assert "Access Denied" in response.json()["detail"]


async def test_unknown_group_is_404(client, shop, owner, user):
    login(owner)

    response = await client.post(
        f"/shops/{shop.id}/groups/01UNKNOWNGROUP000000000000/users",
        json={"user_id": user.id},
    )

    assert response.status_code == 404
    assert "Group not found" in response.json()["detail"]


async def test_malformed_group_is_400(client, shop, owner):
    login(owner)

    response = await client.post(f"/shops/{shop.id}/groups", json={"name": "Staff", "permissions": "orders"})

    assert response.status_code == 400
    assert "permissions" in response.json()


async def test_shop_response_includes_group_map(client, shop, owner):
    login(owner)
    created = (await client.post(f"/shops/{shop.id}/groups", json=SAMPLE_GROUP)).json()

    response = await client.get(f"/shops/{shop.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["group"][created["id"]]["permissions"] == SAMPLE_GROUP["permissions"]
    assert body["group_revision"] == shop.group_revision + 1


async def test_admin_creates_shop(client, session_factory):
    admin = await make_user(session_factory, "admin@example.com", is_admin=True)
    login(admin)

    response = await client.post("/shops", json={"name": "Corner Store"})

    assert response.status_code == 201
    assert response.json()["slug"] == "corner-store"
    assert response.json()["owner_id"] == admin.id
    assert response.json()["group"] == {}

    duplicate = await client.post("/shops", json={"name": "Corner Store"})
    assert duplicate.status_code == 400


async def test_my_shop_access(client, session_factory, shop, user, service, identity):
    group_id = await service.create_group(identity, SAMPLE_GROUP, shop.id)
    await service.add_user(identity, user.id, group_id, shop.id)
    async with session_factory() as session:
        login(await session.get(User, user.id))

    response = await client.get(f"/users/me/shops/{shop.id}")

    assert response.status_code == 200
    assert response.json()["groups"] == [group_id]
