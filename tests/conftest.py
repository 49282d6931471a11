# tests/conftest.py
import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from donordrive.deps import get_repo
from donordrive.main import app
from donordrive.repos.inmemory import InMemoryRepo
from factories import MANUAL_LOCATION, PASSWORD, clothes, toys


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def repo():
    return InMemoryRepo()


@pytest.fixture
async def test_client(repo):
    # fresh in-memory store per test
    app.dependency_overrides[get_repo] = lambda: repo
    try:
        async with LifespanManager(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def signup(test_client):
    async def _signup(username="donor1", user_type="donor", firstname="Ana", lastname="Cruz"):
        r = await test_client.post("/signup", json={
            "username": username,
            "password": PASSWORD,
            "firstname": firstname,
            "lastname": lastname,
            "securityQuestion": "Name of your first pet?",
            "securityAnswer": "Bantay",
            "userType": user_type,
        })
        assert r.status_code == 201, r.text
        data = r.json()
        return {
            "id": data["user"]["id"],
            "user": data["user"],
            "token": data["token"],
            "headers": {"Authorization": f"Bearer {data['token']}"},
        }
    return _signup


@pytest.fixture
def new_donation(test_client):
    async def _create(user_id, donation_type="clothes", items=None):
        if items is None:
            items = clothes(2, 1) if donation_type == "clothes" else toys(1)
        key = "clothingItems" if donation_type == "clothes" else "toyItems"
        r = await test_client.post("/donations", json={"userId": user_id, "donationType": donation_type, key: items})
        assert r.status_code == 201, r.text
        return r.json()["donation"]
    return _create


@pytest.fixture
def schedule(test_client):
    async def _schedule(user_id, donation_id, location=None, **extra):
        return await test_client.post("/schedule-pickup", json={
            "donationId": donation_id,
            "userId": user_id,
            "pickupDate": "2030-01-15T09:00:00Z",
            "location": location or MANUAL_LOCATION,
            **extra,
        })
    return _schedule
