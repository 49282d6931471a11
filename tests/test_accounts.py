import jwt
import pytest
from bson import ObjectId
from httpx import AsyncClient

from donordrive.core.config import settings
from donordrive.core.security import create_token
from factories import PASSWORD

pytestmark = pytest.mark.anyio

BASE = {
    "password": PASSWORD,
    "firstname": "Ana",
    "lastname": "Cruz",
    "securityQuestion": "Name of your first pet?",
    "securityAnswer": "Bantay",
}


async def test_signup_returns_token_and_public_user(test_client: AsyncClient, repo):
    r = await test_client.post("/signup", json={"username": "ana.cruz", **BASE})
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["message"] == "User created successfully"
    user = data["user"]
    assert user["username"] == "ana.cruz"
    assert user["userType"] == "donor"
    assert user["points"] == 0
    assert user["profileImage"] is None
    assert "password" not in user and "securityAnswer" not in user

    claims = jwt.decode(data["token"], settings.jwt_secret, algorithms=[settings.jwt_alg])
    assert claims["id"] == user["id"]
    assert claims["userType"] == "donor"

    stored = await repo.get_user(ObjectId(user["id"]))
    assert stored["password"] != PASSWORD
    assert stored["securityAnswer"] != "Bantay"


async def test_driver_signup_gets_driver_fields(test_client: AsyncClient):
    r = await test_client.post("/signup", json={"username": "driver1", "userType": "driver", **BASE})
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["userType"] == "driver"
    assert user["isAvailable"] is True
    assert user["activePickups"] == []
    assert user["currentLocation"] is None


@pytest.mark.parametrize("override, detail", [
    ({"username": "abc"}, "Username must be at least 4 characters and start with a letter"),
    ({"username": "1abcd"}, "Username must be at least 4 characters and start with a letter"),
    ({"password": "abc!"}, "Password must be at least 6 characters and contain at least one special character"),
    ({"password": "abcdefgh"}, "Password must be at least 6 characters and contain at least one special character"),
    ({"firstname": "  "}, "All fields are required"),
    ({"securityAnswer": None}, "All fields are required"),
])
async def test_signup_rules(test_client: AsyncClient, override, detail):
    body = {"username": "ana.cruz", **BASE, **override}
    r = await test_client.post("/signup", json=body)
    assert r.status_code == 400
    assert r.json()["detail"] == detail


async def test_signup_unknown_user_type(test_client: AsyncClient):
    r = await test_client.post("/signup", json={"username": "ana.cruz", "userType": "admin", **BASE})
    assert r.status_code == 400


async def test_signup_duplicate_username(test_client: AsyncClient, signup):
    await signup("ana.cruz")
    r = await test_client.post("/signup", json={"username": "ana.cruz", **BASE})
    assert r.status_code == 400
    assert r.json()["detail"] == "Username already exists"


async def test_login(test_client: AsyncClient, signup):
    created = await signup("ana.cruz")
    r = await test_client.post("/login", json={"username": "ana.cruz", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == created["id"]
    assert r.json()["token"]

    r = await test_client.post("/login", json={"username": "ana.cruz", "password": "wrong!!"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"

    r = await test_client.post("/login", json={"username": "ghost", "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"

    r = await test_client.post("/login", json={"username": "ana.cruz"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Username and password are required"


async def test_me_and_token_errors(test_client: AsyncClient, signup):
    created = await signup()
    r = await test_client.get("/me", headers=created["headers"])
    assert r.status_code == 200
    assert r.json()["user"]["id"] == created["id"]

    expired = create_token({"id": created["id"], "username": "donor1", "userType": "donor"}, minutes=-1)
    r = await test_client.get("/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"

    orphan = create_token({"id": str(ObjectId()), "username": "x", "userType": "donor"}, minutes=5)
    r = await test_client.get("/me", headers={"Authorization": f"Bearer {orphan}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "User not found"


async def test_password_reset_flow(test_client: AsyncClient, signup):
    created = await signup("ana.cruz")

    r = await test_client.post("/request-password-reset", json={"email": "ana.cruz"})
    assert r.status_code == 200
    assert r.json() == {"securityQuestion": "Name of your first pet?"}

    r = await test_client.post("/request-password-reset", json={"email": "ghost"})
    assert r.status_code == 404

    r = await test_client.post("/verify-security-answer", json={"email": "ana.cruz", "answer": "Whiskers"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Incorrect security answer"

    r = await test_client.post("/verify-security-answer", json={"email": "ana.cruz", "answer": "  bANTAY "})
    assert r.status_code == 200
    reset_token = r.json()["resetToken"]

    # a reset token is not a login token
    r = await test_client.get("/me", headers={"Authorization": f"Bearer {reset_token}"})
    assert r.status_code == 401

    r = await test_client.post("/reset-password", json={"resetToken": reset_token, "newPassword": "weak"})
    assert r.status_code == 400

    r = await test_client.post("/reset-password", json={"resetToken": reset_token, "newPassword": "n3w-pass!"})
    assert r.status_code == 200
    assert r.json()["message"] == "Password updated successfully"

    assert (await test_client.post("/login", json={"username": "ana.cruz", "password": PASSWORD})).status_code == 401
    r = await test_client.post("/login", json={"username": "ana.cruz", "password": "n3w-pass!"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == created["id"]


async def test_reset_rejects_access_token(test_client: AsyncClient, signup):
    created = await signup()
    r = await test_client.post("/reset-password", json={"resetToken": created["token"], "newPassword": "n3w-pass!"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


async def test_get_user(test_client: AsyncClient, signup):
    created = await signup()
    r = await test_client.get(f"/users/{created['id']}")
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["user"]["firstname"] == "Ana"

    assert (await test_client.get(f"/users/{ObjectId()}")).status_code == 404
    r = await test_client.get("/users/not-an-id")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid user ID format"


async def test_update_address(test_client: AsyncClient, signup):
    created = await signup()
    r = await test_client.put("/users/profile/address", json={
        "userId": created["id"], "address": "5 Rizal Ave", "city": "Manila",
        "phoneNumber": "0917-222-3333", "addressNotes": "Blue gate",
    })
    assert r.status_code == 200
    user = r.json()["user"]
    assert (user["address"], user["city"], user["addressNotes"]) == ("5 Rizal Ave", "Manila", "Blue gate")

    r = await test_client.put("/users/profile/address", json={"userId": created["id"], "address": "5 Rizal Ave"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Address and city are required"

    r = await test_client.put("/users/profile/address", json={"address": "x", "city": "y"})
    assert r.status_code == 400
    assert r.json()["detail"] == "User ID is required"


async def test_root_and_health(test_client: AsyncClient):
    assert (await test_client.get("/health")).json() == {"ok": True}
    assert "DonorDrive" in (await test_client.get("/")).json()["message"]
