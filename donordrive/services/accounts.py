# donordrive/services/accounts.py
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from donordrive.core.errors import BadRequest, NotFound, Unauthorized
from donordrive.core.security import (
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    hash_security_answer,
    verify_password,
    verify_security_answer,
)
from donordrive.repos import PRIVATE_USER_FIELDS, UsernameTaken
from donordrive.repos.ids import jsonable, parse_oid, to_oid
from donordrive.schemas import AddressIn, LoginIn, SignupIn

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z]")
SPECIAL_CHAR_RE = re.compile(r'[!@#$%^&*(),.?":{}|<>]')

PASSWORD_RULE = "Password must be at least 6 characters and contain at least one special character"


def profile_image_url(base_url: str, image_id) -> Optional[str]:
    if not image_id:
        return None
    return f"{base_url.rstrip('/')}/profile-image/{image_id}"


def public_user(user: dict, base_url: str) -> dict:
    out = jsonable({k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS})
    out["profileImage"] = profile_image_url(base_url, user.get("profileImage"))
    out.setdefault("points", 0)
    out.setdefault("userType", "donor")
    return out


def _check_password(password: str):
    if len(password) < 6 or not SPECIAL_CHAR_RE.search(password):
        raise BadRequest(PASSWORD_RULE)


async def signup(repo, body: SignupIn, base_url: str) -> dict:
    required = (body.username, body.password, body.firstname, body.lastname,
                body.security_question, body.security_answer)
    if not all(v and v.strip() for v in required):
        raise BadRequest("All fields are required")
    if len(body.username) < 4 or not USERNAME_RE.match(body.username):
        raise BadRequest("Username must be at least 4 characters and start with a letter")
    _check_password(body.password)

    if await repo.find_user_by_username(body.username):
        raise BadRequest("Username already exists")

    doc = {
        "username": body.username,
        "password": hash_password(body.password),
        "firstname": body.firstname,
        "lastname": body.lastname,
        "securityQuestion": body.security_question,
        "securityAnswer": hash_security_answer(body.security_answer),
        "points": 0,
        "userType": body.user_type,
        "profileImage": None,
        "createdAt": datetime.now(timezone.utc),
    }
    if body.user_type == "driver":
        doc.update({"isAvailable": True, "currentLocation": None, "activePickups": []})

    try:
        user = await repo.create_user(doc)
    except UsernameTaken:
        raise BadRequest("Username already exists")

    logger.info("New %s account %s", user["userType"], user["username"])
    return {
        "message": "User created successfully",
        "token": create_access_token(user),
        "user": public_user(user, base_url),
    }


async def login(repo, body: LoginIn, base_url: str) -> dict:
    if not body.username or not body.password:
        raise BadRequest("Username and password are required")

    user = await repo.find_user_by_username(body.username)
    if not user or not verify_password(body.password, user.get("password", "")):
        logger.info("Failed login for %s", body.username)
        raise Unauthorized("Invalid credentials")

    return {"token": create_access_token(user), "user": public_user(user, base_url)}


async def _user_by_username(repo, username: str) -> dict:
    user = await repo.find_user_by_username(username)
    if not user:
        raise NotFound("User not found")
    return user


async def request_password_reset(repo, email: str) -> dict:
    user = await _user_by_username(repo, email)
    return {"securityQuestion": user["securityQuestion"]}


async def verify_answer(repo, email: str, answer: str) -> dict:
    user = await _user_by_username(repo, email)
    if not verify_security_answer(answer, user.get("securityAnswer", "")):
        raise Unauthorized("Incorrect security answer")
    return {"message": "Security answer verified", "resetToken": create_reset_token(user)}


async def reset_password(repo, reset_token: str, new_password: str) -> dict:
    try:
        data = decode_token(reset_token)
    except HTTPException:
        raise Unauthorized("Invalid or expired token")
    if data.get("purpose") != "reset":
        raise Unauthorized("Invalid or expired token")
    _check_password(new_password)

    try:
        user_id = parse_oid(data.get("id"), "user")
    except ValueError:
        raise Unauthorized("Invalid or expired token")
    if not await repo.update_user(user_id, {"password": hash_password(new_password)}):
        raise NotFound("User not found")
    logger.info("Password reset for user %s", user_id)
    return {"message": "Password updated successfully"}


async def get_user(repo, user_id: str, base_url: str) -> dict:
    user = await repo.get_user(to_oid(user_id, "user"))
    if not user:
        raise NotFound("User not found")
    return {"success": True, "user": public_user(user, base_url)}


async def update_address(repo, body: AddressIn, base_url: str) -> dict:
    if not body.user_id:
        raise BadRequest("User ID is required")
    if not body.address or not body.city:
        raise BadRequest("Address and city are required")

    fields = {
        "address": body.address,
        "city": body.city,
        "phoneNumber": body.phone_number,
        "addressNotes": body.address_notes,
    }
    user = await repo.update_user(to_oid(body.user_id, "user"), fields)
    if not user:
        raise NotFound("User not found")
    return {"success": True, "message": "Address updated successfully", "user": public_user(user, base_url)}
