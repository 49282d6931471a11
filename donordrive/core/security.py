from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext

from donordrive.core.config import settings
from donordrive.deps import get_repo
from donordrive.repos.ids import parse_oid

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash((password or "")[:72])


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify((password or "")[:72], hashed)
    except ValueError:
        # empty or non-bcrypt hash
        return False


def _normalize_answer(answer: str) -> str:
    return (answer or "").strip().lower()


def hash_security_answer(answer: str) -> str:
    return hash_password(_normalize_answer(answer))


def verify_security_answer(answer: str, hashed: str) -> bool:
    return verify_password(_normalize_answer(answer), hashed)


def create_token(payload: Dict[str, Any], minutes: int):
    payload = dict(payload)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def create_access_token(user: dict) -> str:
    return create_token(
        {"id": str(user["_id"]), "username": user["username"], "userType": user.get("userType", "donor")},
        minutes=settings.access_ttl_days * 24 * 60,
    )


def create_reset_token(user: dict) -> str:
    return create_token(
        {"id": str(user["_id"]), "username": user["username"], "purpose": "reset"},
        minutes=settings.reset_ttl_min,
    )


def decode_token(token: str):
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Token is invalid")


async def get_current_user(token: str | None = Depends(oauth2_scheme), repo=Depends(get_repo)):
    if not token:
        raise HTTPException(status_code=401, detail="No authentication token, access denied")
    data = decode_token(token)
    if data.get("purpose") == "reset":
        raise HTTPException(status_code=401, detail="Token is invalid")
    try:
        user_id = parse_oid(data.get("id"), "user")
    except ValueError:
        raise HTTPException(status_code=401, detail="Token is invalid")
    user = await repo.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_user_type(user_type: str):
    async def checker(user=Depends(get_current_user)):
        if user.get("userType") != user_type:
            raise HTTPException(status_code=403, detail="Unauthorized")
        return user
    return checker


require_driver = require_user_type("driver")
