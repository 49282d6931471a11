from fastapi import APIRouter, Depends, status

from ..core.security import get_current_user
from ..deps import get_base_url, get_repo
from ..schemas import LoginIn, PasswordResetRequest, ResetPasswordIn, SecurityAnswerIn, SignupIn
from ..services import accounts

router = APIRouter(tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupIn, repo=Depends(get_repo), base_url: str = Depends(get_base_url)):
    return await accounts.signup(repo, body, base_url)


@router.post("/login")
async def login(body: LoginIn, repo=Depends(get_repo), base_url: str = Depends(get_base_url)):
    return await accounts.login(repo, body, base_url)


@router.post("/request-password-reset")
async def request_password_reset(body: PasswordResetRequest, repo=Depends(get_repo)):
    return await accounts.request_password_reset(repo, body.email)


@router.post("/verify-security-answer")
async def verify_security_answer(body: SecurityAnswerIn, repo=Depends(get_repo)):
    return await accounts.verify_answer(repo, body.email, body.answer)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordIn, repo=Depends(get_repo)):
    return await accounts.reset_password(repo, body.reset_token, body.new_password)


@router.get("/me")
async def me(user=Depends(get_current_user), base_url: str = Depends(get_base_url)):
    return {"user": accounts.public_user(user, base_url)}
