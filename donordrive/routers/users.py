# donordrive/routers/users.py
import io
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from ..core.errors import BadRequest
from ..deps import get_base_url, get_repo
from ..schemas import AddressIn
from ..services import accounts, images

router = APIRouter(tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/users/{user_id}")
async def get_user(user_id: str, repo=Depends(get_repo), base_url: str = Depends(get_base_url)):
    return await accounts.get_user(repo, user_id, base_url)


@router.put("/users/profile/address")
async def update_address(body: AddressIn, repo=Depends(get_repo), base_url: str = Depends(get_base_url)):
    return await accounts.update_address(repo, body, base_url)


@router.post("/update-profile-image")
async def update_profile_image(
    user_id: Optional[str] = Form(None, alias="userId"),
    clear_image: Optional[str] = Form(None, alias="clearImage"),
    image: Optional[UploadFile] = File(None),
    repo=Depends(get_repo),
    base_url: str = Depends(get_base_url),
):
    if not user_id:
        raise BadRequest("User ID is required")

    if (clear_image or "").lower() == "true":
        return await images.clear_profile_image(repo, user_id, base_url)

    raw = await image.read() if image is not None else None
    if image is not None:
        logger.info("Profile image upload for %s: %s (%s, %d bytes)",
                    user_id, image.filename, image.content_type, len(raw or b""))
    return await images.replace_profile_image(repo, user_id, raw, base_url)


@router.get("/profile-image/{image_id}")
async def get_profile_image(image_id: str, repo=Depends(get_repo)):
    image = await images.load_profile_image(repo, image_id)
    return StreamingResponse(
        io.BytesIO(image["data"]),
        media_type=image["contentType"],
        headers={"Content-Length": str(image["length"])},
    )
