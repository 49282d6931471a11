# donordrive/services/images.py
import io
import logging
import time
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from donordrive.core.errors import BadRequest, NotFound
from donordrive.repos.ids import to_oid
from donordrive.services.accounts import public_user

logger = logging.getLogger(__name__)

PROFILE_SIZE = (300, 300)
JPEG_QUALITY = 85


def process_profile_image(raw: bytes) -> bytes:
    """Centre-crop to a 300x300 square and re-encode as progressive JPEG."""
    try:
        img = Image.open(io.BytesIO(raw))
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError) as ex:
        raise BadRequest(f"Invalid image file: {ex}")

    img = ImageOps.fit(img.convert("RGB"), PROFILE_SIZE, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=JPEG_QUALITY, progressive=True, optimize=True)
    return buf.getvalue()


async def _drop_image(repo, image_id):
    if not image_id:
        return
    if not await repo.delete_image(image_id):
        logger.warning("Profile image %s was already missing", image_id)


async def clear_profile_image(repo, user_id: str, base_url: str) -> dict:
    oid = to_oid(user_id, "user")
    user = await repo.get_user(oid)
    if not user:
        raise NotFound("User not found")

    await _drop_image(repo, user.get("profileImage"))
    updated = await repo.update_user(oid, {}, unset=["profileImage"])
    if not updated:
        raise NotFound("User not found")
    logger.info("Profile image cleared for user %s", oid)
    return {"message": "Profile image cleared successfully", "user": public_user(updated, base_url)}


async def replace_profile_image(repo, user_id: str, raw: Optional[bytes], base_url: str) -> dict:
    if not raw:
        raise BadRequest("Image file is required for upload")
    oid = to_oid(user_id, "user")
    user = await repo.get_user(oid)
    if not user:
        raise NotFound("User not found")

    data = process_profile_image(raw)
    filename = f"profile_{oid}_{int(time.time() * 1000)}"
    file_id = await repo.put_image(filename, data, "image/jpeg", {"userId": str(oid)})

    await _drop_image(repo, user.get("profileImage"))
    updated = await repo.update_user(oid, {"profileImage": file_id})
    if not updated:
        raise NotFound("User not found")
    logger.info("Profile image %s stored for user %s (%d bytes)", file_id, oid, len(data))
    return {"message": "Profile image updated successfully", "user": public_user(updated, base_url)}


async def load_profile_image(repo, image_id: str) -> dict:
    try:
        oid = to_oid(image_id, "image")
    except BadRequest:
        raise BadRequest("Valid image ID is required")
    image = await repo.get_image(oid)
    if not image:
        raise NotFound("Image not found")
    return image
