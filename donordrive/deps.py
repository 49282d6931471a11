import logging

from dotenv import load_dotenv
from fastapi import Request
load_dotenv()

from donordrive.core.config import settings  # noqa: E402

logger = logging.getLogger(__name__)

if settings.use_mongo:
    from motor.motor_asyncio import AsyncIOMotorClient
    from .repos.mongo import MongoRepo
    _client = AsyncIOMotorClient(settings.mongo_uri, uuidRepresentation="standard", tz_aware=True)
    _repo_singleton = MongoRepo(_client[settings.mongo_db])
    logger.info("Using MongoDB repository (db=%s)", settings.mongo_db)
else:
    from .repos.inmemory import InMemoryRepo
    _client = None
    _repo_singleton = InMemoryRepo()
    logger.info("Using in-memory repository")


def get_repo():
    return _repo_singleton


def close_client():
    if _client is not None:
        _client.close()


def get_base_url(request: Request) -> str:
    """Base for absolute links (profile images); PUBLIC_BASE_URL wins behind a proxy."""
    return settings.public_base_url or str(request.base_url)
