# scripts/create_indexes.py
import asyncio

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

load_dotenv()

from donordrive.core.config import settings  # noqa: E402
from donordrive.repos.mongo import MongoRepo  # noqa: E402


async def main():
    client = AsyncIOMotorClient(settings.mongo_uri)
    try:
        await MongoRepo(client[settings.mongo_db]).ensure_indexes()
        print("Indexes ready on", settings.mongo_db)
    finally:
        client.close()

if __name__ == "__main__":
    asyncio.run(main())
