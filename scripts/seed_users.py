# scripts/seed_users.py
import asyncio
from datetime import datetime, timezone

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

load_dotenv()

from donordrive.core.config import settings  # noqa: E402
from donordrive.core.security import hash_password, hash_security_answer  # noqa: E402
from donordrive.repos import UsernameTaken  # noqa: E402
from donordrive.repos.mongo import MongoRepo  # noqa: E402

USERS = [
    {"username": "donor@dd.local", "password": "donor#123", "firstname": "Dana", "lastname": "Donor", "userType": "donor"},
    {"username": "driver@dd.local", "password": "driver#123", "firstname": "Drew", "lastname": "Driver", "userType": "driver"},
]


async def main():
    client = AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)
    repo = MongoRepo(client[settings.mongo_db])
    await repo.ensure_indexes()
    try:
        for u in USERS:
            doc = {
                **u,
                "password": hash_password(u["password"]),
                "securityQuestion": "What city were you born in?",
                "securityAnswer": hash_security_answer("manila"),
                "points": 0,
                "profileImage": None,
                "createdAt": datetime.now(timezone.utc),
            }
            if u["userType"] == "driver":
                doc.update({"isAvailable": True, "currentLocation": None, "activePickups": []})
            try:
                await repo.create_user(doc)
                print("User seeded:", u["username"], "/", u["password"])
            except UsernameTaken:
                print("Already exists:", u["username"])
    finally:
        client.close()

if __name__ == "__main__":
    asyncio.run(main())
