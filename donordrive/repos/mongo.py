# donordrive/repos/mongo.py
import logging
from typing import Dict, Iterable, List, Optional

from bson import ObjectId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from . import UsernameTaken

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


class MongoRepo:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.users = db["users"]
        self.donations = db["donations"]
        self.bucket = AsyncIOMotorGridFSBucket(db, bucket_name="profileImages")

    async def ensure_indexes(self):
        async def ensure_index(col, keys, name: str, **kwargs):
            existing = [ix["name"] async for ix in col.list_indexes()]
            if name in existing:
                return
            await col.create_index(keys, name=name, **kwargs)

        await ensure_index(self.users, [("username", ASCENDING)], "username_1", unique=True)
        await ensure_index(self.users, [("points", DESCENDING), ("_id", ASCENDING)], "points_-1__id_1")
        await ensure_index(self.donations, [("userId", ASCENDING), ("createdAt", DESCENDING)], "userId_1_createdAt_-1")
        await ensure_index(self.donations, [("status", ASCENDING)], "status_1")
        await ensure_index(self.donations, [("assignedDriver", ASCENDING), ("status", ASCENDING)], "assignedDriver_1_status_1")

    # Users
    async def create_user(self, doc: dict) -> dict:
        doc = dict(doc)
        try:
            res = await self.users.insert_one(doc)
        except DuplicateKeyError:
            raise UsernameTaken(doc["username"])
        doc["_id"] = res.inserted_id
        return doc

    async def get_user(self, user_id: ObjectId) -> Optional[dict]:
        return await self.users.find_one({"_id": user_id})

    async def get_users(self, user_ids: Iterable[ObjectId]) -> Dict[ObjectId, dict]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        return {u["_id"]: u async for u in self.users.find({"_id": {"$in": ids}})}

    async def find_user_by_username(self, username: str) -> Optional[dict]:
        return await self.users.find_one({"username": username})

    async def update_user(self, user_id: ObjectId, set_fields: dict, unset: Iterable[str] = ()) -> Optional[dict]:
        upd = {}
        if set_fields:
            upd["$set"] = set_fields
        unset = list(unset)
        if unset:
            upd["$unset"] = {f: "" for f in unset}
        if not upd:
            return await self.get_user(user_id)
        return await self.users.find_one_and_update(
            {"_id": user_id}, upd, return_document=ReturnDocument.AFTER
        )

    async def inc_points(self, user_id: ObjectId, amount: int) -> bool:
        res = await self.users.update_one({"_id": user_id}, {"$inc": {"points": int(amount)}})
        return res.matched_count > 0

    async def add_active_pickup(self, driver_id: ObjectId, donation_id: ObjectId) -> bool:
        res = await self.users.update_one({"_id": driver_id}, {"$addToSet": {"activePickups": donation_id}})
        return res.matched_count > 0

    async def remove_active_pickup(self, donation_id: ObjectId, driver_id: Optional[ObjectId] = None) -> int:
        q = {"activePickups": donation_id}
        if driver_id is not None:
            q["_id"] = driver_id
        res = await self.users.update_many(q, {"$pull": {"activePickups": donation_id}})
        return res.modified_count

    async def top_users(self, limit: int) -> List[dict]:
        cur = self.users.find({}).sort([("points", DESCENDING), ("_id", ASCENDING)]).limit(limit)
        return [u async for u in cur]

    # Donations
    async def insert_donation(self, doc: dict) -> dict:
        doc = dict(doc)
        res = await self.donations.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc

    async def get_donation(self, donation_id: ObjectId) -> Optional[dict]:
        return await self.donations.find_one({"_id": donation_id})

    async def _find(self, q: dict) -> List[dict]:
        return [d async for d in self.donations.find(q).sort(NEWEST_FIRST)]

    async def list_donations_by_user(self, user_id: ObjectId) -> List[dict]:
        return await self._find({"userId": user_id})

    async def list_all_donations(self) -> List[dict]:
        return await self._find({})

    async def list_available_pickups(self) -> List[dict]:
        return await self._find({"status": "scheduled", "assignedDriver": None})

    async def list_driver_donations(self, driver_id: ObjectId, status: str) -> List[dict]:
        return await self._find({"assignedDriver": driver_id, "status": status})

    async def update_donation_if(self, donation_id: ObjectId, expected: dict, set_fields: dict) -> Optional[dict]:
        return await self.donations.find_one_and_update(
            {"_id": donation_id, **expected},
            {"$set": set_fields},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_donation(self, donation_id: ObjectId) -> Optional[dict]:
        return await self.donations.find_one_and_delete({"_id": donation_id})

    # Images (GridFS)
    async def put_image(self, filename: str, data: bytes, content_type: str, metadata: dict) -> ObjectId:
        meta = {**metadata, "contentType": content_type}
        return await self.bucket.upload_from_stream(filename, data, metadata=meta)

    async def get_image(self, file_id: ObjectId) -> Optional[dict]:
        try:
            grid_out = await self.bucket.open_download_stream(file_id)
        except NoFile:
            return None
        data = await grid_out.read()
        meta = grid_out.metadata or {}
        return {
            "_id": file_id,
            "filename": grid_out.filename,
            "contentType": meta.get("contentType", "application/octet-stream"),
            "length": grid_out.length,
            "metadata": meta,
            "data": data,
        }

    async def delete_image(self, file_id: ObjectId) -> bool:
        try:
            await self.bucket.delete(file_id)
            return True
        except NoFile:
            logger.info("GridFS file %s already gone", file_id)
            return False
