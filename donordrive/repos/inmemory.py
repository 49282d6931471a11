# donordrive/repos/inmemory.py
import copy
from typing import Dict, Iterable, List, Optional

from bson import ObjectId

from . import UsernameTaken
from .ids import new_oid


def _copy(doc: Optional[dict]) -> Optional[dict]:
    return copy.deepcopy(doc) if doc is not None else None


def _matches(doc: dict, expected: dict) -> bool:
    # None matches a missing field, same as a Mongo {"field": null} filter
    return all(doc.get(k) == v for k, v in expected.items())


def _newest_first(docs: Iterable[dict]) -> List[dict]:
    return sorted(docs, key=lambda d: (d.get("createdAt"), d["_id"]), reverse=True)


class InMemoryRepo:
    """
    Process-local twin of MongoRepo. Every check-and-write runs without an
    ``await`` in between, so it is atomic on the event loop.
    """

    def __init__(self):
        self.users: Dict[ObjectId, dict] = {}
        self.users_by_username: Dict[str, ObjectId] = {}
        self.donations: Dict[ObjectId, dict] = {}
        self.images: Dict[ObjectId, dict] = {}

    async def ensure_indexes(self):
        return None

    # Users
    async def create_user(self, doc: dict) -> dict:
        if doc["username"] in self.users_by_username:
            raise UsernameTaken(doc["username"])
        doc = _copy(doc)
        doc.setdefault("_id", new_oid())
        self.users[doc["_id"]] = doc
        self.users_by_username[doc["username"]] = doc["_id"]
        return _copy(doc)

    async def get_user(self, user_id: ObjectId) -> Optional[dict]:
        return _copy(self.users.get(user_id))

    async def get_users(self, user_ids: Iterable[ObjectId]) -> Dict[ObjectId, dict]:
        return {uid: _copy(self.users[uid]) for uid in set(user_ids) if uid in self.users}

    async def find_user_by_username(self, username: str) -> Optional[dict]:
        uid = self.users_by_username.get(username)
        return _copy(self.users.get(uid)) if uid else None

    async def update_user(self, user_id: ObjectId, set_fields: dict, unset: Iterable[str] = ()) -> Optional[dict]:
        doc = self.users.get(user_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(set_fields))
        for field in unset:
            doc.pop(field, None)
        return _copy(doc)

    async def inc_points(self, user_id: ObjectId, amount: int) -> bool:
        doc = self.users.get(user_id)
        if doc is None:
            return False
        doc["points"] = int(doc.get("points", 0)) + int(amount)
        return True

    async def add_active_pickup(self, driver_id: ObjectId, donation_id: ObjectId) -> bool:
        doc = self.users.get(driver_id)
        if doc is None:
            return False
        pickups = doc.setdefault("activePickups", [])
        if donation_id not in pickups:
            pickups.append(donation_id)
        return True

    async def remove_active_pickup(self, donation_id: ObjectId, driver_id: Optional[ObjectId] = None) -> int:
        changed = 0
        for uid, doc in self.users.items():
            if driver_id is not None and uid != driver_id:
                continue
            pickups = doc.get("activePickups") or []
            if donation_id in pickups:
                doc["activePickups"] = [p for p in pickups if p != donation_id]
                changed += 1
        return changed

    async def top_users(self, limit: int) -> List[dict]:
        ranked = sorted(self.users.values(), key=lambda u: (-int(u.get("points", 0)), u["_id"]))
        return [_copy(u) for u in ranked[:limit]]

    # Donations
    async def insert_donation(self, doc: dict) -> dict:
        doc = _copy(doc)
        doc.setdefault("_id", new_oid())
        self.donations[doc["_id"]] = doc
        return _copy(doc)

    async def get_donation(self, donation_id: ObjectId) -> Optional[dict]:
        return _copy(self.donations.get(donation_id))

    async def list_donations_by_user(self, user_id: ObjectId) -> List[dict]:
        return [_copy(d) for d in _newest_first(d for d in self.donations.values() if d.get("userId") == user_id)]

    async def list_all_donations(self) -> List[dict]:
        return [_copy(d) for d in _newest_first(self.donations.values())]

    async def list_available_pickups(self) -> List[dict]:
        avail = (d for d in self.donations.values()
                 if d.get("status") == "scheduled" and d.get("assignedDriver") is None)
        return [_copy(d) for d in _newest_first(avail)]

    async def list_driver_donations(self, driver_id: ObjectId, status: str) -> List[dict]:
        mine = (d for d in self.donations.values()
                if d.get("assignedDriver") == driver_id and d.get("status") == status)
        return [_copy(d) for d in _newest_first(mine)]

    async def update_donation_if(self, donation_id: ObjectId, expected: dict, set_fields: dict) -> Optional[dict]:
        doc = self.donations.get(donation_id)
        if doc is None or not _matches(doc, expected):
            return None
        doc.update(copy.deepcopy(set_fields))
        return _copy(doc)

    async def delete_donation(self, donation_id: ObjectId) -> Optional[dict]:
        return self.donations.pop(donation_id, None)

    # Images
    async def put_image(self, filename: str, data: bytes, content_type: str, metadata: dict) -> ObjectId:
        fid = new_oid()
        self.images[fid] = {
            "_id": fid,
            "filename": filename,
            "contentType": content_type,
            "length": len(data),
            "metadata": dict(metadata),
            "data": bytes(data),
        }
        return fid

    async def get_image(self, file_id: ObjectId) -> Optional[dict]:
        return _copy(self.images.get(file_id))

    async def delete_image(self, file_id: ObjectId) -> bool:
        return self.images.pop(file_id, None) is not None
