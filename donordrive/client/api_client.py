# donordrive/client/api_client.py
"""
Small synchronous client for the DonorDrive API.

The logged-in user and token live on the ApiClient instance (not in a
process-wide global); a TokenStore keeps them across restarts.
"""
import json
import os
from pathlib import Path
from typing import Any, Optional

import requests

API_URL = os.getenv("DONORDRIVE_API_URL", "http://127.0.0.1:8000")
DEFAULT_TIMEOUT = 20


class ApiClientError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class TokenStore:
    """Persists ``{"token": ..., "user": {...}}`` as JSON."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) and data.get("token") else None

    def save(self, token: str, user: Optional[dict]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token, "user": user}), encoding="utf-8")

    def clear(self):
        if self.path.exists():
            self.path.unlink()


class ApiClient:
    def __init__(self, base_url: str = API_URL, token_store: Optional[TokenStore] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self.session = session or requests.Session()
        self.token: Optional[str] = None
        self.user: Optional[dict] = None

        saved = token_store.load() if token_store else None
        if saved:
            self.token = saved["token"]
            self.user = saved.get("user")

    # ---- session ----
    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def set_session(self, token: str, user: Optional[dict]):
        self.token = token
        self.user = user
        if self.token_store:
            self.token_store.save(token, user)

    def logout(self):
        self.token = None
        self.user = None
        if self.token_store:
            self.token_store.clear()

    def headers(self):
        h = {"Accept": "application/json"}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    def _request(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
        r = self.session.request(method, f"{self.base_url}{path}", headers=self.headers(), **kwargs)
        if r.status_code >= 400:
            try:
                detail = r.json().get("detail", r.text)
            except ValueError:
                detail = r.text
            raise ApiClientError(r.status_code, detail)
        return r.json()

    def get(self, path: str, **kwargs):
        return self._request("GET", path, **kwargs)

    def post(self, path: str, json=None, **kwargs):
        return self._request("POST", path, json=json, **kwargs)

    def put(self, path: str, json=None, **kwargs):
        return self._request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs):
        return self._request("DELETE", path, **kwargs)

    def _require_user_id(self) -> str:
        if not self.user or not self.user.get("id"):
            raise ApiClientError(401, "Not logged in")
        return self.user["id"]

    # ---- auth ----
    def signup(self, **fields) -> dict:
        data = self.post("/signup", json=fields)
        self.set_session(data["token"], data.get("user"))
        return data["user"]

    def login(self, username: str, password: str) -> dict:
        data = self.post("/login", json={"username": username, "password": password})
        self.set_session(data["token"], data.get("user"))
        return data["user"]

    def refresh_user(self) -> dict:
        data = self.get(f"/users/{self._require_user_id()}")
        self.set_session(self.token, data["user"])
        return data["user"]

    # ---- donor ----
    def create_donation(self, donation_type: str, items: list) -> dict:
        key = "clothingItems" if donation_type == "clothes" else "toyItems"
        body = {"userId": self._require_user_id(), "donationType": donation_type, key: items}
        return self.post("/donations", json=body)["donation"]

    def my_donations(self) -> list:
        return self.get(f"/donations/user/{self._require_user_id()}")["donations"]

    def schedule_pickup(self, donation_id: str, pickup_date: str, location: dict,
                        message: Optional[str] = None, phone_number: Optional[str] = None) -> dict:
        body = {
            "donationId": donation_id,
            "userId": self._require_user_id(),
            "pickupDate": pickup_date,
            "location": location,
            "deliveryMessage": message,
            "phoneNumber": phone_number,
        }
        return self.post("/schedule-pickup", json=body)["donation"]

    def delete_donation(self, donation_id: str) -> dict:
        return self.delete(f"/donation/{donation_id}")

    # ---- driver ----
    def available_pickups(self, latitude: Optional[float] = None, longitude: Optional[float] = None) -> list:
        params = {}
        if latitude is not None and longitude is not None:
            params = {"latitude": latitude, "longitude": longitude}
        return self.get("/driver/available-pickups", params=params)

    def assign_pickup(self, donation_id: str) -> dict:
        return self.post(f"/driver/assign-pickup/{donation_id}")

    def complete_pickup(self, donation_id: str) -> dict:
        return self.post(f"/driver/complete-pickup/{donation_id}")

    def active_pickups(self) -> list:
        return self.get("/driver/active-pickups")

    # ---- public ----
    def leaderboard(self, limit: Optional[int] = None) -> list:
        params = {"limit": limit} if limit else {}
        return self.get("/leaderboard", params=params)["leaderboard"]
