# donordrive/services/geocode.py
from __future__ import annotations

from typing import Optional

import httpx

from donordrive.core.config import settings


class GeocodeError(Exception):
    pass


async def reverse_geocode(lat: float, lng: float, transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    """
    Returns a display address for (lat, lng). Raises GeocodeError on failure.
    Nominatim needs a UA with contact info.
    """
    headers = {"User-Agent": f"DonorDrive/1.0 (+{settings.admin_contact})"}
    params = {"lat": lat, "lon": lng, "format": "json", "zoom": 18, "addressdetails": 0}
    try:
        async with httpx.AsyncClient(timeout=12, transport=transport) as c:
            r = await c.get(settings.geocoder_url, params=params, headers=headers)
            r.raise_for_status()
            js = r.json()
    except httpx.HTTPError as ex:
        raise GeocodeError(f"Reverse geocoding failed: {ex}")
    except ValueError as ex:
        raise GeocodeError(f"Reverse geocoding returned invalid JSON: {ex}")

    if not isinstance(js, dict):
        raise GeocodeError("Unexpected geocoder response")
    name = js.get("display_name")
    if not name:
        raise GeocodeError("No results")
    return name
