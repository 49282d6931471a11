# donordrive/services/pickups.py
"""Driver side of the lifecycle: claim a scheduled donation, complete it, award points."""
import logging
from datetime import datetime, timezone
from math import atan2, cos, radians, sin
from typing import Optional

from donordrive.core.errors import BadRequest, Forbidden
from donordrive.repos.ids import jsonable
from donordrive.services.donations import load_donation
from donordrive.services.points import donor_points, driver_points

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def haversine(a: dict, b: dict) -> float:
    """
    a, b: dicts like {"latitude": float, "longitude": float}
    returns distance in km
    """
    R = 6371.0
    dlat = radians(b["latitude"] - a["latitude"])
    dlon = radians(b["longitude"] - a["longitude"])
    s = sin(dlat/2)**2 + cos(radians(a["latitude"])) * cos(radians(b["latitude"])) * sin(dlon/2)**2
    return 2 * R * atan2(s**0.5, (1 - s)**0.5)


def _valid_point(loc) -> bool:
    if not isinstance(loc, dict):
        return False
    try:
        float(loc["latitude"]); float(loc["longitude"])
        return True
    except (KeyError, TypeError, ValueError):
        return False


async def _with_donor_names(repo, donations: list) -> list:
    donors = await repo.get_users(d["userId"] for d in donations if d.get("userId"))
    out = []
    for d in donations:
        donor = donors.get(d.get("userId"))
        item = jsonable(d)
        item["donor"] = {"firstname": donor.get("firstname"), "lastname": donor.get("lastname")} if donor else None
        out.append(item)
    return out


async def update_location(repo, driver: dict, latitude: float, longitude: float) -> dict:
    await repo.update_user(driver["_id"], {"currentLocation": {"latitude": latitude, "longitude": longitude}})
    return {"message": "Location updated successfully"}


async def available_pickups(repo, latitude: Optional[float] = None, longitude: Optional[float] = None) -> list:
    pickups = await _with_donor_names(repo, await repo.list_available_pickups())
    if latitude is None or longitude is None:
        return pickups

    here = {"latitude": latitude, "longitude": longitude}
    for p in pickups:
        loc = p.get("location")
        p["distance"] = round(haversine(here, loc), 3) if _valid_point(loc) else None
    # unknown locations go last
    pickups.sort(key=lambda p: (p["distance"] is None, p["distance"] or 0.0))
    return pickups


async def assign_pickup(repo, driver: dict, donation_id: str) -> dict:
    donation = await load_donation(repo, donation_id)
    if donation.get("status") != "scheduled" or donation.get("assignedDriver"):
        raise BadRequest("Donation is not available for pickup")

    now = _utcnow()
    updated = await repo.update_donation_if(
        donation["_id"],
        {"status": "scheduled", "assignedDriver": None},
        {"status": "assigned", "assignedDriver": driver["_id"], "assignedAt": now, "updatedAt": now},
    )
    if not updated:
        # another driver got there first
        logger.info("Driver %s lost the race for donation %s", driver["_id"], donation["_id"])
        raise BadRequest("Donation is not available for pickup")

    await repo.add_active_pickup(driver["_id"], donation["_id"])
    logger.info("Donation %s assigned to driver %s", donation["_id"], driver["_id"])
    return {"message": "Pickup assigned successfully", "donation": jsonable(updated)}


async def complete_pickup(repo, driver: dict, donation_id: str) -> dict:
    donation = await load_donation(repo, donation_id)
    if donation.get("assignedDriver") != driver["_id"]:
        raise Forbidden("Not authorized to complete this pickup")
    if donation.get("status") != "assigned":
        raise BadRequest(f"Pickup cannot be completed because its status is '{donation.get('status')}'")

    now = _utcnow()
    updated = await repo.update_donation_if(
        donation["_id"],
        {"status": "assigned", "assignedDriver": driver["_id"]},
        {"status": "completed", "pickedUpAt": now, "updatedAt": now},
    )
    if not updated:
        raise BadRequest("Pickup is no longer in progress")

    donor_award = donor_points(donation)
    driver_award = driver_points(donation, now=now)

    # separate writes, no rollback if a later one fails
    if not await repo.inc_points(donation["userId"], donor_award):
        logger.warning("Donor %s of donation %s no longer exists, %d points dropped",
                       donation["userId"], donation["_id"], donor_award)
    await repo.inc_points(driver["_id"], driver_award)
    await repo.remove_active_pickup(donation["_id"], driver_id=driver["_id"])

    logger.info("Donation %s completed by %s: donor +%d, driver +%d",
                donation["_id"], driver["_id"], donor_award, driver_award)
    return {
        "message": "Pickup completed successfully",
        "donation": jsonable(updated),
        "donorPointsAwarded": donor_award,
        "driverPointsAwarded": driver_award,
    }


async def active_pickups(repo, driver: dict) -> list:
    return await _with_donor_names(repo, await repo.list_driver_donations(driver["_id"], "assigned"))


async def completed_pickups(repo, driver: dict) -> list:
    return await _with_donor_names(repo, await repo.list_driver_donations(driver["_id"], "completed"))


async def donation_detail(repo, donation_id: str) -> dict:
    donation = await load_donation(repo, donation_id)
    return (await _with_donor_names(repo, [donation]))[0]
