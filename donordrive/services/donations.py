# donordrive/services/donations.py
"""
Donor side of the donation lifecycle: create, schedule, edit, delete.

    pending --schedule--> scheduled --assign--> assigned --complete--> completed
       \\                    /
        +--> cancelled <----+

Every status write is conditional on the status that was read, so a
concurrent transition is never silently overwritten.
"""
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from donordrive.core.errors import BadRequest, Conflict, Forbidden, NotFound
from donordrive.core.states import DONATION_STATES, DONATION_TYPES, can_transition
from donordrive.repos.ids import jsonable, to_oid
from donordrive.schemas import DonationIn, DonationUpdate, PickupLocation, ScheduleIn
from donordrive.services.geocode import GeocodeError, reverse_geocode

logger = logging.getLogger(__name__)

DONOR_SUMMARY_FIELDS = ("username", "firstname", "lastname", "address", "city", "phoneNumber", "addressNotes")


def _utcnow():
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


async def load_donation(repo, donation_id) -> dict:
    oid = to_oid(donation_id, "donation")
    donation = await repo.get_donation(oid)
    if not donation:
        raise NotFound("Donation not found")
    return donation


async def create_donation(repo, body: DonationIn) -> dict:
    if not body.user_id or not body.donation_type:
        raise BadRequest("User ID and donation type are required")
    if body.donation_type not in DONATION_TYPES:
        raise BadRequest("Invalid donation type")

    clothes = body.clothing_items or []
    toys = body.toy_items or []
    if body.donation_type == "clothes":
        if not clothes:
            raise BadRequest("Clothing items are required for clothes donation")
        if toys:
            raise BadRequest("A clothes donation cannot contain toy items")
    else:
        if not toys:
            raise BadRequest("Toy items are required for toys donation")
        if clothes:
            raise BadRequest("A toys donation cannot contain clothing items")

    user_oid = to_oid(body.user_id, "user")
    if not await repo.get_user(user_oid):
        raise NotFound("User not found")

    items = [i.model_dump() for i in (clothes or toys)]
    now = _utcnow()
    doc = {
        "userId": user_oid,
        "donationType": body.donation_type,
        "status": "pending",
        "clothingItems": items if body.donation_type == "clothes" else [],
        "toyItems": items if body.donation_type == "toys" else [],
        "size": sum(i["quantity"] for i in items),
        "createdAt": now,
        "updatedAt": now,
    }
    saved = await repo.insert_donation(doc)
    logger.info("Donation %s created by %s (%s, %d items)", saved["_id"], user_oid, doc["donationType"], doc["size"])
    return {"message": "Donation saved successfully", "donation": jsonable(saved)}


async def list_user_donations(repo, user_id: str) -> dict:
    user_oid = to_oid(user_id, "user")
    donations = await repo.list_donations_by_user(user_oid)
    return {"success": True, "donations": jsonable(donations)}


async def list_all_donations(repo) -> dict:
    donations = await repo.list_all_donations()
    donors = await repo.get_users(d["userId"] for d in donations if d.get("userId"))
    out = []
    for d in donations:
        donor = donors.get(d.get("userId"))
        item = jsonable(d)
        item["donor"] = {f: donor.get(f) for f in DONOR_SUMMARY_FIELDS} if donor else None
        out.append(item)
    return {"success": True, "donations": out}


async def get_donation(repo, donation_id: str) -> dict:
    return {"donation": jsonable(await load_donation(repo, donation_id))}


async def update_donation(repo, donation_id: str, body: DonationUpdate) -> dict:
    donation = await load_donation(repo, donation_id)
    src = donation["status"]
    set_fields = {}

    if body.pickup_date:
        set_fields["pickupDate"] = _as_utc(body.pickup_date)
    if body.pickup_address:
        set_fields["pickupAddress"] = body.pickup_address
    if body.pickup_notes:
        set_fields["pickupNotes"] = body.pickup_notes

    dst = body.status
    if dst and dst != src:
        if dst not in DONATION_STATES:
            raise BadRequest(f"Invalid status. Allowed: {sorted(DONATION_STATES)}")
        if not can_transition(src, dst, "donor"):
            raise BadRequest(f"Donation status cannot change from '{src}' to '{dst}'")
        if dst == "scheduled":
            has_date = set_fields.get("pickupDate") or donation.get("pickupDate")
            has_addr = set_fields.get("pickupAddress") or donation.get("pickupAddress")
            if not (has_date and has_addr):
                raise BadRequest("Pickup date and address are required to schedule a donation")
        set_fields["status"] = dst

    if not set_fields:
        return {"message": "Donation updated successfully", "donation": jsonable(donation)}

    set_fields["updatedAt"] = _utcnow()
    updated = await repo.update_donation_if(donation["_id"], {"status": src}, set_fields)
    if not updated:
        raise Conflict("Donation was changed by another request, reload and retry")
    if "status" in set_fields:
        logger.info("Donation %s: %s -> %s (donor edit)", donation["_id"], src, dst)
    return {"message": "Donation updated successfully", "donation": jsonable(updated)}


def _manual_address(loc: PickupLocation) -> str:
    if loc.address and loc.address.strip():
        return loc.address.strip()
    parts = [p.strip() for p in (loc.street, loc.apartment, loc.city) if p and p.strip()]
    return ", ".join(parts)


async def _gps_address(loc: PickupLocation, geocoder) -> str:
    if loc.address and loc.address.strip():
        return loc.address.strip()
    if loc.latitude is None or loc.longitude is None:
        return ""
    try:
        return await geocoder(loc.latitude, loc.longitude)
    except GeocodeError as ex:
        logger.warning("Reverse geocoding failed for (%s, %s): %s", loc.latitude, loc.longitude, ex)
        return f"{loc.latitude:.6f}, {loc.longitude:.6f}"


async def schedule_pickup(
    repo,
    body: ScheduleIn,
    geocoder: Optional[Callable[[float, float], Awaitable[str]]] = None,
) -> dict:
    if not body.donation_id or not body.pickup_date or not body.user_id:
        raise BadRequest("Donation ID, pickup date, and user ID are required")

    donation = await load_donation(repo, body.donation_id)
    user_oid = to_oid(body.user_id, "user")

    if donation.get("userId") != user_oid:
        raise Forbidden("You are not authorized to schedule this donation")

    if donation["status"] != "pending":
        raise BadRequest(
            f"Donation cannot be scheduled because its status is '{donation['status']}'. "
            "Only 'pending' donations can be scheduled."
        )

    loc = body.location
    location: Optional[dict] = None
    if loc.type == "gps":
        address = await _gps_address(loc, geocoder or reverse_geocode)
        if loc.latitude is not None and loc.longitude is not None:
            location = {"latitude": loc.latitude, "longitude": loc.longitude}
        else:
            logger.info("GPS location without coordinates for donation %s", donation["_id"])
    else:
        address = _manual_address(loc)
    if not address:
        raise BadRequest("Pickup address is required")

    set_fields = {
        "status": "scheduled",
        "pickupDate": _as_utc(body.pickup_date),
        "pickupAddress": address,
        "updatedAt": _utcnow(),
    }
    if location:
        set_fields["location"] = location
    if body.delivery_message:
        set_fields["pickupNotes"] = body.delivery_message

    updated = await repo.update_donation_if(donation["_id"], {"status": "pending"}, set_fields)
    if not updated:
        current = await repo.get_donation(donation["_id"])
        if not current:
            raise NotFound("Donation not found")
        raise BadRequest(
            f"Donation cannot be scheduled because its status is '{current['status']}'. "
            "Only 'pending' donations can be scheduled."
        )

    # remember the address as the donor's default pickup address
    profile = {"address": address if loc.type == "gps" else (_street_line(loc) or address)}
    if loc.type == "manual" and loc.city:
        profile["city"] = loc.city.strip()
    if body.phone_number:
        profile["phoneNumber"] = body.phone_number
    if body.delivery_message:
        profile["addressNotes"] = body.delivery_message
    await repo.update_user(user_oid, profile)

    logger.info("Donation %s scheduled for %s", donation["_id"], set_fields["pickupDate"].isoformat())
    return {"success": True, "message": "Pickup scheduled successfully", "donation": jsonable(updated)}


def _street_line(loc: PickupLocation) -> str:
    parts = [p.strip() for p in (loc.street, loc.apartment) if p and p.strip()]
    return ", ".join(parts)


async def delete_donation(repo, donation_id: str) -> dict:
    oid = to_oid(donation_id, "donation")
    deleted = await repo.delete_donation(oid)
    if not deleted:
        raise NotFound("Donation not found")
    # no dangling references in drivers' activePickups
    await repo.remove_active_pickup(oid)
    logger.info("Donation %s deleted (status was %s)", oid, deleted.get("status"))
    return {"success": True, "message": "Donation deleted successfully"}
