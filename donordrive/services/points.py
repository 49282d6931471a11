# donordrive/services/points.py
"""
Point awards for a completed pickup.

Donor: 10 per clothing piece, 15 per toy.
Driver: 20 base, 5 per piece, 15 extra when the pickup is completed within
24 hours of being assigned.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

CLOTHING_POINTS = 10
TOY_POINTS = 15

DRIVER_BASE_POINTS = 20
DRIVER_POINTS_PER_ITEM = 5
QUICK_COMPLETION_BONUS = 15
QUICK_COMPLETION_WINDOW = timedelta(hours=24)


def _qty(item: dict) -> int:
    return int(item.get("quantity") or 0)


def donation_items(donation: dict) -> list:
    if donation.get("donationType") == "toys":
        return donation.get("toyItems") or []
    return donation.get("clothingItems") or []


def total_quantity(donation: dict) -> int:
    return sum(_qty(i) for i in donation_items(donation))


def donor_points(donation: dict) -> int:
    clothes = sum(CLOTHING_POINTS * _qty(i) for i in donation.get("clothingItems") or [])
    toys = sum(TOY_POINTS * _qty(i) for i in donation.get("toyItems") or [])
    return clothes + toys


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def driver_points(donation: dict, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    points = DRIVER_BASE_POINTS + DRIVER_POINTS_PER_ITEM * total_quantity(donation)

    assigned_at = donation.get("assignedAt")
    if assigned_at and _aware(now) - _aware(assigned_at) <= QUICK_COMPLETION_WINDOW:
        points += QUICK_COMPLETION_BONUS
    return points
