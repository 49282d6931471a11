# donordrive/routers/driver.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.security import require_driver
from ..deps import get_repo
from ..schemas import DriverLocationIn
from ..services import pickups

router = APIRouter(prefix="/driver", tags=["driver"])


@router.post("/location")
async def update_location(body: DriverLocationIn, driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.update_location(repo, driver, body.latitude, body.longitude)


@router.get("/available-pickups")
async def available_pickups(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    driver=Depends(require_driver),
    repo=Depends(get_repo),
):
    return await pickups.available_pickups(repo, latitude, longitude)


@router.post("/assign-pickup/{donation_id}")
async def assign_pickup(donation_id: str, driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.assign_pickup(repo, driver, donation_id)


@router.post("/complete-pickup/{donation_id}")
async def complete_pickup(donation_id: str, driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.complete_pickup(repo, driver, donation_id)


@router.get("/active-pickups")
async def active_pickups(driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.active_pickups(repo, driver)


@router.get("/completed-donations")
async def completed_donations(driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.completed_pickups(repo, driver)


@router.get("/donation/{donation_id}")
async def donation_detail(donation_id: str, driver=Depends(require_driver), repo=Depends(get_repo)):
    return await pickups.donation_detail(repo, donation_id)
