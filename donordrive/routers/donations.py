# donordrive/routers/donations.py
from fastapi import APIRouter, Depends, status

from ..deps import get_repo
from ..schemas import DonationIn, DonationUpdate, ScheduleIn
from ..services import donations

router = APIRouter(tags=["donations"])


@router.post("/donations", status_code=status.HTTP_201_CREATED)
async def create_donation(body: DonationIn, repo=Depends(get_repo)):
    return await donations.create_donation(repo, body)


@router.get("/donations/all")
async def list_all_donations(repo=Depends(get_repo)):
    return await donations.list_all_donations(repo)


@router.get("/donations/user/{user_id}")
async def list_user_donations(user_id: str, repo=Depends(get_repo)):
    return await donations.list_user_donations(repo, user_id)


@router.get("/donation/{donation_id}")
async def get_donation(donation_id: str, repo=Depends(get_repo)):
    return await donations.get_donation(repo, donation_id)


@router.put("/donations/{donation_id}")
async def update_donation(donation_id: str, body: DonationUpdate, repo=Depends(get_repo)):
    return await donations.update_donation(repo, donation_id, body)


@router.delete("/donation/{donation_id}")
async def delete_donation(donation_id: str, repo=Depends(get_repo)):
    return await donations.delete_donation(repo, donation_id)


@router.post("/schedule-pickup")
async def schedule_pickup(body: ScheduleIn, repo=Depends(get_repo)):
    return await donations.schedule_pickup(repo, body)
