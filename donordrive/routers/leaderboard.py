from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..deps import get_base_url, get_repo
from ..schemas import LeaderboardOut
from ..services.leaderboard import MAX_LIMIT, build_leaderboard

router = APIRouter(tags=["leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardOut)
async def leaderboard(
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIMIT),
    repo=Depends(get_repo),
    base_url: str = Depends(get_base_url),
):
    return await build_leaderboard(repo, limit or settings.leaderboard_limit, base_url)
