# donordrive/services/leaderboard.py
from donordrive.services.accounts import profile_image_url

MAX_LIMIT = 100


def rank_users(users: list, base_url: str) -> list:
    """``users`` must already be ordered by points desc; rank follows list position."""
    return [
        {
            "rank": i + 1,
            "name": f"{u.get('firstname', '')} {u.get('lastname', '')}".strip(),
            "points": int(u.get("points", 0)),
            "profileImage": profile_image_url(base_url, u.get("profileImage")),
            "userType": u.get("userType", "donor"),
        }
        for i, u in enumerate(users)
    ]


async def build_leaderboard(repo, limit: int, base_url: str) -> dict:
    limit = max(1, min(int(limit), MAX_LIMIT))
    users = await repo.top_users(limit)
    return {"success": True, "leaderboard": rank_users(users, base_url)}
