import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from httpx import AsyncClient

from donordrive.core.errors import BadRequest
from donordrive.services import pickups
from factories import toys

pytestmark = pytest.mark.anyio


@pytest.fixture
def scheduled_donation(signup, new_donation, schedule):
    async def _make(donor=None, location=None, donation_type="clothes", items=None):
        donor = donor or await signup()
        d = await new_donation(donor["id"], donation_type, items)
        r = await schedule(donor["id"], d["id"], location=location)
        assert r.status_code == 200, r.text
        return donor, r.json()["donation"]
    return _make


async def test_full_pickup_awards_points(test_client: AsyncClient, signup, scheduled_donation):
    donor, d = await scheduled_donation()
    driver = await signup("driver1", "driver")

    r = await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])
    assert r.status_code == 200, r.text
    assigned = r.json()["donation"]
    assert assigned["status"] == "assigned"
    assert assigned["assignedDriver"] == driver["id"]
    assert assigned["assignedAt"]

    me = (await test_client.get("/me", headers=driver["headers"])).json()["user"]
    assert me["activePickups"] == [d["id"]]

    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["donation"]["status"] == "completed"
    assert data["donation"]["pickedUpAt"]
    # 3 clothing pieces: donor 30; driver 20 + 15 + 15 quick bonus
    assert data["donorPointsAwarded"] == 30
    assert data["driverPointsAwarded"] == 50

    donor_user = (await test_client.get(f"/users/{donor['id']}")).json()["user"]
    driver_user = (await test_client.get("/me", headers=driver["headers"])).json()["user"]
    assert donor_user["points"] == 30
    assert driver_user["points"] == 50
    assert driver_user["activePickups"] == []


async def test_completion_after_a_day_has_no_bonus(test_client: AsyncClient, repo, signup, scheduled_donation):
    _, d = await scheduled_donation(donation_type="toys", items=toys(2))
    driver = await signup("driver1", "driver")
    await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])
    repo.donations[ObjectId(d["id"])]["assignedAt"] = datetime.now(timezone.utc) - timedelta(hours=30)

    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])
    assert r.status_code == 200
    assert r.json()["donorPointsAwarded"] == 30
    assert r.json()["driverPointsAwarded"] == 30


async def test_assign_requires_scheduled_and_unclaimed(test_client: AsyncClient, signup, new_donation,
                                                       scheduled_donation):
    donor = await signup()
    driver = await signup("driver1", "driver")
    rival = await signup("driver2", "driver")

    pending = await new_donation(donor["id"])
    r = await test_client.post(f"/driver/assign-pickup/{pending['id']}", headers=driver["headers"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Donation is not available for pickup"
    still_pending = (await test_client.get(f"/donation/{pending['id']}")).json()["donation"]
    assert still_pending["status"] == "pending"
    assert "assignedDriver" not in still_pending

    _, d = await scheduled_donation(donor=donor)
    assert (await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])).status_code == 200
    claimed = (await test_client.get(f"/donation/{d['id']}")).json()["donation"]

    r = await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=rival["headers"])
    assert r.status_code == 400
    after = (await test_client.get(f"/donation/{d['id']}")).json()["donation"]
    assert after == claimed
    assert after["assignedDriver"] == driver["id"]
    rival_me = (await test_client.get("/me", headers=rival["headers"])).json()["user"]
    assert rival_me["activePickups"] == []

    r = await test_client.post(f"/driver/assign-pickup/{ObjectId()}", headers=driver["headers"])
    assert r.status_code == 404


async def test_concurrent_assign_has_one_winner(repo, signup, scheduled_donation):
    _, d = await scheduled_donation()
    a = await repo.get_user(ObjectId((await signup("driverA", "driver"))["id"]))
    b = await repo.get_user(ObjectId((await signup("driverB", "driver"))["id"]))

    results = await asyncio.gather(
        pickups.assign_pickup(repo, a, d["id"]),
        pickups.assign_pickup(repo, b, d["id"]),
        return_exceptions=True,
    )
    wins = [r for r in results if isinstance(r, dict)]
    losses = [r for r in results if isinstance(r, BadRequest)]
    assert len(wins) == 1 and len(losses) == 1
    winner = wins[0]["donation"]["assignedDriver"]
    stored = await repo.get_donation(ObjectId(d["id"]))
    assert str(stored["assignedDriver"]) == winner


async def test_complete_guards(test_client: AsyncClient, signup, scheduled_donation):
    _, d = await scheduled_donation()
    driver = await signup("driver1", "driver")
    other = await signup("driver2", "driver")

    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])
    assert r.status_code == 403
    assert r.json()["detail"] == "Not authorized to complete this pickup"

    await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])
    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=other["headers"])
    assert r.status_code == 403

    assert (await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])).status_code == 200
    # points are awarded once
    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Pickup cannot be completed because its status is 'completed'"
    me = (await test_client.get("/me", headers=driver["headers"])).json()["user"]
    assert me["points"] == 50


async def test_driver_routes_require_driver(test_client: AsyncClient, signup):
    donor = await signup()
    r = await test_client.get("/driver/available-pickups", headers=donor["headers"])
    assert r.status_code == 403
    assert r.json()["detail"] == "Unauthorized"

    r = await test_client.get("/driver/available-pickups")
    assert r.status_code == 401
    assert r.json()["detail"] == "No authentication token, access denied"

    r = await test_client.get("/driver/available-pickups", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token is invalid"


async def test_available_pickups_sorted_by_distance(test_client: AsyncClient, signup, scheduled_donation):
    donor = await signup()
    _, far = await scheduled_donation(donor, {"type": "gps", "latitude": 14.8, "longitude": 121.0, "address": "Far"})
    _, near = await scheduled_donation(donor, {"type": "gps", "latitude": 14.61, "longitude": 121.0,
                                               "address": "Near"})
    _, nowhere = await scheduled_donation(donor)
    driver = await signup("driver1", "driver")

    r = await test_client.get("/driver/available-pickups", params={"latitude": 14.6, "longitude": 121.0},
                              headers=driver["headers"])
    assert r.status_code == 200
    listed = r.json()
    assert [p["id"] for p in listed] == [near["id"], far["id"], nowhere["id"]]
    assert listed[0]["distance"] == pytest.approx(1.112, abs=0.001)
    assert listed[2]["distance"] is None
    assert listed[0]["donor"] == {"firstname": "Ana", "lastname": "Cruz"}

    # without coordinates: newest first, no distance
    r = await test_client.get("/driver/available-pickups", headers=driver["headers"])
    assert [p["id"] for p in r.json()] == [nowhere["id"], near["id"], far["id"]]
    assert "distance" not in r.json()[0]


async def test_active_and_completed_lists(test_client: AsyncClient, signup, scheduled_donation):
    donor = await signup()
    _, d1 = await scheduled_donation(donor)
    _, d2 = await scheduled_donation(donor)
    driver = await signup("driver1", "driver")
    for d in (d1, d2):
        await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])
    await test_client.post(f"/driver/complete-pickup/{d1['id']}", headers=driver["headers"])

    active = (await test_client.get("/driver/active-pickups", headers=driver["headers"])).json()
    done = (await test_client.get("/driver/completed-donations", headers=driver["headers"])).json()
    assert [d["id"] for d in active] == [d2["id"]]
    assert [d["id"] for d in done] == [d1["id"]]

    avail = (await test_client.get("/driver/available-pickups", headers=driver["headers"])).json()
    assert avail == []


async def test_driver_location_and_donation_detail(test_client: AsyncClient, signup, scheduled_donation):
    _, d = await scheduled_donation()
    driver = await signup("driver1", "driver")

    r = await test_client.post("/driver/location", json={"latitude": 14.6, "longitude": 121.0},
                               headers=driver["headers"])
    assert r.status_code == 200
    me = (await test_client.get("/me", headers=driver["headers"])).json()["user"]
    assert me["currentLocation"] == {"latitude": 14.6, "longitude": 121.0}

    r = await test_client.post("/driver/location", json={"latitude": 120, "longitude": 0},
                               headers=driver["headers"])
    assert r.status_code == 400

    r = await test_client.get(f"/driver/donation/{d['id']}", headers=driver["headers"])
    assert r.status_code == 200
    assert r.json()["donor"]["firstname"] == "Ana"


async def test_delete_assigned_donation_clears_active_pickups(test_client: AsyncClient, signup, scheduled_donation):
    _, d = await scheduled_donation()
    driver = await signup("driver1", "driver")
    await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])

    assert (await test_client.delete(f"/donation/{d['id']}")).status_code == 200
    me = (await test_client.get("/me", headers=driver["headers"])).json()["user"]
    assert me["activePickups"] == []
    assert me["points"] == 0


async def test_single_item_end_to_end(test_client: AsyncClient, signup, scheduled_donation):
    donor, d = await scheduled_donation(items=[{
        "type": "jacket", "size": "L", "color": "black", "gender": "male", "quantity": 1, "images": ["img://j"],
    }])
    driver = await signup("driver1", "driver")
    await test_client.post(f"/driver/assign-pickup/{d['id']}", headers=driver["headers"])
    r = await test_client.post(f"/driver/complete-pickup/{d['id']}", headers=driver["headers"])
    assert (r.json()["donorPointsAwarded"], r.json()["driverPointsAwarded"]) == (10, 40)

    board = (await test_client.get("/leaderboard")).json()["leaderboard"]
    assert [(e["rank"], e["points"], e["userType"]) for e in board] == [(1, 40, "driver"), (2, 10, "donor")]
