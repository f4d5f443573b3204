# Guest reservation listing: ordering, limit, joined property attributes, and the empty case.
from __future__ import annotations

from datetime import date
from typing import Dict, List, Tuple

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine

from conftest import run
from lightbnb import models
from lightbnb.gateway import QueryGateway


# Helper: insert a user and return its id
def add_user(gateway: QueryGateway, email: str) -> int:
    return run(gateway.add_user({"name": email.split("@")[0], "email": email, "password": "hash"})).id


# Helper: insert a minimal complete property and return its id
def add_property(gateway: QueryGateway, owner_id: int, title: str, cost_per_night: int) -> int:
    prop = run(
        gateway.add_property(
            {
                "owner_id": owner_id,
                "title": title,
                "description": "description",
                "thumbnail_photo_url": "https://example.com/thumb.jpg",
                "cover_photo_url": "https://example.com/cover.jpg",
                "cost_per_night": cost_per_night,
                "street": "1 Main St",
                "city": "Vancouver",
                "province": "British Columbia",
                "post_code": "V5K 0A1",
                "country": "Canada",
                "parking_spaces": 1,
                "number_of_bathrooms": 1,
                "number_of_bedrooms": 2,
            }
        )
    )
    return prop.id


# Helper: insert reservations (property_id, start, end) for a guest, each with one review; returns ids
def book(engine: AsyncEngine, guest_id: int, stays: List[Tuple[int, date, date]], rating: int = 4) -> List[int]:
    async def _seed() -> List[int]:
        ids = []
        async with engine.begin() as conn:
            for property_id, start, end in stays:
                res = await conn.execute(
                    insert(models.Reservation).values(
                        property_id=property_id, guest_id=guest_id, start_date=start, end_date=end
                    )
                )
                reservation_id = res.inserted_primary_key[0]
                await conn.execute(
                    insert(models.PropertyReview).values(
                        property_id=property_id, guest_id=guest_id, reservation_id=reservation_id, rating=rating
                    )
                )
                ids.append(reservation_id)
        return ids

    return run(_seed())


@pytest.fixture()
def stays(gateway: QueryGateway, engine: AsyncEngine) -> Dict:
    host = add_user(gateway, "host@example.com")
    guest = add_user(gateway, "guest@example.com")
    other = add_user(gateway, "other@example.com")
    loft = add_property(gateway, host, "Loft", 9000)
    cabin = add_property(gateway, host, "Cabin", 15000)

    # inserted out of date order on purpose
    guest_ids = book(
        engine,
        guest,
        [
            (cabin, date(2021, 6, 1), date(2021, 6, 5)),
            (loft, date(2018, 9, 11), date(2018, 9, 26)),
            (loft, date(2019, 1, 4), date(2019, 2, 1)),
            (cabin, date(2023, 3, 10), date(2023, 3, 12)),
        ],
    )
    book(engine, other, [(loft, date(2020, 1, 1), date(2020, 1, 3))], rating=2)
    return {"guest": guest, "other": other, "loft": loft, "cabin": cabin, "reservations": guest_ids}


# Reservations come back in ascending start-date order with their property joined in
def test_reservations_ordered_by_start_date(gateway: QueryGateway, stays):
    rows = run(gateway.get_all_reservations(stays["guest"]))
    starts = [r.start_date for r in rows]
    assert len(rows) == 4
    assert starts == sorted(starts)
    assert starts[0] == date(2018, 9, 11)
    assert all(r.guest_id == stays["guest"] for r in rows)

    first = rows[0]
    assert first.id == stays["loft"]
    assert first.title == "Loft"
    assert first.cost_per_night == 9000
    assert first.reservation_id == stays["reservations"][1]
    assert first.end_date == date(2018, 9, 26)
    assert first.average_rating is not None


# One row per reservation even though reviews are joined in
def test_reservations_are_not_duplicated_by_review_join(gateway: QueryGateway, stays):
    rows = run(gateway.get_all_reservations(stays["guest"], limit=50))
    ids = [r.reservation_id for r in rows]
    assert len(ids) == len(set(ids)) == 4
    assert set(ids) == set(stays["reservations"])


# Limit caps the list, keeping the earliest stays
def test_reservations_limit(gateway: QueryGateway, stays):
    rows = run(gateway.get_all_reservations(stays["guest"], limit=2))
    assert [r.start_date for r in rows] == [date(2018, 9, 11), date(2019, 1, 4)]


# A guest without reservations gets an empty list
def test_reservations_empty_for_unknown_guest(gateway: QueryGateway, stays):
    assert run(gateway.get_all_reservations(987654)) == []


# Without an explicit limit only the ten earliest stays are listed
def test_reservations_default_limit_is_ten(gateway: QueryGateway, engine: AsyncEngine):
    host = add_user(gateway, "busyhost@example.com")
    guest = add_user(gateway, "frequent@example.com")
    loft = add_property(gateway, host, "Loft", 9000)
    book(engine, guest, [(loft, date(2022, month, 1), date(2022, month, 3)) for month in range(12, 0, -1)])

    rows = run(gateway.get_all_reservations(guest))
    assert [r.start_date for r in rows] == [date(2022, month, 1) for month in range(1, 11)]
