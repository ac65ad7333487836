"""
Shift session persistence tests.

Runs the Redis store against the in-memory MockRedis with a controllable clock.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from backend.app.domain.shift.session import ShiftSession
from backend.app.domain.shift.store import ShiftSessionStore, SNAPSHOT_KEY, IDENTITY_KEY
from backend.app.models.trip_enums import ShiftStep
from backend.app.schemas.trip import ShiftStart


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(redis, clock):
    return ShiftSessionStore(redis, clock=clock)


def started_session(clock):
    session = ShiftSession(clock=clock)
    session.identify("EMP-42")
    session.start_shift(ShiftStart(vehicle_number="KA01AB1234", total_trips_planned=2))
    session.add_trip({"mode": "UBER", "amount": 120, "payment_mode": "Cash",
                      "timestamp": clock.now + timedelta(minutes=30)})
    return session


@pytest.mark.asyncio
async def test_unknown_session_loads_as_none(store):
    assert await store.load("nobody") is None


@pytest.mark.asyncio
async def test_save_and_load_round_trip(store, clock, redis):
    await store.save("s1", started_session(clock))

    raw = json.loads(redis.store[SNAPSHOT_KEY.format(session_id="s1")])
    assert raw["version"] == 1

    clock.advance(hours=1)
    session = await store.load("s1")

    assert session.step == ShiftStep.ACTIVE_SHIFT
    assert session.employee_id == "EMP-42"
    assert len(session.ledger) == 1
    assert session.analytics.total_earnings == 120


@pytest.mark.asyncio
async def test_stale_shift_is_reset_keeping_employee(store, clock):
    await store.save("s1", started_session(clock))

    clock.advance(hours=25)
    session = await store.load("s1")

    assert session.step == ShiftStep.EMPLOYEE_ID
    assert session.employee_id == "EMP-42"
    assert len(session.ledger) == 0
    assert session.shift_data.start_time is None

    # the reset was written back
    again = await store.load("s1")
    assert len(again.ledger) == 0


@pytest.mark.asyncio
async def test_shift_within_window_is_kept(store, clock):
    await store.save("s1", started_session(clock))

    clock.advance(hours=23, minutes=59)
    session = await store.load("s1")

    assert session.step == ShiftStep.ACTIVE_SHIFT


@pytest.mark.asyncio
async def test_identity_is_remembered_for_seven_days(store, clock, redis):
    await store.remember_identity("s1", "EMP-42")

    assert redis.expiry[IDENTITY_KEY.format(session_id="s1")] == 7 * 24 * 3600

    clock.advance(days=6, hours=23)
    identity = await store.recall_identity("s1")
    assert identity.employee_id == "EMP-42"

    clock.advance(hours=1)
    assert await store.recall_identity("s1") is None
    assert IDENTITY_KEY.format(session_id="s1") not in redis.store


@pytest.mark.asyncio
async def test_identity_alone_prefills_new_session(store):
    await store.remember_identity("s1", "EMP-42")

    session = await store.load("s1")

    assert session.employee_id == "EMP-42"
    assert session.step == ShiftStep.EMPLOYEE_ID


@pytest.mark.asyncio
async def test_unknown_snapshot_version_is_discarded(store, redis):
    redis.store[SNAPSHOT_KEY.format(session_id="s1")] = json.dumps({
        "version": 99, "saved_at": "2025-01-06T08:00:00Z", "state": {}
    })

    assert await store.load("s1") is None


@pytest.mark.asyncio
async def test_unreadable_snapshot_is_discarded(store, redis):
    redis.store[SNAPSHOT_KEY.format(session_id="s1")] = "not json"

    assert await store.load("s1") is None


@pytest.mark.asyncio
async def test_delete_forgets_everything(store, clock):
    await store.remember_identity("s1", "EMP-42")
    await store.save("s1", started_session(clock))

    await store.delete("s1")

    assert await store.load("s1") is None
    assert await store.recall_identity("s1") is None
