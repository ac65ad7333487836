"""
Shift session workflow tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from backend.app.core.exceptions import InvalidStateError, ValidationError
from backend.app.domain.shift.session import ShiftSession
from backend.app.models.trip_enums import ShiftStep
from backend.app.schemas.trip import ShiftStart, ShiftEnd


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
def active_session(clock):
    session = ShiftSession(clock=clock)
    session.identify("EMP-42")
    session.start_shift(ShiftStart(vehicle_number="KA01AB1234", total_trips_planned=4, odometer_start=1000))
    return session


def trip(amount=100, **overrides):
    data = {"mode": "UBER", "amount": amount, "payment_mode": "Cash",
            "timestamp": datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)}
    data.update(overrides)
    return data


def test_happy_path(clock):
    session = ShiftSession(clock=clock)
    assert session.step == ShiftStep.EMPLOYEE_ID

    session.identify(" EMP-42 ")
    assert session.step == ShiftStep.START_SHIFT
    assert session.employee_id == "EMP-42"

    shift_data = session.start_shift(ShiftStart(vehicle_number="KA01AB1234", total_trips_planned=4))
    assert session.step == ShiftStep.ACTIVE_SHIFT
    assert session.is_shift_started
    assert shift_data.start_time == clock.now

    session.add_trip(trip(100, tip=20))
    session.add_trip(trip(200, mode="Airport", payment_mode="UPI - QR"))
    assert session.analytics.total_earnings == 320

    clock.advance(hours=2)
    analytics = session.end_shift(ShiftEnd())

    assert session.step == ShiftStep.ANALYTICS
    assert session.is_shift_ended
    assert session.shift_data.end_time == clock.now
    assert analytics.efficiency.utilization_rate == 50
    assert session.analytics_report() == analytics


def test_identify_requires_employee_id(clock):
    session = ShiftSession(clock=clock)

    with pytest.raises(ValidationError):
        session.identify("   ")

    assert session.step == ShiftStep.EMPLOYEE_ID


def test_cannot_skip_steps(clock):
    session = ShiftSession(clock=clock)

    with pytest.raises(InvalidStateError):
        session.start_shift(ShiftStart(vehicle_number="KA01AB1234"))
    with pytest.raises(InvalidStateError):
        session.add_trip(trip())
    with pytest.raises(InvalidStateError):
        session.end_shift(ShiftEnd())

    assert session.step == ShiftStep.EMPLOYEE_ID


def test_cannot_identify_during_active_shift(active_session):
    with pytest.raises(InvalidStateError):
        active_session.identify("EMP-7")

    assert active_session.employee_id == "EMP-42"


def test_trips_frozen_after_end(active_session):
    added = active_session.add_trip(trip())
    active_session.end_shift(ShiftEnd(odometer_end=1040))

    with pytest.raises(InvalidStateError):
        active_session.add_trip(trip())
    with pytest.raises(InvalidStateError):
        active_session.amend_trip(added.id, {"amount": 50})
    with pytest.raises(InvalidStateError):
        active_session.remove_trip(added.id)
    with pytest.raises(InvalidStateError):
        active_session.end_shift(ShiftEnd())

    assert len(active_session.ledger) == 1


def test_end_odometer_below_start_is_rejected(active_session):
    with pytest.raises(ValidationError):
        active_session.end_shift(ShiftEnd(odometer_end=900))

    assert active_session.step == ShiftStep.ACTIVE_SHIFT
    assert not active_session.is_shift_ended


def test_end_before_start_is_rejected(active_session, clock):
    with pytest.raises(ValidationError):
        active_session.end_shift(ShiftEnd(end_time=clock.now - timedelta(minutes=5)))

    assert active_session.step == ShiftStep.ACTIVE_SHIFT


def test_rejected_trip_leaves_analytics_unchanged(active_session):
    active_session.add_trip(trip(100))

    with pytest.raises(ValidationError):
        active_session.add_trip(trip(0))

    assert active_session.analytics.total_trips == 1
    assert active_session.analytics.total_earnings == 100


def test_amend_and_remove_recompute(active_session):
    first = active_session.add_trip(trip(100))
    active_session.add_trip(trip(50))

    active_session.amend_trip(first.id, {"amount": 150})
    assert active_session.analytics.total_earnings == 200

    active_session.remove_trip(first.id)
    assert active_session.analytics.total_earnings == 50
    assert active_session.analytics.total_trips == 1


def test_analytics_report_requires_ended_shift(active_session):
    with pytest.raises(InvalidStateError):
        active_session.analytics_report()


def test_reset_keeps_employee_id(active_session):
    active_session.add_trip(trip())

    active_session.reset()

    assert active_session.employee_id == "EMP-42"
    assert active_session.step == ShiftStep.EMPLOYEE_ID
    assert len(active_session.ledger) == 0
    assert not active_session.is_shift_started
    assert active_session.analytics.total_trips == 0


def test_clear_forgets_employee_id(active_session):
    active_session.clear()

    assert active_session.employee_id == ""
    assert active_session.step == ShiftStep.EMPLOYEE_ID


def test_export(active_session, clock):
    active_session.add_trip(trip(80))

    export = active_session.export()

    assert export.employee_id == "EMP-42"
    assert export.shift_data.vehicle_number == "KA01AB1234"
    assert len(export.trips) == 1
    assert export.analytics.total_earnings == 80
    assert export.exported_at == clock.now


def test_from_state_recomputes_analytics(active_session, clock):
    active_session.add_trip(trip(100))
    state = active_session.to_state()
    tampered = state.model_copy(update={"analytics": state.analytics.model_copy(update={"total_earnings": 9999})})

    restored = ShiftSession.from_state(tampered, clock=clock)

    assert restored.step == ShiftStep.ACTIVE_SHIFT
    assert restored.employee_id == "EMP-42"
    assert restored.analytics.total_earnings == 100
