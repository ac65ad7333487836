"""
Shift Session (Domain Logic).

One driver's shift workflow:

    EMPLOYEE_ID -> START_SHIFT -> ACTIVE_SHIFT -> ANALYTICS

Steps only move along the transition table below. The session owns the trip
ledger and the shift envelope, and recomputes analytics after every change.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from backend.app.core.exceptions import InvalidStateError, ValidationError
from backend.app.core.timeutils import utcnow, as_utc
from backend.app.domain.shift.ledger import TripLedger
from backend.app.models.trip_enums import ShiftStep
from backend.app.schemas.analytics import TripAnalytics
from backend.app.schemas.shift_session import ShiftSessionState, ShiftExport
from backend.app.schemas.trip import Trip, TripUpdate, ShiftData, ShiftStart, ShiftEnd
from backend.app.services.analytics import AnalyticsService


# step -> steps it may move to (reset/clear are always allowed)
TRANSITIONS = {
    ShiftStep.EMPLOYEE_ID: frozenset({ShiftStep.START_SHIFT}),
    ShiftStep.START_SHIFT: frozenset({ShiftStep.START_SHIFT, ShiftStep.ACTIVE_SHIFT}),
    ShiftStep.ACTIVE_SHIFT: frozenset({ShiftStep.ANALYTICS}),
    ShiftStep.ANALYTICS: frozenset(),
}


class ShiftSession:
    """In-memory shift workflow of one driver."""

    def __init__(self, employee_id: str = "", clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self.employee_id = employee_id
        self.step = ShiftStep.EMPLOYEE_ID
        self.shift_data = ShiftData()
        self.ledger = TripLedger()
        self.is_shift_started = False
        self.is_shift_ended = False
        self.analytics = TripAnalytics()

    @classmethod
    def from_state(cls, state: ShiftSessionState, clock: Callable[[], datetime] = utcnow) -> "ShiftSession":
        """Rebuild a session from a snapshot; stored analytics are recomputed, not trusted."""
        session = cls(state.employee_id, clock=clock)
        session.step = state.current_step
        session.shift_data = state.shift_data
        session.ledger = TripLedger(state.trips)
        session.is_shift_started = state.is_shift_started
        session.is_shift_ended = state.is_shift_ended
        session.recompute()
        return session

    def to_state(self) -> ShiftSessionState:
        return ShiftSessionState(
            employee_id=self.employee_id,
            current_step=self.step,
            shift_data=self.shift_data,
            trips=self.ledger.trips,
            is_shift_started=self.is_shift_started,
            is_shift_ended=self.is_shift_ended,
            analytics=self.analytics,
        )

    def _require_step(self, *steps: ShiftStep) -> None:
        if self.step not in steps:
            raise InvalidStateError(
                f"Not allowed while the shift is at step '{self.step.value}'",
                current_state=self.step
            )

    def _advance(self, target: ShiftStep) -> None:
        if target not in TRANSITIONS[self.step]:
            raise InvalidStateError(
                f"Cannot move from '{self.step.value}' to '{target.value}'",
                current_state=self.step
            )
        self.step = target

    def recompute(self) -> TripAnalytics:
        """Rebuild analytics from the full trip log."""
        now = None if self.is_shift_ended else self._clock()
        self.analytics = AnalyticsService.compute(self.ledger.trips, self.shift_data, now=now)
        return self.analytics

    def identify(self, employee_id: str) -> None:
        employee_id = (employee_id or "").strip()
        if not employee_id:
            raise ValidationError("Employee ID is required")
        self._require_step(ShiftStep.EMPLOYEE_ID, ShiftStep.START_SHIFT)
        self._advance(ShiftStep.START_SHIFT)
        self.employee_id = employee_id

    def start_shift(self, start: ShiftStart) -> ShiftData:
        """Open the shift; the start time is stamped here, never taken from the caller."""
        self._require_step(ShiftStep.START_SHIFT)
        shift_data = ShiftData(**start.model_dump(), start_time=self._clock())

        self._advance(ShiftStep.ACTIVE_SHIFT)
        self.shift_data = shift_data
        self.is_shift_started = True
        self.recompute()
        return shift_data

    def add_trip(self, data: Union[Trip, Dict[str, Any]]) -> Trip:
        self._require_step(ShiftStep.ACTIVE_SHIFT)
        trip = self.ledger.append(data)
        self.recompute()
        return trip

    def amend_trip(self, trip_id: str, changes: Union[TripUpdate, Dict[str, Any]]) -> Trip:
        self._require_step(ShiftStep.ACTIVE_SHIFT)
        trip = self.ledger.amend(trip_id, changes)
        self.recompute()
        return trip

    def remove_trip(self, trip_id: str) -> Trip:
        self._require_step(ShiftStep.ACTIVE_SHIFT)
        trip = self.ledger.remove(trip_id)
        self.recompute()
        return trip

    def end_shift(self, end: ShiftEnd) -> TripAnalytics:
        """
        Close the shift and freeze its end time.

        Raises:
            InvalidStateError: Shift is not active
            ValidationError: End odometer below start odometer, or end before start
        """
        self._require_step(ShiftStep.ACTIVE_SHIFT)

        end_time = end.end_time or self._clock()
        start_time = self.shift_data.start_time
        if start_time is not None and as_utc(end_time) < as_utc(start_time):
            raise ValidationError("Shift cannot end before it started")

        odometer_start = self.shift_data.odometer_start
        if end.odometer_end is not None and odometer_start is not None and end.odometer_end < odometer_start:
            raise ValidationError(
                "End odometer cannot be lower than start odometer",
                details={"odometer_start": odometer_start, "odometer_end": end.odometer_end}
            )

        self._advance(ShiftStep.ANALYTICS)
        self.shift_data = self.shift_data.model_copy(update={
            "end_time": end_time,
            "odometer_end": end.odometer_end,
            "battery_level": end.battery_level if end.battery_level is not None else self.shift_data.battery_level,
        })
        self.is_shift_ended = True
        return self.recompute()

    def analytics_report(self) -> TripAnalytics:
        if not self.is_shift_ended:
            raise InvalidStateError("Analytics are available once the shift has ended", current_state=self.step)
        return self.analytics

    def reset(self) -> None:
        """Soft reset: start over, keeping the employee id."""
        employee_id = self.employee_id
        self.__init__(employee_id, clock=self._clock)

    def clear(self) -> None:
        """Full clear: start over and forget the employee id."""
        self.__init__("", clock=self._clock)

    def export(self) -> ShiftExport:
        return ShiftExport(
            employee_id=self.employee_id,
            shift_data=self.shift_data,
            trips=self.ledger.trips,
            analytics=self.analytics,
            exported_at=self._clock(),
        )
