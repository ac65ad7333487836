"""
Trip Ledger (Domain Logic).

Ordered trips of one work shift. Every mutation is validated in full before
it is applied, so a rejected append/amend/remove leaves the ledger unchanged.
"""

from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from backend.app.core.config import settings
from backend.app.core.exceptions import ValidationError, NotFoundError
from backend.app.schemas.trip import Trip, TripUpdate

PART_PAYMENT_MISMATCH = "part payment amounts must sum to total amount"


def _parse_trip(data: Union[Trip, Dict[str, Any]]) -> Trip:
    if isinstance(data, Trip):
        data = data.model_dump()
    try:
        return Trip.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid trip",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)}
        )


def check_trip_rules(trip: Trip) -> None:
    """
    Business rules a trip must satisfy on top of its schema.

    Raises:
        ValidationError: Non-positive amount, negative tip or unbalanced part payment
    """
    if trip.amount <= 0:
        raise ValidationError("Trip amount must be greater than 0", details={"amount": trip.amount})
    if trip.tip < 0:
        raise ValidationError("Tip cannot be negative", details={"tip": trip.tip})

    if trip.part_payment and trip.part_payment.enabled:
        split_total = sum(payment.amount for payment in trip.part_payment.payments)
        if abs(split_total - trip.amount) > settings.part_payment_epsilon:
            raise ValidationError(
                PART_PAYMENT_MISMATCH,
                details={"amount": trip.amount, "part_payment_total": split_total}
            )


class TripLedger:
    """Trips of one shift in the order they were logged."""

    def __init__(self, trips: Optional[List[Trip]] = None):
        self._trips: List[Trip] = list(trips or [])

    def __len__(self) -> int:
        return len(self._trips)

    def __iter__(self) -> Iterator[Trip]:
        return iter(list(self._trips))

    @property
    def trips(self) -> List[Trip]:
        return list(self._trips)

    def _index_of(self, trip_id: str) -> int:
        for index, trip in enumerate(self._trips):
            if trip.id == trip_id:
                return index
        raise NotFoundError("Trip", trip_id)

    def append(self, data: Union[Trip, Dict[str, Any]]) -> Trip:
        """
        Add a trip to the end of the ledger.

        Raises:
            ValidationError: Unknown mode/payment mode, bad amounts or duplicate id
        """
        trip = _parse_trip(data)
        check_trip_rules(trip)
        if any(existing.id == trip.id for existing in self._trips):
            raise ValidationError(f"Trip {trip.id} already exists", details={"id": trip.id})

        self._trips.append(trip)
        return trip

    def amend(self, trip_id: str, changes: Union[TripUpdate, Dict[str, Any]]) -> Trip:
        """
        Merge a partial update into an existing trip.

        The merged trip is re-validated under the append rules; the id is fixed.

        Raises:
            NotFoundError: Unknown trip id
            ValidationError: Merged trip is invalid or the id would change
        """
        index = self._index_of(trip_id)

        if isinstance(changes, TripUpdate):
            updates = changes.model_dump(exclude_unset=True)
        else:
            updates = dict(changes)
        if updates.get("id", trip_id) != trip_id:
            raise ValidationError("Trip id cannot be changed", details={"id": trip_id})
        updates.pop("id", None)

        merged = self._trips[index].model_dump()
        merged.update(updates)
        trip = _parse_trip(merged)
        check_trip_rules(trip)

        self._trips[index] = trip
        return trip

    def remove(self, trip_id: str) -> Trip:
        """
        Remove a trip.

        Raises:
            NotFoundError: Unknown trip id
        """
        return self._trips.pop(self._index_of(trip_id))
