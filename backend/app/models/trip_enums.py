"""
Shift trip enumerations.
"""

import enum


class TripMode(str, enum.Enum):
    """Booking channel a fare came through."""
    EVZIP_APP = "EVZIP App"
    RENTAL_PACKAGE = "Rental Package"
    SUBSCRIPTION = "Subscription"
    AIRPORT = "Airport"
    UBER = "UBER"
    RAPIDO = "Rapido"
    DIRECT_BOOKING = "Direct Booking"
    CORPORATE = "Corporate"


class PaymentMode(str, enum.Enum):
    """Instrument a fare (or part of it) was paid with."""
    CASH = "Cash"
    UPI_QR = "UPI - QR"
    WALLET = "Wallet"
    CARD = "Card"
    UBER = "Uber"
    BANK_TRANSFER = "Bank Transfer"
    PENDING = "Pending"


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PENDING = "pending"
    DISPUTED = "disputed"


class PaymentSplitStatus(str, enum.Enum):
    """Settlement state of one part payment."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ShiftType(str, enum.Enum):
    DAY = "day"
    NIGHT = "night"
    EVENING = "evening"
    SPLIT = "split"
    ON_DEMAND = "on-demand"


class VehicleCategory(str, enum.Enum):
    TWO_WHEELER = "2W"
    THREE_WHEELER = "3W"
    FOUR_WHEELER = "4W"
    SIX_WHEELER = "6W"
    HEAVY = "heavy"
    ELECTRIC = "electric"


class ShiftStep(str, enum.Enum):
    """Shift workflow step."""
    EMPLOYEE_ID = "employee-id"  # Waiting for the driver to identify
    START_SHIFT = "start-shift"  # Identified, shift not started
    ACTIVE_SHIFT = "active-shift"  # Logging trips
    ANALYTICS = "analytics"  # Shift closed, final analytics
