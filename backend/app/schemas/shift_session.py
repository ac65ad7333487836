"""
Shift session schemas.

State of one driver's shift workflow, its persisted snapshot and the
export document.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from backend.app.models.trip_enums import ShiftStep
from backend.app.schemas.trip import Trip, ShiftData
from backend.app.schemas.analytics import TripAnalytics


class ShiftSessionState(BaseModel):
    """Everything a shift session holds."""
    employee_id: str = ""
    current_step: ShiftStep = ShiftStep.EMPLOYEE_ID
    shift_data: ShiftData = Field(default_factory=ShiftData)
    trips: List[Trip] = Field(default_factory=list)
    is_shift_started: bool = False
    is_shift_ended: bool = False
    analytics: TripAnalytics = Field(default_factory=TripAnalytics)


class ShiftSessionResponse(ShiftSessionState):
    session_id: str


class SessionSnapshot(BaseModel):
    """Versioned crash-recovery snapshot."""
    version: int
    saved_at: datetime
    state: ShiftSessionState


class DriverIdentity(BaseModel):
    """Remembered employee identity."""
    employee_id: str
    last_login: datetime


class CreateSessionRequest(BaseModel):
    """Open a session; an existing id restores the remembered identity."""
    session_id: Optional[str] = Field(None, min_length=1, max_length=64)


class IdentifyRequest(BaseModel):
    employee_id: str = Field(..., min_length=1, max_length=50)


class ShiftExport(BaseModel):
    """Read-only download of a shift."""
    employee_id: str
    shift_data: ShiftData
    trips: List[Trip]
    analytics: TripAnalytics
    exported_at: datetime
