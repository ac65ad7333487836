"""
Shift trip and shift data schemas.
"""

import uuid
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from backend.app.models.trip_enums import (
    TripMode, PaymentMode, TripStatus, PaymentSplitStatus, ShiftType, VehicleCategory
)


class PaymentSplit(BaseModel):
    """One instrument of a split fare."""
    amount: float
    mode: PaymentMode
    status: PaymentSplitStatus = PaymentSplitStatus.COMPLETED


class PartPayment(BaseModel):
    """A fare split across several payment instruments."""
    enabled: bool = False
    payments: List[PaymentSplit] = Field(default_factory=list)


class CustomerInfo(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class Trip(BaseModel):
    """One fare event within a shift."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    mode: TripMode
    amount: float
    tip: float = 0.0
    payment_mode: PaymentMode
    status: TripStatus = TripStatus.COMPLETED
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    distance: Optional[float] = Field(None, ge=0, description="Distance in km")
    duration: Optional[float] = Field(None, ge=0, description="Duration in minutes")
    timestamp: datetime = Field(default_factory=datetime.now)
    notes: Optional[str] = None
    part_payment: Optional[PartPayment] = None
    customer: Optional[CustomerInfo] = None
    rating: Optional[float] = Field(None, ge=0, le=5)

    @property
    def total(self) -> float:
        """Fare plus tip."""
        return self.amount + self.tip


class TripUpdate(BaseModel):
    """Partial amendment of a trip; unset fields are left as they are."""
    mode: Optional[TripMode] = None
    amount: Optional[float] = None
    tip: Optional[float] = None
    payment_mode: Optional[PaymentMode] = None
    status: Optional[TripStatus] = None
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    distance: Optional[float] = Field(None, ge=0)
    duration: Optional[float] = Field(None, ge=0)
    timestamp: Optional[datetime] = None
    notes: Optional[str] = None
    part_payment: Optional[PartPayment] = None
    customer: Optional[CustomerInfo] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class ShiftData(BaseModel):
    """One shift's envelope data."""
    vehicle_number: str = ""
    shift_type: ShiftType = ShiftType.DAY
    vehicle_category: VehicleCategory = VehicleCategory.FOUR_WHEELER
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_trips_planned: int = Field(0, ge=0)
    odometer_start: Optional[float] = Field(None, ge=0)
    odometer_end: Optional[float] = Field(None, ge=0)
    battery_level: Optional[float] = Field(None, ge=0, le=100)


class ShiftStart(BaseModel):
    """Schema for starting a shift."""
    vehicle_number: str = Field(..., min_length=1, max_length=50)
    shift_type: ShiftType = ShiftType.DAY
    vehicle_category: VehicleCategory = VehicleCategory.FOUR_WHEELER
    total_trips_planned: int = Field(0, ge=0)
    odometer_start: Optional[float] = Field(None, ge=0)
    battery_level: Optional[float] = Field(None, ge=0, le=100)


class ShiftEnd(BaseModel):
    """Schema for closing a shift."""
    end_time: Optional[datetime] = None
    odometer_end: Optional[float] = Field(None, ge=0)
    battery_level: Optional[float] = Field(None, ge=0, le=100)
