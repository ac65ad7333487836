"""
Vehicle Registry Resolver.

Resolves registration numbers against the vehicle master data held in the
external registry ("Data Hub"). Registry documents were written under two
field-naming schemes over time:

    proper-case:  Registration_Number, Vehicle_ID, Brand, Current_Hub, ...
    camel-case:   registrationNumber, vehicleId, brand, currentHub, ...

This module is the only place that knows about both. Everything it returns
is a canonical ``VehicleReference``.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import NotFoundError
from backend.app.core.timeutils import utcnow
from backend.app.models.registry_document import RegistryDocument
from backend.app.schemas.fleet_vehicle import (
    VehicleReference, VehicleValidationResult, VehicleSuggestion, RegistryHealth
)

logger = logging.getLogger(__name__)

# canonical field -> (proper-case key, camel-case key)
FIELD_ALIASES: Dict[str, tuple] = {
    "registration_number": ("Registration_Number", "registrationNumber"),
    "vehicle_id": ("Vehicle_ID", "vehicleId"),
    "brand": ("Brand", "brand"),
    "model": ("Model", "model"),
    "year": ("Year", "year"),
    "color": ("Color", "color"),
    "vin_number": ("VIN_Number", "vinNumber"),
    "battery_capacity": ("Battery_Capacity", "batteryCapacity"),
    "range_km": ("Range", "range"),
    "status": ("Status", "status"),
    "current_hub": ("Current_Hub", "currentHub"),
    "assigned_pilot_id": ("Assigned_Pilot_ID", "assignedPilotId"),
    "is_active": ("Is_Active", "isActive"),
}

UNDEPLOYABLE_STATUSES = {"inactive", "out of service", "maintenance"}

NOT_IN_REGISTRY_SUGGESTION = "Please add the vehicle to Database Management first"

_NUMBER = re.compile(r"-?\d+(\.\d+)?")


def _pick(document: Dict[str, Any], canonical: str) -> Any:
    proper, camel = FIELD_ALIASES[canonical]
    value = document.get(proper)
    if value is None:
        value = document.get(camel)
    return value


def _to_number(value: Any) -> Optional[float]:
    """Read a number out of loosely typed registry values like '40 kWh'."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    return float(match.group()) if match else None


def compact_registration(registration_number: str) -> str:
    """Uppercase registration with spaces, dots and hyphens removed."""
    return re.sub(r"[^A-Z0-9]", "", registration_number.upper())


def normalize_vehicle_document(document: Dict[str, Any], data_hub_id: Optional[Any] = None) -> Optional[VehicleReference]:
    """
    Map a registry document in either naming scheme to a VehicleReference.

    Returns None for documents that carry no registration number at all.
    """
    registration = _pick(document, "registration_number")
    if not registration:
        return None

    year = _to_number(_pick(document, "year"))
    vehicle_id = _pick(document, "vehicle_id")
    assigned_pilot = _pick(document, "assigned_pilot_id")

    return VehicleReference(
        data_hub_id=str(data_hub_id) if data_hub_id is not None else None,
        registration_number=str(registration).strip(),
        vehicle_id=str(vehicle_id) if vehicle_id is not None else None,
        brand=_pick(document, "brand"),
        model=_pick(document, "model"),
        year=int(year) if year is not None else None,
        color=_pick(document, "color"),
        vin_number=_pick(document, "vin_number"),
        battery_capacity=_to_number(_pick(document, "battery_capacity")),
        range_km=_to_number(_pick(document, "range_km")),
        status=_pick(document, "status"),
        current_hub=_pick(document, "current_hub"),
        assigned_pilot_id=str(assigned_pilot) if assigned_pilot is not None else None,
        is_active=_pick(document, "is_active") is not False,
    )


def check_deployability(vehicle: VehicleReference) -> VehicleValidationResult:
    """Decide whether a resolved vehicle may be checked out."""
    warnings: List[str] = []
    status_text = (vehicle.status or "").strip()

    if not vehicle.is_active:
        return VehicleValidationResult(valid=False, vehicle=vehicle, error="Vehicle is not active")

    if status_text.lower() in UNDEPLOYABLE_STATUSES:
        return VehicleValidationResult(
            valid=False,
            vehicle=vehicle,
            error=f"Vehicle is currently {status_text}",
        )

    if vehicle.assigned_pilot_id and status_text.lower() == "deployed":
        warnings.append("Vehicle is currently assigned to another pilot")

    return VehicleValidationResult(valid=True, vehicle=vehicle, warnings=warnings)


class VehicleRegistry:
    """Read-only access to registry vehicles."""

    @staticmethod
    async def _find_document(db: AsyncSession, key: str, registration_number: str) -> Optional[RegistryDocument]:
        field = RegistryDocument.document[key].as_string()
        result = await db.execute(
            select(RegistryDocument).where(
                RegistryDocument.collection == settings.registry_vehicle_collection,
                func.lower(field) == registration_number.lower(),
            ).order_by(RegistryDocument.id).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _all_vehicles(db: AsyncSession) -> List[VehicleReference]:
        result = await db.execute(
            select(RegistryDocument).where(
                RegistryDocument.collection == settings.registry_vehicle_collection
            ).order_by(RegistryDocument.id)
        )
        vehicles = []
        for row in result.scalars().all():
            vehicle = normalize_vehicle_document(row.document, row.id)
            if vehicle is not None:
                vehicles.append(vehicle)
        return vehicles

    @staticmethod
    async def resolve(db: AsyncSession, registration_number: str) -> Optional[VehicleReference]:
        """
        Resolve a registration number, case-insensitively, under either naming scheme.

        Args:
            db: Database session
            registration_number: Registration as entered by a human

        Returns:
            Canonical vehicle reference, or None if the registry has no match
        """
        registration_number = (registration_number or "").strip()
        if not registration_number:
            return None

        proper_key, camel_key = FIELD_ALIASES["registration_number"]
        for key in (proper_key, camel_key):
            row = await VehicleRegistry._find_document(db, key, registration_number)
            if row is not None:
                logger.debug("Resolved %s via %s field", registration_number, key)
                return normalize_vehicle_document(row.document, row.id)
        return None

    @staticmethod
    async def suggest_correction(db: AsyncSession, registration_number: str) -> str:
        """Human hint for a registration that did not resolve."""
        wanted = compact_registration(registration_number or "")
        if wanted:
            for vehicle in await VehicleRegistry._all_vehicles(db):
                if compact_registration(vehicle.registration_number) == wanted:
                    return f"Did you mean {vehicle.registration_number}?"
        return NOT_IN_REGISTRY_SUGGESTION

    @staticmethod
    async def require(db: AsyncSession, registration_number: str) -> VehicleReference:
        """Resolve or raise NotFoundError carrying a suggestion."""
        vehicle = await VehicleRegistry.resolve(db, registration_number)
        if vehicle is None:
            suggestion = await VehicleRegistry.suggest_correction(db, registration_number)
            raise NotFoundError("Vehicle", registration_number, suggestion=suggestion)
        return vehicle

    @staticmethod
    async def validate_for_deployment(db: AsyncSession, registration_number: str) -> VehicleValidationResult:
        """
        Validate that a vehicle exists in the registry and may be deployed.

        Returns:
            VehicleValidationResult; ``valid`` is False with an error and,
            when the vehicle is unknown, a suggestion string.
        """
        try:
            vehicle = await VehicleRegistry.require(db, registration_number)
        except NotFoundError as exc:
            return VehicleValidationResult(
                valid=False,
                error="Vehicle not found in Data Hub",
                suggestion=exc.suggestion,
            )
        return check_deployability(vehicle)

    @staticmethod
    async def find_by_vehicle_id(db: AsyncSession, vehicle_id: str) -> Optional[VehicleReference]:
        """Look a vehicle up by its registry Vehicle ID."""
        for vehicle in await VehicleRegistry._all_vehicles(db):
            if vehicle.vehicle_id == vehicle_id:
                return vehicle
        return None

    @staticmethod
    async def list_available(
        db: AsyncSession,
        status: Optional[str] = None,
        hub: Optional[str] = None,
        limit: int = 100
    ) -> List[VehicleReference]:
        """Active registry vehicles, optionally filtered by status and hub, sorted by registration."""
        vehicles = [v for v in await VehicleRegistry._all_vehicles(db) if v.is_active]
        if status:
            vehicles = [v for v in vehicles if (v.status or "").lower() == status.lower()]
        if hub:
            vehicles = [v for v in vehicles if (v.current_hub or "").lower() == hub.lower()]
        vehicles.sort(key=lambda v: v.registration_number.upper())
        return vehicles[:limit]

    @staticmethod
    async def suggest(db: AsyncSession, query: str, limit: int = 10) -> List[VehicleSuggestion]:
        """Autocomplete on registration, brand or model."""
        needle = (query or "").strip().lower()
        if not needle:
            return []

        matches = []
        for vehicle in await VehicleRegistry.list_available(db, limit=10_000):
            haystacks = (vehicle.registration_number, vehicle.brand or "", vehicle.model or "")
            if any(needle in value.lower() for value in haystacks):
                matches.append(VehicleSuggestion(
                    registration_number=vehicle.registration_number,
                    brand=vehicle.brand or "Unknown",
                    model=vehicle.model or "Unknown",
                    status=vehicle.status or "Active",
                    current_hub=vehicle.current_hub or "Unknown",
                ))
            if len(matches) >= limit:
                break
        return matches

    @staticmethod
    async def health(db: AsyncSession) -> RegistryHealth:
        """Registry reachability and vehicle count."""
        try:
            count = (await db.execute(
                select(func.count(RegistryDocument.id)).where(
                    RegistryDocument.collection == settings.registry_vehicle_collection
                )
            )).scalar() or 0
        except SQLAlchemyError as exc:
            logger.warning("Vehicle registry health check failed: %s", exc)
            return RegistryHealth(status="unhealthy", vehicles=0, last_checked=utcnow(), error=str(exc))

        return RegistryHealth(status="healthy", vehicles=count, last_checked=utcnow())
