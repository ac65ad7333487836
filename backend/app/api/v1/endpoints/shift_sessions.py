"""
Shift Session API Endpoints.

Drivers log the trips of a shift. Each call loads the session snapshot from
Redis, applies one step and saves it back.
"""

import uuid
from fastapi import APIRouter, Depends, Path, Body, Response, status
from typing import Optional

from backend.app.core.redis_client import get_redis
from backend.app.core.guards import require_capability, Capability
from backend.app.core.exceptions import NotFoundError
from backend.app.domain.shift.session import ShiftSession
from backend.app.domain.shift.store import ShiftSessionStore
from backend.app.schemas.analytics import TripAnalytics
from backend.app.schemas.shift_session import (
    ShiftSessionResponse, CreateSessionRequest, IdentifyRequest, ShiftExport
)
from backend.app.schemas.trip import Trip, TripUpdate, ShiftStart, ShiftEnd

router = APIRouter(prefix="/shift-sessions", tags=["Driver - Shift Sessions"])


async def get_session_store(redis=Depends(get_redis)) -> ShiftSessionStore:
    return ShiftSessionStore(redis)


async def _load(store: ShiftSessionStore, session_id: str) -> ShiftSession:
    session = await store.load(session_id)
    if session is None:
        raise NotFoundError("Shift session", session_id)
    return session


def _respond(session_id: str, session: ShiftSession) -> ShiftSessionResponse:
    return ShiftSessionResponse(session_id=session_id, **session.to_state().model_dump())


@router.post("", response_model=ShiftSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Optional[CreateSessionRequest] = Body(None),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """
    Open a shift session.

    Passing a known session id recovers it (or just its remembered employee
    id) instead of starting blank.
    """
    session_id = (request.session_id if request else None) or uuid.uuid4().hex
    session = await store.load(session_id) or ShiftSession()
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.get("/{session_id}", response_model=ShiftSessionResponse)
async def get_session(
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Recover a session; a shift started more than 24 hours ago comes back reset."""
    session = await _load(store, session_id)
    return _respond(session_id, session)


@router.post("/{session_id}/identify", response_model=ShiftSessionResponse)
async def identify(
    request: IdentifyRequest,
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Enter the employee id; it is remembered for 7 days."""
    session = await _load(store, session_id)
    session.identify(request.employee_id)
    await store.remember_identity(session_id, session.employee_id)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.post("/{session_id}/start", response_model=ShiftSessionResponse)
async def start_shift(
    request: ShiftStart,
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    session = await _load(store, session_id)
    session.start_shift(request)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.post("/{session_id}/trips", response_model=ShiftSessionResponse, status_code=status.HTTP_201_CREATED)
async def add_trip(
    trip: Trip,
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Log a trip during an active shift."""
    session = await _load(store, session_id)
    session.add_trip(trip)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.patch("/{session_id}/trips/{trip_id}", response_model=ShiftSessionResponse)
async def amend_trip(
    changes: TripUpdate,
    session_id: str = Path(...),
    trip_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    session = await _load(store, session_id)
    session.amend_trip(trip_id, changes)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.delete("/{session_id}/trips/{trip_id}", response_model=ShiftSessionResponse)
async def remove_trip(
    session_id: str = Path(...),
    trip_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    session = await _load(store, session_id)
    session.remove_trip(trip_id)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.post("/{session_id}/end", response_model=ShiftSessionResponse)
async def end_shift(
    request: ShiftEnd,
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Close the shift; trips are frozen from here on."""
    session = await _load(store, session_id)
    session.end_shift(request)
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.get("/{session_id}/analytics", response_model=TripAnalytics)
async def get_shift_analytics(
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Final analytics of an ended shift."""
    session = await _load(store, session_id)
    return session.analytics_report()


@router.get("/{session_id}/export", response_model=ShiftExport)
async def export_shift(
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    session = await _load(store, session_id)
    return session.export()


@router.post("/{session_id}/reset", response_model=ShiftSessionResponse)
async def reset_session(
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Start over, keeping the employee id."""
    session = await _load(store, session_id)
    session.reset()
    await store.save(session_id, session)
    return _respond(session_id, session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_session(
    session_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.SHIFT_SESSION)),
    store: ShiftSessionStore = Depends(get_session_store)
):
    """Forget the session and the remembered employee id."""
    await store.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
