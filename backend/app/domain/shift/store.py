"""
Shift Session Store.

Persists shift sessions in Redis for crash recovery:

    driver:identity:{session_id}  -> {employee_id, last_login}   (7 day TTL)
    shift:session:{session_id}    -> {version, saved_at, state}

Expiry and staleness are checked when a key is read; nothing runs in the
background.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from backend.app.core.config import settings
from backend.app.core.timeutils import utcnow, as_utc
from backend.app.domain.shift.session import ShiftSession
from backend.app.schemas.shift_session import SessionSnapshot, DriverIdentity

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

IDENTITY_KEY = "driver:identity:{session_id}"
SNAPSHOT_KEY = "shift:session:{session_id}"


class ShiftSessionStore:
    """Redis-backed persistence of shift sessions and remembered identities."""

    def __init__(self, redis, clock: Callable[[], datetime] = utcnow):
        self.redis = redis
        self._clock = clock
        self.identity_ttl = timedelta(days=settings.identity_ttl_days)
        self.staleness = timedelta(hours=settings.shift_staleness_hours)

    async def remember_identity(self, session_id: str, employee_id: str) -> DriverIdentity:
        identity = DriverIdentity(employee_id=employee_id, last_login=self._clock())
        await self.redis.set(
            IDENTITY_KEY.format(session_id=session_id),
            identity.model_dump_json(),
            ex=int(self.identity_ttl.total_seconds())
        )
        return identity

    async def recall_identity(self, session_id: str) -> Optional[DriverIdentity]:
        """Remembered identity, or None once it is older than the identity TTL."""
        key = IDENTITY_KEY.format(session_id=session_id)
        raw = await self.redis.get(key)
        if raw is None:
            return None

        try:
            identity = DriverIdentity.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable identity record for session %s", session_id)
            await self.redis.delete(key)
            return None

        if self._clock() - as_utc(identity.last_login) >= self.identity_ttl:
            await self.redis.delete(key)
            return None
        return identity

    async def forget_identity(self, session_id: str) -> None:
        await self.redis.delete(IDENTITY_KEY.format(session_id=session_id))

    async def save(self, session_id: str, session: ShiftSession) -> SessionSnapshot:
        snapshot = SessionSnapshot(
            version=SNAPSHOT_VERSION,
            saved_at=self._clock(),
            state=session.to_state(),
        )
        await self.redis.set(SNAPSHOT_KEY.format(session_id=session_id), snapshot.model_dump_json())
        return snapshot

    async def _read_snapshot(self, session_id: str) -> Optional[SessionSnapshot]:
        raw = await self.redis.get(SNAPSHOT_KEY.format(session_id=session_id))
        if raw is None:
            return None
        try:
            snapshot = SessionSnapshot.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable snapshot for session %s", session_id)
            return None
        if snapshot.version != SNAPSHOT_VERSION:
            logger.warning(
                "Discarding snapshot version %s for session %s (expected %s)",
                snapshot.version, session_id, SNAPSHOT_VERSION
            )
            return None
        return snapshot

    async def load(self, session_id: str) -> Optional[ShiftSession]:
        """
        Recover a session.

        A shift that started more than the staleness window ago is dropped
        back to the first step, keeping only the employee id. Without a
        snapshot, a remembered identity still pre-fills the employee id.

        Returns:
            The recovered session, or None if nothing is known about it
        """
        snapshot = await self._read_snapshot(session_id)
        if snapshot is None:
            identity = await self.recall_identity(session_id)
            if identity is None:
                return None
            return ShiftSession(identity.employee_id, clock=self._clock)

        state = snapshot.state
        start_time = state.shift_data.start_time
        if start_time is not None and self._clock() - as_utc(start_time) > self.staleness:
            logger.info("Shift of session %s started at %s is stale, resetting", session_id, start_time)
            session = ShiftSession(state.employee_id, clock=self._clock)
            await self.save(session_id, session)
            return session

        return ShiftSession.from_state(state, clock=self._clock)

    async def delete(self, session_id: str) -> None:
        """Drop the snapshot and the remembered identity."""
        await self.redis.delete(SNAPSHOT_KEY.format(session_id=session_id))
        await self.forget_identity(session_id)
