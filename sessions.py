"""Session stores backing the login session.

A session maps an opaque session id to a user id until it expires. The memory
store lives as long as the process; the database store survives restarts.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from database import SessionRow
from schemas import SessionRecord

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything here is stored as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SessionStore(ABC):

    @abstractmethod
    def get(self, sid: str) -> Optional[SessionRecord]:
        """Return the live session for ``sid``, or None if unknown or expired."""

    @abstractmethod
    def set(self, sid: str, user_id: int, expires_at: datetime) -> SessionRecord:
        """Create or replace a session."""

    @abstractmethod
    def destroy(self, sid: str) -> None:
        """Forget a session. Unknown ids are ignored."""

    @abstractmethod
    def prune(self) -> int:
        """Drop expired sessions and return how many were removed."""


class MemorySessionStore(SessionStore):
    def __init__(self, check_period: timedelta = timedelta(hours=24)):
        self._sessions: Dict[str, SessionRecord] = {}
        self._check_period = check_period
        self._last_pruned = utcnow()

    def _maybe_prune(self) -> None:
        if utcnow() - self._last_pruned >= self._check_period:
            self.prune()

    def get(self, sid: str) -> Optional[SessionRecord]:
        self._maybe_prune()
        record = self._sessions.get(sid)
        if record is None or record.expires_at <= utcnow():
            return None
        return record

    def set(self, sid: str, user_id: int, expires_at: datetime) -> SessionRecord:
        self._maybe_prune()
        record = SessionRecord(sid=sid, user_id=user_id, expires_at=_aware(expires_at))
        self._sessions[sid] = record
        return record

    def destroy(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    def prune(self) -> int:
        now = utcnow()
        expired = [sid for sid, record in self._sessions.items() if record.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        self._last_pruned = now
        if expired:
            logger.debug("Pruned %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class DatabaseSessionStore(SessionStore):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, sid: str) -> Optional[SessionRecord]:
        with self._session_factory() as db:
            row = db.get(SessionRow, sid)
            if row is None:
                return None
            expires_at = _aware(row.expires_at)
            if expires_at <= utcnow():
                return None
            return SessionRecord(sid=row.sid, user_id=row.user_id, expires_at=expires_at)

    def set(self, sid: str, user_id: int, expires_at: datetime) -> SessionRecord:
        # stored naive in UTC so comparisons behave the same on every dialect
        stored = _aware(expires_at).astimezone(timezone.utc).replace(tzinfo=None)
        with self._session_factory() as db:
            row = db.get(SessionRow, sid)
            if row is None:
                db.add(SessionRow(sid=sid, user_id=user_id, expires_at=stored))
            else:
                row.user_id = user_id
                row.expires_at = stored
            db.commit()
        return SessionRecord(sid=sid, user_id=user_id, expires_at=_aware(expires_at))

    def destroy(self, sid: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(SessionRow).where(SessionRow.sid == sid))
            db.commit()

    def prune(self) -> int:
        now = utcnow().replace(tzinfo=None)
        with self._session_factory() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.expires_at <= now))
            db.commit()
            removed = result.rowcount or 0
        if removed:
            logger.debug("Pruned %d expired sessions", removed)
        return removed
