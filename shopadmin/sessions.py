"""In-memory session registry backing admin authentication."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

logger = logging.getLogger("shopadmin.sessions")

DEFAULT_SESSION_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Session:
    """An authenticated admin login, valid until ``expires_at``."""

    user_id: int
    username: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionRegistry:
    """Create, resolve, revoke and sweep admin sessions keyed by token.

    A single lock guards the map, so every operation is safe to call from
    concurrent request handlers and the sweep never observes a partial map.
    """

    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utcnow
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, token: str, user_id: int, username: str, ttl: timedelta) -> Session:
        session = Session(
            user_id=user_id,
            username=username,
            expires_at=self._clock() + ttl,
        )
        with self._lock:
            self._sessions[token] = session
        logger.info("Created admin session for user '%s' (expires %s)", username, session.expires_at.isoformat())
        return session

    def get(self, token: Optional[str], *, now: Optional[datetime] = None) -> Optional[Session]:
        if not token:
            return None
        if now is None:
            now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired(now):
                # Only evict what is expired by the registry's own clock.
                if session.is_expired(self._clock()):
                    self._sessions.pop(token, None)
                    logger.debug("Dropped expired admin session for user '%s'", session.username)
                return None
            return session

    def delete(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is not None:
            logger.info("Deleted admin session for user '%s'", session.username)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Remove every session that expired strictly before ``now``."""

        if now is None:
            now = self._clock()
        with self._lock:
            expired = [
                token
                for token, session in self._sessions.items()
                if session.expires_at < now
            ]
            for token in expired:
                del self._sessions[token]
        return len(expired)


__all__ = ["DEFAULT_SESSION_TTL", "Session", "SessionRegistry"]
