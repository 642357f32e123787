"""Session credentials and the in-process session store.

The login flow writes sessions here; the dispatcher only reads them.
Reads take a shared lock so concurrent requests never serialize on
lookups. Issue, revoke and purge take it exclusively.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flare._internal.rwlock import ReadWriteLock
from flare.auth.clock import Clock, SystemClock
from flare.auth.levels import AuthLevel
from flare.security.audit import emit_security_event

logger = logging.getLogger("flare.auth")

DEFAULT_SESSION_TTL = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class Session:
    """An issued credential.

    ``expires_at`` is a timezone-aware UTC datetime.
    """

    token: str
    level: AuthLevel
    expires_at: datetime
    user_id: str = ""

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionStore:
    """Token to session mapping.

    Usage::

        store = SessionStore()
        session = store.issue("alice", AuthLevel.AUTHENTICATED)
        store.get(session.token)   # -> Session
        store.revoke(session.token)
    """

    __slots__ = ("_clock", "_lock", "_sessions", "_ttl")

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock | None = None,
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self._ttl = ttl
        self._clock: Clock = clock if clock is not None else SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def issue(
        self,
        user_id: str,
        level: AuthLevel,
        *,
        ttl: timedelta | None = None,
    ) -> Session:
        """Create and store a new session with a fresh random token."""
        lifetime = ttl if ttl is not None else self._ttl
        session = Session(
            token=secrets.token_urlsafe(32),
            level=level,
            expires_at=self._clock.now() + lifetime,
            user_id=user_id,
        )
        with self._lock.write():
            self._sessions[session.token] = session
        logger.debug("Issued %s session for %r", level.name.lower(), user_id)
        emit_security_event(
            "auth.session.issued",
            user_id=user_id,
            details={"level": level.name.lower()},
        )
        return session

    def revoke(self, token: str) -> bool:
        """Remove a session. Returns ``False`` if the token was unknown."""
        with self._lock.write():
            session = self._sessions.pop(token, None)
        if session is None:
            return False
        emit_security_event("auth.session.revoked", user_id=session.user_id)
        return True

    def get(self, token: str) -> Session | None:
        """Look up a session by token.

        Expired sessions are still returned; the guard decides what an
        expired credential is worth.
        """
        with self._lock.read():
            return self._sessions.get(token)

    def purge_expired(self) -> int:
        """Drop every expired session. Returns how many were removed."""
        now = self._clock.now()
        with self._lock.write():
            expired = [token for token, s in self._sessions.items() if s.is_expired(now)]
            for token in expired:
                del self._sessions[token]
        if expired:
            logger.debug("Purged %d expired session(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        with self._lock.read():
            return token in self._sessions
