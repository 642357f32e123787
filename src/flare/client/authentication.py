"""Client-side credential cache backed by the session cookie.

The browser is the source of truth: once it drops the session cookie
(expiry, logout in another tab) the cached session is gone too.
"""

import logging
from datetime import timedelta

from flare.auth.clock import Clock, SystemClock
from flare.auth.session import Session
from flare.client.cookies import Cookie, DocumentCookies, Lifetime

logger = logging.getLogger("flare.client")

SESSION_COOKIE_MAX_AGE = int(timedelta(days=7).total_seconds())


class CredentialCache:
    """Holds the signed-in session for the flow engine and view loaders.

    The cache remembers the token as the server expects it back (signed
    when the server signs tokens). That wire value is what goes in the
    cookie and in the token header.

    Usage::

        cache = CredentialCache(DocumentCookies())
        cache.set_session(session, token=resolver.encode(session))
        cache.current()          # -> session while the cookie is present
        cache.clear()
    """

    __slots__ = ("_clock", "_cookie_name", "_cookies", "_session", "_wire_token")

    def __init__(
        self,
        cookies: DocumentCookies,
        *,
        cookie_name: str = "SESSION_ID",
        clock: Clock | None = None,
    ) -> None:
        self._cookies = cookies
        self._cookie_name = cookie_name
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._session: Session | None = None
        self._wire_token: str | None = None

    def set_session(self, session: Session, *, token: str | None = None) -> None:
        """Write the session cookie (7-day max-age) and cache *session*.

        *token* is the value the server hands out for the session;
        it defaults to the bare ``session.token``.
        """
        wire_token = token or session.token
        self._cookies.write(
            Cookie(
                self._cookie_name,
                wire_token,
                lifetime=Lifetime.max_age(SESSION_COOKIE_MAX_AGE),
            )
        )
        self._session = session
        self._wire_token = wire_token

    def adopt(self, session: Session) -> bool:
        """Cache *session* under the cookie the server already set.

        Returns ``False`` when no session cookie is present.
        """
        wire_token = self.session_token()
        if not wire_token:
            return False
        self._session = session
        self._wire_token = wire_token
        return True

    def clear(self) -> None:
        """Remove the session cookie and forget the cached session."""
        self._cookies.write(Cookie(self._cookie_name, "", lifetime=Lifetime.max_age(0)))
        self._session = None
        self._wire_token = None

    def session_token(self) -> str | None:
        return self._cookies.get(self._cookie_name)

    def current(self) -> Session | None:
        """The cached session, or ``None`` once the cookie no longer holds it."""
        session = self._session
        if session is None:
            return None
        if self.session_token() != self._wire_token:
            logger.debug("Session cookie gone; dropping cached session")
            self._session = None
            self._wire_token = None
            return None
        if session.is_expired(self._clock.now()):
            logger.debug("Cached session expired")
            self.clear()
            return None
        return session
