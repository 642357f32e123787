"""Credential resolution: request to Session.

Browsers carry the session token in a cookie; API clients send it in a
header. The header wins when both are present.
"""

import logging
from datetime import timedelta

from flare.auth.session import Session, SessionStore
from flare.auth.tokens import TokenSigner
from flare.http.cookies import SetCookie
from flare.http.request import Request
from flare.security.audit import emit_security_event

logger = logging.getLogger("flare.auth")

_COOKIE_MAX_AGE = int(timedelta(days=7).total_seconds())


class CredentialResolver:
    """Resolve the session a request presents, if any.

    Usage::

        resolver = CredentialResolver(store, signer=TokenSigner(secret))
        session = resolver.resolve(request)   # Session | None

        # In a login handler
        return Response("ok").with_set_cookie(resolver.session_cookie(session))
    """

    __slots__ = ("_cookie_name", "_secure", "_sessions", "_signer", "_token_header")

    def __init__(
        self,
        sessions: SessionStore,
        *,
        token_header: str = "X-Flare-Token",
        cookie_name: str = "SESSION_ID",
        signer: TokenSigner | None = None,
        secure: bool = False,
    ) -> None:
        self._sessions = sessions
        self._token_header = token_header
        self._cookie_name = cookie_name
        self._signer = signer
        self._secure = secure

    @property
    def token_header(self) -> str:
        return self._token_header

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    def resolve(self, request: Request) -> Session | None:
        """Return the presented session, or ``None``.

        Expired sessions are returned as-is; the guard treats them as
        no credential.
        """
        raw = request.headers.get(self._token_header) or request.cookies.get(self._cookie_name)
        if not raw:
            return None

        token = self._unwrap(raw, request)
        if token is None:
            return None
        return self._sessions.get(token)

    def encode(self, session: Session) -> str:
        """The value a client should send back: signed when a signer is set."""
        if self._signer is not None:
            return self._signer.sign(session.token)
        return session.token

    def session_cookie(self, session: Session) -> SetCookie:
        """Build the Set-Cookie that hands *session* to a browser."""
        return SetCookie(
            name=self._cookie_name,
            value=self.encode(session),
            max_age=_COOKIE_MAX_AGE,
            secure=self._secure,
        )

    def clear_session_cookie(self) -> SetCookie:
        """Build the Set-Cookie that drops the session cookie."""
        return SetCookie(name=self._cookie_name, value="", max_age=0, secure=self._secure)

    def _unwrap(self, raw: str, request: Request) -> str | None:
        if self._signer is None:
            return raw
        token = self._signer.unsign(raw)
        if token is None:
            logger.warning(
                "Rejected session token with invalid signature on %s %s",
                request.method,
                request.path,
            )
            emit_security_event("auth.token.invalid_signature", request=request)
        return token
