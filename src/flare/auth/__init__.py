"""Authentication: access levels, sessions, credential resolution, guard.

The guard is a pure function shared by the server dispatcher and the
client flow engine::

    from flare.auth import AuthLevel, AuthOutcome, check

    check(AuthLevel.AUTHENTICATED, session)   # -> AuthOutcome
"""

from flare.auth.clock import Clock, FixedClock, SystemClock
from flare.auth.credentials import CredentialResolver
from flare.auth.guard import AuthOutcome, check
from flare.auth.levels import AuthLevel
from flare.auth.login import (
    Account,
    LoginOutcome,
    LoginResult,
    LogoutOutcome,
    login,
    logout,
)
from flare.auth.session import Session, SessionStore
from flare.auth.tokens import TokenSigner

__all__ = [
    "Account",
    "AuthLevel",
    "AuthOutcome",
    "Clock",
    "CredentialResolver",
    "FixedClock",
    "LoginOutcome",
    "LoginResult",
    "LogoutOutcome",
    "Session",
    "SessionStore",
    "SystemClock",
    "TokenSigner",
    "check",
    "login",
    "logout",
]
