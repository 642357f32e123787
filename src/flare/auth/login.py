"""Login and logout against a SessionStore.

Applications bring their own account model; anything with ``id``,
``encoded_password``, ``is_active`` and ``level`` will do.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from flare.auth.levels import AuthLevel
from flare.auth.session import Session, SessionStore
from flare.security.audit import emit_security_event
from flare.security.passwords import hash_password, verify_password

logger = logging.getLogger("flare.auth")

__all__ = [
    "Account",
    "LoginOutcome",
    "LoginResult",
    "LogoutOutcome",
    "hash_password",
    "login",
    "logout",
    "verify_password",
]


class Account(Protocol):
    """Minimal account protocol for ``login()``."""

    @property
    def id(self) -> str: ...

    @property
    def encoded_password(self) -> str: ...

    @property
    def is_active(self) -> bool: ...

    @property
    def level(self) -> AuthLevel: ...


class LoginOutcome(Enum):
    SUCCESS = "success"
    ACCOUNT_INACTIVE = "account_inactive"
    WRONG_CREDENTIALS = "wrong_credentials"


class LogoutOutcome(Enum):
    SUCCESS = "success"
    NOT_LOGGED_IN = "not_logged_in"


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Outcome of a login attempt. ``session`` is set only on success."""

    outcome: LoginOutcome
    session: Session | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS


def login(account: Account | None, password: str, store: SessionStore) -> LoginResult:
    """Verify *password* and issue a session for *account*.

    A missing account and a wrong password give the same outcome so
    callers cannot leak which usernames exist. The password is checked
    before the active flag for the same reason.
    """
    if account is None or not verify_password(password, account.encoded_password):
        emit_security_event(
            "auth.login.failure",
            user_id=account.id if account is not None else None,
            details={"reason": LoginOutcome.WRONG_CREDENTIALS.value},
        )
        return LoginResult(LoginOutcome.WRONG_CREDENTIALS)

    if not account.is_active:
        logger.info("Login refused for inactive account %r", account.id)
        emit_security_event(
            "auth.login.failure",
            user_id=account.id,
            details={"reason": LoginOutcome.ACCOUNT_INACTIVE.value},
        )
        return LoginResult(LoginOutcome.ACCOUNT_INACTIVE)

    session = store.issue(account.id, account.level)
    emit_security_event("auth.login.success", user_id=account.id)
    return LoginResult(LoginOutcome.SUCCESS, session)


def logout(token: str | None, store: SessionStore) -> LogoutOutcome:
    """Revoke the session behind *token*."""
    if not token or not store.revoke(token):
        return LogoutOutcome.NOT_LOGGED_IN
    return LogoutOutcome.SUCCESS
