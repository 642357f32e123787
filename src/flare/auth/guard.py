"""Auth guard: decides whether a credential may reach a route or view.

A pure function, shared by the server dispatcher and the client flow
engine so both sides agree on every decision.
"""

from datetime import UTC, datetime
from enum import Enum

from flare.auth.levels import AuthLevel
from flare.auth.session import Session


class AuthOutcome(Enum):
    """Result of a guard check."""

    ALLOWED = "allowed"
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_LEVEL = "insufficient_level"


def check(
    required: AuthLevel,
    credential: Session | None,
    *,
    now: datetime | None = None,
) -> AuthOutcome:
    """Check *credential* against the *required* level.

    An expired credential counts as no credential at all. ``now``
    defaults to the current UTC time.
    """
    if required is AuthLevel.ANONYMOUS:
        return AuthOutcome.ALLOWED

    if credential is None:
        return AuthOutcome.UNAUTHENTICATED

    if credential.is_expired(now if now is not None else datetime.now(UTC)):
        return AuthOutcome.UNAUTHENTICATED

    if credential.level >= required:
        return AuthOutcome.ALLOWED
    return AuthOutcome.INSUFFICIENT_LEVEL
