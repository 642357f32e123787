"""Access tiers shared by server routes and client views."""

from __future__ import annotations

from enum import IntEnum


class AuthLevel(IntEnum):
    """Ordered access tier. A session must meet or exceed a route's level.

    ``ANONYMOUS < AUTHENTICATED < ELEVATED``, so plain comparisons work::

        session.level >= AuthLevel.AUTHENTICATED
    """

    ANONYMOUS = 0
    AUTHENTICATED = 1
    ELEVATED = 2

    @classmethod
    def parse(cls, value: str) -> AuthLevel:
        """Look up a level by name, case-insensitively.

        Raises ``ValueError`` for unknown names.
        """
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(level.name.lower() for level in cls)
            msg = f"Unknown auth level {value!r}. Expected one of: {names}"
            raise ValueError(msg) from None
