"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, secret_key="s3cr3t")
    """

    # Server
    debug: bool = False

    # Security: a non-empty key turns on signed session tokens
    secret_key: str = ""

    # Sessions
    session_cookie: str = "SESSION_ID"
    token_header: str = "X-Flare-Token"
    session_ttl: timedelta = timedelta(days=7)

    # Logging
    log_level: str = "info"
