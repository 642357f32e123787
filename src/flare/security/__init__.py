"""Security helpers: audit events and password hashing."""

from flare.security.audit import SecurityEvent, emit_security_event, set_security_event_sink
from flare.security.passwords import hash_password, verify_password

__all__ = [
    "SecurityEvent",
    "emit_security_event",
    "hash_password",
    "set_security_event_sink",
    "verify_password",
]
