"""Signed session tokens.

When the app has a ``secret_key``, tokens leave the server signed with
``itsdangerous`` so a tampered header or cookie is rejected before the
session store is consulted.
"""

from itsdangerous import BadSignature, URLSafeSerializer

from flare.errors import ConfigurationError

_SALT = "flare.session-token"


class TokenSigner:
    """Sign and verify opaque session tokens.

    Usage::

        signer = TokenSigner("s3cr3t")
        value = signer.sign(session.token)
        signer.unsign(value)   # -> session.token, or None if tampered
    """

    __slots__ = ("_serializer",)

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            msg = "TokenSigner requires a non-empty secret_key."
            raise ConfigurationError(msg)
        self._serializer = URLSafeSerializer(secret_key, salt=_SALT)

    def sign(self, token: str) -> str:
        return self._serializer.dumps(token)

    def unsign(self, value: str) -> str | None:
        """Return the original token, or ``None`` if the signature is bad."""
        try:
            token = self._serializer.loads(value)
        except BadSignature:
            return None
        if not isinstance(token, str):
            return None
        return token
