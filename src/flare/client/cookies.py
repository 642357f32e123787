"""Browser-side cookies.

``Cookie`` builds the string a page assigns to ``document.cookie``;
``DocumentCookies`` models that property in process so the client code
can run (and be tested) outside a browser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime, parsedate_to_datetime

from flare.auth.clock import Clock, SystemClock
from flare.http.cookies import parse_cookies

DEFAULT_MAX_AGE = 3600


@dataclass(frozen=True, slots=True)
class Lifetime:
    """How long a cookie lives: seconds from creation, or a fixed UTC instant.

    Usage::

        Lifetime.max_age(7 * 24 * 3600)
        Lifetime.expires(datetime(2030, 1, 1, tzinfo=UTC))
    """

    seconds: int | None = DEFAULT_MAX_AGE
    until: datetime | None = None

    @classmethod
    def max_age(cls, seconds: int) -> Lifetime:
        return cls(seconds=seconds)

    @classmethod
    def expires(cls, when: datetime) -> Lifetime:
        return cls(seconds=None, until=when)

    def to_attribute(self) -> str:
        if self.until is not None:
            return f"expires={format_datetime(self.until.astimezone(UTC))}"
        return f"max-age={self.seconds if self.seconds is not None else DEFAULT_MAX_AGE}"


@dataclass(frozen=True, slots=True)
class Cookie:
    """A cookie as written to ``document.cookie``."""

    key: str
    value: str
    path: str = "/"
    domain: str | None = None
    lifetime: Lifetime = field(default_factory=Lifetime)
    secure: bool = False

    def to_string(self) -> str:
        """``k=v; max-age=N; domain=d; path=/; secure``."""
        text = f"{self.key}={self.value}; {self.lifetime.to_attribute()}"
        if self.domain:
            text += f"; domain={self.domain}"
        if self.path:
            text += f"; path={self.path}"
        if self.secure:
            text += "; secure"
        return text


def parse_cookie(all_cookies: str, key: str) -> str | None:
    """Find *key* in a ``document.cookie`` string (``a=1; b=2``)."""
    return parse_cookies(all_cookies).get(key)


class DocumentCookies:
    """In-memory ``document.cookie``.

    Reading ``cookie`` joins the live cookies as ``k=v; k2=v2``. Writing
    one cookie string adds or replaces that cookie; a ``max-age`` of
    zero or an ``expires`` in the past removes it. Cookies drop out on
    their own once the clock passes their expiry.
    """

    __slots__ = ("_clock", "_jar")

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._jar: dict[str, tuple[str, datetime | None]] = {}

    @property
    def cookie(self) -> str:
        now = self._clock.now()
        live = [
            f"{key}={value}"
            for key, (value, expires_at) in self._jar.items()
            if expires_at is None or now < expires_at
        ]
        return "; ".join(live)

    @cookie.setter
    def cookie(self, text: str) -> None:
        first, *attrs = (part.strip() for part in text.split(";"))
        key, sep, value = first.partition("=")
        key = key.strip()
        if not sep or not key:
            return

        now = self._clock.now()
        expires_at: datetime | None = None
        for attr in attrs:
            name, _, attr_value = attr.partition("=")
            match name.strip().lower():
                case "max-age":
                    expires_at = now + timedelta(seconds=int(attr_value))
                case "expires" if expires_at is None:
                    expires_at = parsedate_to_datetime(attr_value)

        if expires_at is not None and expires_at <= now:
            self._jar.pop(key, None)
            return
        self._jar[key] = (value.strip(), expires_at)

    def write(self, cookie: Cookie) -> None:
        self.cookie = cookie.to_string()

    def get(self, key: str) -> str | None:
        return parse_cookie(self.cookie, key)
