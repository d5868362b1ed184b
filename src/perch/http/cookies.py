"""Cookie parsing and ``Set-Cookie`` serialization.

The read side (``parse_cookies``) builds the request's cookie snapshot.
The write side (``SetCookie``) is what the sender emits when it mirrors
that snapshot back onto the wire.
"""

from dataclasses import dataclass
from urllib.parse import quote, unquote

from perch.http.headers import check_header_text


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers. Values are
    percent-decoded; pairs without ``=`` are ignored.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            key = key.strip()
            if key:
                cookies[key] = unquote(value.strip().strip('"'))
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A single ``Set-Cookie`` directive."""

    name: str
    value: str
    max_age: int | None = None
    path: str | None = None
    domain: str | None = None
    secure: bool = False
    httponly: bool = False
    samesite: str | None = None

    def __post_init__(self) -> None:
        check_header_text(self.to_header_value())

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)
