"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, max_content_length=1024 * 1024)
    """

    debug: bool = False

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Content
    default_content_type: str = "text/html; charset=utf-8"
    json_ensure_ascii: bool = False

    # Echo the request's cookies back as Set-Cookie on every response
    mirror_request_cookies: bool = True
