"""URL validation — rejects malformed input before any network call."""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit

from aetherscribe.errors import InvalidURL

_ALLOWED_SCHEMES = ("http", "https")


def validate_url(value: str) -> SplitResult:
    """Parse *value* as an absolute ``http(s)`` URL.

    Pure and synchronous; performs no I/O.

    Raises:
        InvalidURL: If the scheme is missing/unsupported, the host is empty,
            or the string cannot be parsed at all (e.g. a bad port).
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidURL("Invalid URL provided")

    candidate = value.strip()
    if any(ch.isspace() for ch in candidate):
        raise InvalidURL(f"Invalid URL provided: {value!r}")

    try:
        parts = urlsplit(candidate)
        # Accessing .port validates the port component.
        parts.port
    except ValueError as exc:
        raise InvalidURL(f"Invalid URL provided: {value!r}") from exc

    if parts.scheme.lower() not in _ALLOWED_SCHEMES:
        raise InvalidURL(f"Invalid URL provided: {value!r}")
    if not parts.hostname:
        raise InvalidURL(f"Invalid URL provided: {value!r}")

    return parts
