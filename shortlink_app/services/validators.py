"""Input validation for link allocation. Pure functions, no I/O."""

import re
from typing import Optional, Union

from pydantic import AnyUrl, TypeAdapter, ValidationError

from shortlink_app.exceptions import InvalidCodeError, InvalidUrlError, InvalidValidityError

NEVER = "never"

# Choices the original form offered; the core accepts any positive count.
VALIDITY_PRESETS = (30, 60, 1440, 10080, 43200, NEVER)

CUSTOM_CODE_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,10}$")

_url_adapter = TypeAdapter(AnyUrl)


def validate_original_url(url: str) -> str:
    """Check that ``url`` is an absolute URL with a scheme and host.

    Returns the input unchanged; the parsed form is only used for the check,
    so the stored URL is exactly what the user submitted.

    Raises:
        InvalidUrlError: If the URL is empty, relative, or has no host
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError("URL is required")
    if url != url.strip() or any(ch.isspace() for ch in url):
        raise InvalidUrlError(f"URL must not contain whitespace: {url!r}")
    try:
        parsed = _url_adapter.validate_python(url)
    except ValidationError as e:
        raise InvalidUrlError(f"Not a valid absolute URL: {url!r}") from e
    if not parsed.host:
        raise InvalidUrlError(f"URL must include a host: {url!r}")
    return url


def is_valid_code(code: str) -> bool:
    """True if ``code`` could be a stored short code (1-10 of A-Z a-z 0-9 -)."""
    return isinstance(code, str) and CUSTOM_CODE_PATTERN.match(code) is not None


def validate_custom_code(code: str) -> str:
    """Raises InvalidCodeError unless ``code`` matches the short code format."""
    if not is_valid_code(code):
        raise InvalidCodeError(
            f"Short code {code!r} must be 1-10 characters of letters, digits, or '-'"
        )
    return code


def parse_validity(validity_minutes: Union[int, str, None]) -> Optional[int]:
    """Normalize a validity choice to whole minutes, or None for never.

    Accepts a positive int, the string ``"never"``, or None (also never).

    Raises:
        InvalidValidityError: For zero, negative, non-integer, or unknown values
    """
    if validity_minutes is None or validity_minutes == NEVER:
        return None
    if isinstance(validity_minutes, bool) or not isinstance(validity_minutes, int):
        raise InvalidValidityError(
            f"Validity must be a whole number of minutes or '{NEVER}', got {validity_minutes!r}"
        )
    # expires_at must come strictly after created_at
    if validity_minutes < 1:
        raise InvalidValidityError(f"Validity must be at least one minute, got {validity_minutes}")
    return validity_minutes
