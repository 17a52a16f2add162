"""Host name validation before anything is handed to the SSH client."""

from typing import Final


class InvalidHostError(ValueError):
    """Host line cannot be used as an SSH destination."""

    pass


# Characters that could enable injection or split the ssh argument
SUSPICIOUS_CHARS: Final[list[str]] = [
    "/", "\\", ";", "&", "|", "$", "`", "@", "'", '"', "\n", "\r", "\t", " ", "\x00",
]


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        InvalidHostError: If host name is invalid
    """
    if not host:
        raise InvalidHostError("Host cannot be empty")

    if len(host) > 253:
        raise InvalidHostError(f"Host name too long: {len(host)} chars")

    # A leading dash would be read by ssh as an option
    if host.startswith("-"):
        raise InvalidHostError(f"Host cannot start with '-': {host!r}")

    for char in SUSPICIOUS_CHARS:
        if char in host:
            raise InvalidHostError(f"Host contains invalid characters: {host!r}")

    return host
