"""Secret value handling.

Credentials read from the secret store (webhook URLs, API tokens) travel
through the pipeline wrapped in :class:`SecretValue` so they cannot end up
in a log line or an exception message by accident.

Example:
    >>> token = SecretValue("xoxb-123")
    >>> str(token)
    '[REDACTED]'
    >>> token.get_secret()
    'xoxb-123'
"""

from __future__ import annotations

from urllib.parse import urlsplit


class SecretValue:
    """A webhook URL or API token read from the secret store.

    ``str()`` and ``repr()`` print ``[REDACTED]``; only ``get_secret()``
    hands out the value, at the point where a request is built.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value = value

    @classmethod
    def from_bytes(cls, raw: bytes) -> SecretValue:
        """Decode a secret-store payload, trimming the trailing newline files usually carry."""
        return cls(raw.decode("utf-8").strip())

    def get_secret(self) -> str:
        return self._value

    def __str__(self) -> str:
        return "[REDACTED]"

    def __repr__(self) -> str:
        return "SecretValue('[REDACTED]')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __len__(self) -> int:
        return len(self._value)


def redact_url(url: str) -> str:
    """Keep scheme and host of a URL, hide path and query.

    Webhook URLs embed their credential in the path, so only the host is
    safe to log.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "[REDACTED]"
    if not parts.scheme or not parts.hostname:
        return "[REDACTED]"
    return f"{parts.scheme}://{parts.hostname}/[REDACTED]"


__all__ = ["SecretValue", "redact_url"]
