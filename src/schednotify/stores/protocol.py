"""Interfaces of the external stores the engine reads from.

The engine never writes to either store. Rules and destinations come
from the declarative store; webhook URLs and tokens come from the
secret store, always looked up in the namespace of the rule.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from schednotify.domain.rules import Destination, NotificationRule


@runtime_checkable
class RuleStore(Protocol):
    """Read access to declared rules and destinations."""

    def list_rules(self, namespace: str) -> list[NotificationRule]:
        """All rules declared in ``namespace``."""
        ...

    def get_destination(self, namespace: str, name: str) -> Destination:
        """Fetch one destination.

        Raises:
            DestinationNotFoundError: If no such destination exists
        """
        ...


@runtime_checkable
class SecretStore(Protocol):
    """Key-value lookup of secret material by (namespace, name, key)."""

    def get_secret_value(self, namespace: str, name: str, key: str) -> bytes:
        """Return the raw bytes stored under ``key``.

        Raises:
            SecretNotFoundError: If the secret or the key is absent
        """
        ...


__all__ = ["RuleStore", "SecretStore"]
