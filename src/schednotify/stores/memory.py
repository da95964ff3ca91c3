"""In-memory stores for tests and embedding.

NOT a persistence layer: records live in plain dictionaries for the
lifetime of the process.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from schednotify.core.errors import DestinationNotFoundError, SecretNotFoundError
from schednotify.domain.rules import Destination, NotificationRule


class InMemoryStore:
    """Dict-backed implementation of both ``RuleStore`` and ``SecretStore``."""

    def __init__(
        self,
        rules: Iterable[NotificationRule] = (),
        destinations: Iterable[Destination] = (),
        secrets: Mapping[tuple[str, str], Mapping[str, bytes | str]] | None = None,
    ):
        self._rules: dict[tuple[str, str], NotificationRule] = {}
        self._destinations: dict[tuple[str, str], Destination] = {}
        self._secrets: dict[tuple[str, str], dict[str, bytes]] = {}

        for rule in rules:
            self.add_rule(rule)
        for destination in destinations:
            self.add_destination(destination)
        for (namespace, name), data in (secrets or {}).items():
            self.set_secret(namespace, name, data)

    # -- Declarative records ------------------------------------------------

    def add_rule(self, rule: NotificationRule) -> None:
        self._rules[(rule.namespace, rule.name)] = rule

    def add_destination(self, destination: Destination) -> None:
        self._destinations[(destination.namespace, destination.name)] = destination

    def list_rules(self, namespace: str) -> list[NotificationRule]:
        return [rule for (ns, _), rule in sorted(self._rules.items()) if ns == namespace]

    def all_rules(self) -> list[NotificationRule]:
        return [rule for _, rule in sorted(self._rules.items())]

    def list_destinations(self, namespace: str | None = None) -> list[Destination]:
        return [
            dest
            for (ns, _), dest in sorted(self._destinations.items())
            if namespace is None or ns == namespace
        ]

    def get_destination(self, namespace: str, name: str) -> Destination:
        try:
            return self._destinations[(namespace, name)]
        except KeyError:
            raise DestinationNotFoundError(namespace, name) from None

    # -- Secrets ------------------------------------------------------------

    def set_secret(self, namespace: str, name: str, data: Mapping[str, bytes | str]) -> None:
        self._secrets[(namespace, name)] = {
            key: value.encode("utf-8") if isinstance(value, str) else bytes(value)
            for key, value in data.items()
        }

    def get_secret_value(self, namespace: str, name: str, key: str) -> bytes:
        secret = self._secrets.get((namespace, name))
        if secret is None:
            raise SecretNotFoundError(namespace, name)
        if key not in secret:
            raise SecretNotFoundError(namespace, name, key)
        return secret[key]

    def clear(self) -> None:
        self._rules.clear()
        self._destinations.clear()
        self._secrets.clear()


__all__ = ["InMemoryStore"]
