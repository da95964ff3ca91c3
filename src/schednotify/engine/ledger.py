"""
Already-notified ledger.

The watcher delivers events at least once, and a running workload is
reported many times while it runs. The ledger remembers which workload
instance was last notified for each (owner, rule, tuple, status) so a
redelivered event does not produce a second message.

Manifesto:
    One message per instance per tuple per status. A new run of the same
    schedule is a new instance and notifies again; the same run seen a
    second time does not. The marker is only written after a delivery
    succeeded, so a failed attempt is retried by the next redelivery.
    Concurrent passes for the same instance race on ``claim()``: the
    winner sends, the others skip, and a failed send releases the claim.

Architecture:
    ::

        DedupKey(owner kind, owner namespace, owner name,
                 rule namespace, rule name, tuple index, status)
              │
              ▼
        ┌────────────────────┐   claim(key, identity)
        │  NotificationLedger │ ◄─ before dispatch (False → skip)
        │  key → identity     │
        └────────────────────┘   record(key, identity)
                                 ◄─ after a successful delivery
                                 release(key, identity)
                                 ◄─ after a failed attempt

Tags:
    deduplication, idempotency, at-least-once, ledger
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from schednotify.domain.rules import NotificationRule
from schednotify.domain.workload import OwnerObject


@dataclass(frozen=True)
class DedupKey:
    """Identity of one notification slot. ``status`` is lower-cased."""

    owner_kind: str
    owner_namespace: str
    owner_name: str
    rule_namespace: str
    rule_name: str
    tuple_index: int
    status: str

    @classmethod
    def build(cls, owner: OwnerObject, rule: NotificationRule, index: int, status: str) -> DedupKey:
        return cls(
            owner_kind=owner.kind.value,
            owner_namespace=owner.namespace,
            owner_name=owner.name,
            rule_namespace=rule.namespace,
            rule_name=rule.name,
            tuple_index=index,
            status=status.casefold(),
        )

    def __str__(self) -> str:
        return (
            f"{self.owner_kind}/{self.owner_namespace}/{self.owner_name}"
            f"|{self.rule_namespace}/{self.rule_name}#{self.tuple_index}|{self.status}"
        )


@runtime_checkable
class NotificationLedger(Protocol):
    """Storage for last-notified markers."""

    def already_notified(self, key: DedupKey, identity: str) -> bool:
        """True if ``identity`` is the instance last notified for ``key``."""
        ...

    def claim(self, key: DedupKey, identity: str) -> bool:
        """Atomically reserve ``key`` for ``identity``.

        False if ``identity`` was already notified or another attempt holds
        the claim.
        """
        ...

    def record(self, key: DedupKey, identity: str) -> None:
        """Mark ``identity`` as notified for ``key`` and drop its claim."""
        ...

    def release(self, key: DedupKey, identity: str) -> None:
        """Drop a claim without recording a notification."""
        ...


class InMemoryLedger:
    """Process-local ledger. Thread-safe; lost on restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[DedupKey, str] = {}
        self._claims: dict[DedupKey, str] = {}

    def already_notified(self, key: DedupKey, identity: str) -> bool:
        with self._lock:
            return self._entries.get(key) == identity

    def claim(self, key: DedupKey, identity: str) -> bool:
        with self._lock:
            if self._entries.get(key) == identity or self._claims.get(key) == identity:
                return False
            self._claims[key] = identity
            return True

    def record(self, key: DedupKey, identity: str) -> None:
        with self._lock:
            self._entries[key] = identity
            if self._claims.get(key) == identity:
                del self._claims[key]

    def release(self, key: DedupKey, identity: str) -> None:
        with self._lock:
            if self._claims.get(key) == identity:
                del self._claims[key]

    def forget(self, key: DedupKey) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._claims.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._claims.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DedupKey", "NotificationLedger", "InMemoryLedger"]
