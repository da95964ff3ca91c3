"""
Notification orchestrator.

One :meth:`Notifier.notify` call handles one workload state-change
event: classify the status once, match rules once, then run every
activated (rule, tuple) pair through credential resolution, template
rendering and delivery.

Manifesto:
    A notification failure must never become a reconciliation failure.
    Every stage after matching is scoped to a single (rule, tuple)
    attempt: a missing secret, a broken template or a rejected request
    fails that attempt, is logged with the rule and status, and leaves
    sibling attempts alone. ``notify`` itself never raises; it returns a
    :class:`NotifyReport` describing what happened.

Architecture:
    ::

        MonitoredEvent
            │
            ├── classify()            once per pass
            ├── RuleStore.list_rules  owner's namespace
            ├── match_rules()         kind gate → namespace → selector → tuples
            │
            └── per Activation (thread pool, bounded by max_parallel)
                    ├── ledger.claim()             taken → skipped
                    ├── RuleStore.get_destination
                    ├── CredentialResolver.resolve
                    ├── TemplateRenderer.render (title, message)
                    ├── build_message()
                    ├── TokenChannel | WebhookChannel .send()
                    └── ledger.record() | release()  after success | failure

        cancel (threading.Event) and timeout (seconds) are checked at
        every stage boundary; HTTP calls get min(http_timeout, remaining).

Tags:
    orchestration, notification, dispatch, concurrency, cancellation
"""

from __future__ import annotations

import contextvars
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

from schednotify.core.errors import (
    DeliveryError,
    DispatchCancelledError,
    NotifierError,
    RuleSelectorError,
)
from schednotify.core.logging import LogContext, get_logger
from schednotify.core.settings import NotifierSettings
from schednotify.domain.workload import MonitoredEvent
from schednotify.engine.classifier import ClassifiedStatus, classify
from schednotify.engine.credentials import CredentialResolver
from schednotify.engine.ledger import DedupKey, InMemoryLedger, NotificationLedger
from schednotify.engine.matcher import Activation, match_rules
from schednotify.engine.templates import RenderContext, TemplateRenderer
from schednotify.framework.channels.base import ChannelType, DispatchChannel
from schednotify.framework.channels.message import DEFAULT_FALLBACK_TEXT, DispatchMessage, build_message
from schednotify.framework.channels.token import TokenChannel
from schednotify.framework.channels.webhook import WebhookChannel
from schednotify.stores.protocol import RuleStore, SecretStore

logger = get_logger(__name__)


class OutcomeState(str, Enum):
    """Final state of one dispatch attempt."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Already notified for this instance


@dataclass
class DispatchOutcome:
    """Result of one (rule, tuple) dispatch attempt."""

    rule: str
    index: int
    tuple_status: str
    status: str
    state: OutcomeState = OutcomeState.FAILED
    channel_type: ChannelType | None = None
    message: DispatchMessage | None = None
    error: NotifierError | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is OutcomeState.SENT

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/CLI output."""
        result: dict[str, Any] = {
            "rule": self.rule,
            "index": self.index,
            "tuple_status": self.tuple_status,
            "status": self.status,
            "state": self.state.value,
            "channel_type": self.channel_type.value if self.channel_type else None,
        }
        if self.message is not None:
            result["message"] = self.message.to_dict()
        if self.error is not None:
            result["error"] = self.error.to_dict()
        if self.reason:
            result["reason"] = self.reason
        return result


@dataclass
class NotifyReport:
    """Everything one notify pass did."""

    owner: str
    instance: str
    status: str = ""
    outcomes: list[DispatchOutcome] = field(default_factory=list)
    rules_evaluated: int = 0
    selector_errors: list[RuleSelectorError] = field(default_factory=list)
    error: NotifierError | None = None

    @property
    def sent(self) -> list[DispatchOutcome]:
        return [o for o in self.outcomes if o.state is OutcomeState.SENT]

    @property
    def failed(self) -> list[DispatchOutcome]:
        return [o for o in self.outcomes if o.state is OutcomeState.FAILED]

    @property
    def skipped(self) -> list[DispatchOutcome]:
        return [o for o in self.outcomes if o.state is OutcomeState.SKIPPED]

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "instance": self.instance,
            "status": self.status,
            "rules_evaluated": self.rules_evaluated,
            "sent": len(self.sent),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "selector_errors": [e.to_dict() for e in self.selector_errors],
            "error": self.error.to_dict() if self.error else None,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class _Deadline:
    """Caller cancel signal plus an optional overall time budget."""

    def __init__(self, cancel: threading.Event | None, timeout: float | None):
        self._cancel = cancel
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return self._expires_at - time.monotonic()

    def check(self, stage: str) -> None:
        """
        Raises:
            DispatchCancelledError: If cancelled or out of time
        """
        if self._cancel is not None and self._cancel.is_set():
            raise DispatchCancelledError(f"Dispatch cancelled before {stage}")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DispatchCancelledError(f"Deadline expired before {stage}")

    def request_timeout(self, default: float | None) -> float | None:
        remaining = self.remaining()
        if remaining is None:
            return default
        remaining = max(remaining, 0.001)
        return remaining if default is None else min(default, remaining)


class Notifier:
    """
    Runs notify passes against injected stores and channels.

    Example:
        notifier = Notifier.from_settings(get_settings(), store, store)
        report = notifier.notify(event, timeout=30)
        for outcome in report.failed:
            print(outcome.rule, outcome.error)
    """

    def __init__(
        self,
        rule_store: RuleStore,
        secret_store: SecretStore,
        *,
        token_channel: DispatchChannel,
        webhook_channel: DispatchChannel,
        ledger: NotificationLedger | None = None,
        renderer: TemplateRenderer | None = None,
        max_parallel: int = 4,
        fallback_text: str = DEFAULT_FALLBACK_TEXT,
        http_timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        self._rules = rule_store
        self._resolver = CredentialResolver(secret_store)
        self._token_channel = token_channel
        self._webhook_channel = webhook_channel
        self._ledger = ledger
        self._renderer = renderer or TemplateRenderer()
        self._max_parallel = max_parallel
        self._fallback_text = fallback_text
        self._http_timeout = http_timeout
        self._clock = clock
        self._owned_client: httpx.Client | None = None

    @classmethod
    def from_settings(
        cls,
        settings: NotifierSettings,
        rule_store: RuleStore,
        secret_store: SecretStore,
        *,
        http_client: httpx.Client | None = None,
    ) -> Notifier:
        """Build a notifier with HTTP channels sharing one client.

        A client created here is closed by :meth:`close`; a passed-in
        client stays owned by the caller.
        """
        client = http_client or httpx.Client(
            timeout=settings.http_timeout_seconds,
            headers={"User-Agent": settings.user_agent},
        )
        notifier = cls(
            rule_store,
            secret_store,
            token_channel=TokenChannel(client, settings.slack_api_url),
            webhook_channel=WebhookChannel(client),
            ledger=InMemoryLedger() if settings.dedup_enabled else None,
            max_parallel=settings.max_parallel_dispatch,
            fallback_text=settings.fallback_text,
            http_timeout=settings.http_timeout_seconds,
        )
        if http_client is None:
            notifier._owned_client = client
        return notifier

    def close(self) -> None:
        if self._owned_client is not None:
            self._owned_client.close()
            self._owned_client = None

    def __enter__(self) -> Notifier:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def notify(
        self,
        event: MonitoredEvent,
        *,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> NotifyReport:
        """Run one notify pass for ``event``. Never raises.

        Args:
            event: Workload instance plus owning schedule object
            cancel: Set to abort attempts that have not finished
            timeout: Overall budget for the pass, in seconds
        """
        deadline = _Deadline(cancel, timeout)
        owner = event.owner
        report = NotifyReport(owner=f"{owner.namespace}/{owner.key}", instance=event.identity)

        with LogContext(namespace=owner.namespace, owner=owner.key, instance=event.name):
            classified = classify(event, now=self._clock)
            report.status = classified.status
            for gap in classified.gaps:
                logger.debug("notify.classification_gap", field=gap.field_name)

            try:
                rules = self._rules.list_rules(owner.namespace)
            except Exception as e:
                error = e if isinstance(e, NotifierError) else NotifierError(
                    f"Listing rules failed: {e}", cause=e
                )
                error.with_context(namespace=owner.namespace, owner=owner.key)
                report.error = error
                logger.error("notify.list_rules_failed", **error.to_dict())
                return report

            matched = match_rules(rules, owner, classified.status, workload_kind=event.kind)
            report.rules_evaluated = matched.rules_evaluated
            report.selector_errors = matched.selector_errors

            if not matched.activations:
                logger.debug("notify.nothing_activated", status=classified.status)
                return report

            ctx = RenderContext.from_event(event, classified)
            report.outcomes = self._dispatch_all(event, classified, ctx, matched.activations, deadline)

            logger.info(
                "notify.completed",
                status=classified.status,
                sent=len(report.sent),
                failed=len(report.failed),
                skipped=len(report.skipped),
            )
        return report

    def _dispatch_all(
        self,
        event: MonitoredEvent,
        classified: ClassifiedStatus,
        ctx: RenderContext,
        activations: list[Activation],
        deadline: _Deadline,
    ) -> list[DispatchOutcome]:
        if self._max_parallel == 1 or len(activations) == 1:
            return [self._attempt(event, classified, ctx, a, deadline) for a in activations]

        outcomes: list[DispatchOutcome | None] = [None] * len(activations)
        workers = min(self._max_parallel, len(activations))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="schednotify-dispatch") as executor:
            futures: dict[Future, int] = {}
            for position, activation in enumerate(activations):
                # Each task runs in its own copy so bound log context carries over
                task_ctx = contextvars.copy_context()
                future = executor.submit(
                    task_ctx.run, self._attempt, event, classified, ctx, activation, deadline
                )
                futures[future] = position

            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

        return [o for o in outcomes if o is not None]

    def _attempt(
        self,
        event: MonitoredEvent,
        classified: ClassifiedStatus,
        ctx: RenderContext,
        activation: Activation,
        deadline: _Deadline,
    ) -> DispatchOutcome:
        """Run one (rule, tuple) attempt. Every failure becomes an outcome."""
        rule = activation.rule
        spec = activation.notification
        destination_name = rule.spec.destination_ref.name
        outcome = DispatchOutcome(
            rule=rule.key,
            index=activation.index,
            tuple_status=spec.status,
            status=classified.status,
        )
        key = DedupKey.build(event.owner, rule, activation.index, classified.status)
        claimed = False

        try:
            deadline.check("dedup check")
            if self._ledger is not None:
                claimed = self._ledger.claim(key, event.identity)
            if self._ledger is not None and not claimed:
                outcome.state = OutcomeState.SKIPPED
                outcome.reason = "already_notified"
                logger.debug("notify.already_notified", rule=rule.key, index=activation.index)
                return outcome

            deadline.check("credential resolution")
            destination = self._rules.get_destination(rule.namespace, destination_name)
            credential = self._resolver.resolve(destination, rule.namespace, channel_override=spec.channel)

            deadline.check("rendering")
            title, text = self._renderer.render_pair(spec.title, spec.message, ctx)
            message = build_message(
                title,
                text,
                ctx,
                color=spec.color,
                channel=credential.channel,
                fallback_text=self._fallback_text,
            )
            outcome.message = message

            if credential.uses_token:
                channel, secret = self._token_channel, credential.token
            else:
                channel, secret = self._webhook_channel, credential.webhook_url
            outcome.channel_type = channel.channel_type

            deadline.check("delivery")
            result = channel.send(message, secret, timeout=deadline.request_timeout(self._http_timeout))
            if not result.success:
                raise result.error or DeliveryError(result.message or "Delivery failed")

        except NotifierError as e:
            if claimed:
                self._ledger.release(key, event.identity)
            e.with_context(
                rule=rule.key,
                status=classified.status,
                tuple_index=activation.index,
                destination=destination_name,
            )
            outcome.error = e
            logger.warning(
                "notify.dispatch_failed",
                rule=rule.key,
                status=classified.status,
                index=activation.index,
                error_type=type(e).__name__,
                error_category=e.category.value,
                retryable=e.retryable,
                error=e.message,
            )
            return outcome
        except Exception as e:
            if claimed:
                self._ledger.release(key, event.identity)
            error = NotifierError(f"Unexpected dispatch failure: {e}", cause=e).with_context(
                rule=rule.key, status=classified.status, tuple_index=activation.index
            )
            outcome.error = error
            logger.exception(
                "notify.dispatch_crashed",
                rule=rule.key,
                status=classified.status,
                index=activation.index,
            )
            return outcome

        if claimed:
            self._ledger.record(key, event.identity)
        outcome.state = OutcomeState.SENT
        logger.info(
            "notify.dispatched",
            rule=rule.key,
            status=classified.status,
            index=activation.index,
            channel_type=outcome.channel_type.value,
            channel=outcome.message.channel or None,
        )
        return outcome


__all__ = ["OutcomeState", "DispatchOutcome", "NotifyReport", "Notifier"]
