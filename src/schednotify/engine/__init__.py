"""
Notification engine.

- classifier: raw workload status → classified status, duration, failure details
- matcher: rules × owner × status → activated (rule, tuple) pairs
- credentials: destination → resolved webhook URL or token plus channel
- templates: sandboxed title/message rendering against a RenderContext
- ledger: already-notified markers for at-least-once event delivery
- notifier: the orchestrator tying the stages together
"""

from schednotify.engine.classifier import ClassifiedStatus, Status, classify, format_duration
from schednotify.engine.credentials import CredentialResolver, ResolvedCredential
from schednotify.engine.ledger import DedupKey, InMemoryLedger, NotificationLedger
from schednotify.engine.matcher import Activation, MatchResult, match_rules
from schednotify.engine.notifier import DispatchOutcome, Notifier, NotifyReport, OutcomeState
from schednotify.engine.templates import RenderContext, TemplateRenderer

__all__ = [
    # Classification
    "Status",
    "ClassifiedStatus",
    "classify",
    "format_duration",
    # Matching
    "Activation",
    "MatchResult",
    "match_rules",
    # Credentials
    "CredentialResolver",
    "ResolvedCredential",
    # Rendering
    "RenderContext",
    "TemplateRenderer",
    # Dedup
    "DedupKey",
    "NotificationLedger",
    "InMemoryLedger",
    # Orchestration
    "Notifier",
    "NotifyReport",
    "DispatchOutcome",
    "OutcomeState",
]
