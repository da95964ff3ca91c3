"""
Structured error types for the notification engine.

Every failure that can happen between "a workload changed" and "a message
was delivered" has a typed error here. Errors carry a category, a retry
hint, structured context (rule, status, destination, ...) and an optional
chained cause, so that a single failed dispatch can be logged with enough
detail for an operator to fix the rule without reading a traceback.

Manifesto:
    - **Typed taxonomy:** one class per failure mode of the pipeline
    - **Scoped failures:** errors after rule matching belong to exactly one
      (rule, tuple) attempt and never abort the pass
    - **Rich context:** errors carry the rule identity and status they
      were raised for
    - **Error chaining:** the original exception is preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       NotifierError                          │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │  RuleSelectorError       CredentialResolutionError           │
        │  (VALIDATION)            (AUTH)                              │
        │                              │                               │
        │                          SecretNotFoundError                 │
        │                          DestinationNotFoundError            │
        │                                                              │
        │  TemplateError           ChannelRequiredError                │
        │  (TEMPLATE)              (CONFIG)                            │
        │                                                              │
        │  DeliveryError           ManifestError      ConfigError      │
        │  (NETWORK)               (VALIDATION)       (CONFIG)         │
        │      │                                                       │
        │  DispatchCancelledError                                      │
        └─────────────────────────────────────────────────────────────┘

        ClassificationGap is recorded on the classification result as a
        value; the classifier never raises it.

Usage:
    from schednotify.core.errors import DeliveryError

    try:
        response = client.post(url, json=payload)
    except httpx.TransportError as e:
        raise DeliveryError("webhook unreachable", cause=e).with_context(url=url)

Tags:
    error-handling, exception-hierarchy, error-context, observability
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for log routing and operator triage."""

    # Infrastructure
    NETWORK = "NETWORK"           # Connection, timeout, remote rejected
    # Declarative input
    VALIDATION = "VALIDATION"     # Selector, manifest shape
    TEMPLATE = "TEMPLATE"         # Title/message templates
    DATA = "DATA"                 # Missing workload status data
    # Configuration
    CONFIG = "CONFIG"             # Channel missing, bad settings
    AUTH = "AUTH"                 # Secret / credential lookup
    # Execution
    CANCELLED = "CANCELLED"       # Caller cancelled or deadline expired
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set show up in ``to_dict()``, which keeps log
    lines short.

    Attributes:
        rule: Rule key (``namespace/name``)
        namespace: Namespace the event or rule lives in
        owner: Owner key (``Kind/name``)
        status: Classified status the rule was evaluated for
        tuple_index: Position of the tuple inside the rule
        destination: Destination record name
        channel: Resolved channel name
        url: Redacted URL that was being called
        http_status: HTTP status code if a response arrived
        metadata: Any additional key-value pairs
    """

    rule: str | None = None
    namespace: str | None = None
    owner: str | None = None
    status: str | None = None
    tuple_index: int | None = None
    destination: str | None = None
    channel: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["rule", "namespace", "owner", "status", "tuple_index",
                    "destination", "channel", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class NotifierError(Exception):
    """
    Base exception for all notification engine errors.

    Subclasses set ``default_category`` and ``default_retryable``. The
    engine never retries on its own; ``retryable`` only tells an operator
    (or the next redelivery of the event) whether trying again can help.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> NotifierError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TemplateError("bad title").with_context(rule="ops/notify-failures")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        ctx = self.context.to_dict()
        if ctx:
            result["context"] = ctx
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CLASSIFICATION
# =============================================================================


class ClassificationGap(NotifierError):
    """
    Workload status data was missing or unparseable.

    Never raised: the classifier records gaps on its result and falls
    back to empty/zero values.
    """

    default_category = ErrorCategory.DATA

    def __init__(self, field_name: str, message: str | None = None):
        super().__init__(message or f"Status field unavailable: {field_name}")
        self.field_name = field_name


# =============================================================================
# RULE MATCHING
# =============================================================================


class RuleSelectorError(NotifierError):
    """A rule's label selector is malformed; the rule is skipped."""

    default_category = ErrorCategory.VALIDATION


# =============================================================================
# CREDENTIALS
# =============================================================================


class CredentialResolutionError(NotifierError):
    """A destination could not be resolved into a credential."""

    default_category = ErrorCategory.AUTH


class SecretNotFoundError(CredentialResolutionError):
    """The referenced secret, or the key inside it, does not exist."""

    def __init__(self, namespace: str, name: str, key: str | None = None):
        self.namespace = namespace
        self.name = name
        self.key = key
        if key is None:
            msg = f"Secret not found: {namespace}/{name}"
        else:
            msg = f"Key {key!r} not found in secret {namespace}/{name}"
        super().__init__(msg)

    @property
    def missing(self) -> str:
        """Which part is missing: ``secret`` or ``key``."""
        return "secret" if self.key is None else "key"


class DestinationNotFoundError(CredentialResolutionError):
    """The destination record referenced by a rule does not exist."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(f"Destination not found: {namespace}/{name}")


# =============================================================================
# RENDERING
# =============================================================================


class TemplateError(NotifierError):
    """A title or message template failed to parse or render."""

    default_category = ErrorCategory.TEMPLATE


# =============================================================================
# DELIVERY
# =============================================================================


class ChannelRequiredError(NotifierError):
    """Token delivery was selected but no channel name was resolved."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str = "channel is required when using token authentication"):
        super().__init__(message)


class DeliveryError(NotifierError):
    """Transport failure or remote rejection of one delivery attempt."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DispatchCancelledError(DeliveryError):
    """The attempt was aborted by the caller's cancel signal or deadline."""

    default_category = ErrorCategory.CANCELLED
    default_retryable = False


# =============================================================================
# DECLARATIVE INPUT / CONFIGURATION
# =============================================================================


class ManifestError(NotifierError):
    """A declarative record or workload object has an unusable shape."""

    default_category = ErrorCategory.VALIDATION


class ConfigError(NotifierError):
    """Settings are missing or invalid."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "NotifierError",
    "ClassificationGap",
    "RuleSelectorError",
    "CredentialResolutionError",
    "SecretNotFoundError",
    "DestinationNotFoundError",
    "TemplateError",
    "ChannelRequiredError",
    "DeliveryError",
    "DispatchCancelledError",
    "ManifestError",
    "ConfigError",
]
