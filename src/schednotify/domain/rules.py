"""Pydantic models for notification rules and destinations.

Rules and destinations are declared as Kubernetes-style manifests and are
read-only from the engine's point of view. Both the generic kind names
and the Slack-specific ones are accepted.

Example YAML::

    apiVersion: notification.schednotify.io/v1alpha1
    kind: NotificationRule
    metadata:
      name: payments-failures
      namespace: payments
    spec:
      targetResource: CronJob
      labelSelector:
        matchLabels:
          team: payments
      destinationRef:
        name: payments-slack
      notifications:
        - status: Failed
          title: "{{ .OwnerName }} failed"
          message: "see logs"
    ---
    apiVersion: notification.schednotify.io/v1alpha1
    kind: Destination
    metadata:
      name: payments-slack
      namespace: payments
    spec:
      authType: Token
      tokenSecretRef:
        name: slack-bot
        key: token
      channel: "#payments-alerts"

Usage::

    rule = NotificationRule.from_manifest(yaml.safe_load(text))
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from schednotify.core.errors import ManifestError
from schednotify.domain.selectors import LabelSelector
from schednotify.domain.workload import OwnerKind


class AuthType(str, Enum):
    """How a destination authenticates. Exactly one mode is active."""

    WEBHOOK = "Webhook"
    TOKEN = "Token"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ObjectMeta(_Record):
    """The subset of object metadata the engine reads."""

    name: str = Field(..., min_length=1)
    namespace: str = Field(default="default", min_length=1)
    uid: str = ""
    labels: dict[str, str] = Field(default_factory=dict)


class SecretKeyRef(_Record):
    """Reference to one key of a secret in the record's own namespace."""

    name: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)


class DestinationSpec(_Record):
    auth_type: AuthType = Field(..., alias="authType")
    webhook_url_secret_ref: SecretKeyRef | None = Field(default=None, alias="webhookUrlSecretRef")
    token_secret_ref: SecretKeyRef | None = Field(default=None, alias="tokenSecretRef")
    channel: str = ""

    @property
    def secret_ref(self) -> SecretKeyRef | None:
        """The one reference consulted for the active auth mode."""
        if self.auth_type is AuthType.WEBHOOK:
            return self.webhook_url_secret_ref
        return self.token_secret_ref


class NotificationSpec(_Record):
    """One (status → title, message, color, channel) tuple of a rule."""

    status: str = Field(..., min_length=1)
    title: str = ""
    message: str
    color: str = ""
    channel: str = ""

    def applies_to(self, status: str) -> bool:
        """Case-insensitive status comparison."""
        return self.status.casefold() == status.casefold()


class DestinationRef(_Record):
    name: str = Field(..., min_length=1)


class NotificationRuleSpec(_Record):
    target_resource: str = Field(..., alias="targetResource")
    label_selector: LabelSelector = Field(default_factory=LabelSelector, alias="labelSelector")
    destination_ref: DestinationRef = Field(
        ...,
        validation_alias=AliasChoices("destinationRef", "slackConfigRef", "destination_ref"),
    )
    notifications: tuple[NotificationSpec, ...] = ()

    @field_validator("label_selector", mode="before")
    @classmethod
    def _null_selector(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def target_kind(self) -> OwnerKind | None:
        """The targeted owner kind, or ``None`` for an unsupported value."""
        try:
            return OwnerKind(self.target_resource)
        except ValueError:
            return None


class _Manifest(_Record):
    kinds: ClassVar[tuple[str, ...]] = ()

    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    @classmethod
    def from_manifest(cls, doc: Mapping[str, Any], *, namespace: str | None = None):
        """Validate a manifest document.

        Args:
            doc: Parsed manifest (``kind``, ``metadata``, ``spec``)
            namespace: Namespace to assume when metadata omits one

        Raises:
            ManifestError: If the kind is wrong or validation fails
        """
        kind = doc.get("kind")
        if kind not in cls.kinds:
            raise ManifestError(f"Expected kind in {cls.kinds}, got {kind!r}")
        data = dict(doc)
        if namespace and not (data.get("metadata") or {}).get("namespace"):
            data["metadata"] = {**(data.get("metadata") or {}), "namespace": namespace}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            name = (doc.get("metadata") or {}).get("name", "<unnamed>")
            raise ManifestError(f"Invalid {kind} {name!r}: {e.error_count()} validation error(s)", cause=e) from e


class Destination(_Manifest):
    """A named messaging endpoint: auth mode, secret reference, default channel."""

    kinds: ClassVar[tuple[str, ...]] = ("Destination", "SlackConfig")

    spec: DestinationSpec


class NotificationRule(_Manifest):
    """Which schedule objects to watch and what to send for which status."""

    kinds: ClassVar[tuple[str, ...]] = ("NotificationRule", "SlackNotificationRule")

    spec: NotificationRuleSpec


__all__ = [
    "AuthType",
    "ObjectMeta",
    "SecretKeyRef",
    "DestinationSpec",
    "NotificationSpec",
    "DestinationRef",
    "NotificationRuleSpec",
    "Destination",
    "NotificationRule",
]
