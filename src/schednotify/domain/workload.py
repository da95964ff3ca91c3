"""Monitored workloads: one execution of a scheduled job plus its schedule.

The watcher hands the engine a pair of API objects, a workload instance
(a ``Job`` or an Argo ``Workflow``) and the schedule object that created
it (a ``CronJob`` or ``CronWorkflow``). This module turns that pair into a
:class:`MonitoredEvent`, a tagged variant over the closed set of
monitored kinds. The raw status is kept in a kind-specific shape
(:class:`JobStatus` or :class:`WorkflowStatus`) so the classifier can
handle each variant explicitly instead of inspecting arbitrary objects.

Example:
    >>> event = MonitoredEvent.from_objects(job_dict, cronjob_dict)
    >>> event.kind
    <WorkloadKind.JOB: 'Job'>
    >>> event.owner.kind
    <OwnerKind.CRON_JOB: 'CronJob'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from schednotify.core.errors import ManifestError


class WorkloadKind(str, Enum):
    """Kinds of workload instance the engine is dispatched for."""

    JOB = "Job"
    WORKFLOW = "Workflow"


class OwnerKind(str, Enum):
    """Kinds of schedule object rules can target."""

    CRON_JOB = "CronJob"
    CRON_WORKFLOW = "CronWorkflow"


# Each workload kind is created by exactly one schedule kind.
OWNER_KIND_FOR: dict[WorkloadKind, OwnerKind] = {
    WorkloadKind.JOB: OwnerKind.CRON_JOB,
    WorkloadKind.WORKFLOW: OwnerKind.CRON_WORKFLOW,
}


@dataclass(frozen=True)
class Condition:
    """One entry of a status condition list."""

    type: str
    status: str = ""
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None

    @property
    def is_true(self) -> bool:
        return self.status == "True"


@dataclass(frozen=True)
class JobStatus:
    """Status of a ``batch/v1`` Job: execution counters plus conditions."""

    active: int = 0
    succeeded: int = 0
    failed: int = 0
    start_time: datetime | None = None
    completion_time: datetime | None = None
    conditions: tuple[Condition, ...] = ()


@dataclass(frozen=True)
class WorkflowStatus:
    """Status of an Argo Workflow: a phase string plus timestamps."""

    phase: str = ""
    started_at: datetime | None = None
    finished_at: datetime | None = None
    message: str = ""
    conditions: tuple[Condition, ...] = ()


WorkloadStatus = JobStatus | WorkflowStatus


@dataclass(frozen=True)
class OwnerObject:
    """The schedule object a workload instance was created from.

    Rule matching always runs against this object, never the instance.
    """

    kind: OwnerKind
    namespace: str
    name: str
    labels: Mapping[str, str] = field(default_factory=dict)
    uid: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def key(self) -> str:
        return f"{self.kind.value}/{self.name}"


@dataclass(frozen=True)
class MonitoredEvent:
    """A workload instance together with its owning schedule object.

    Built fresh for every reconciliation pass and never mutated.
    """

    kind: WorkloadKind
    namespace: str
    name: str
    owner: OwnerObject
    status: WorkloadStatus
    uid: str = ""

    def __post_init__(self) -> None:
        expected = OWNER_KIND_FOR[self.kind]
        if self.owner.kind is not expected:
            raise ManifestError(
                f"{self.kind.value} must be owned by a {expected.value}, got {self.owner.kind.value}"
            )
        status_type = JobStatus if self.kind is WorkloadKind.JOB else WorkflowStatus
        if not isinstance(self.status, status_type):
            raise ManifestError(f"{self.kind.value} requires a {status_type.__name__}")

    @property
    def identity(self) -> str:
        """Stable identity of this instance: its uid, else namespace/name."""
        return self.uid or f"{self.namespace}/{self.name}"

    @classmethod
    def from_objects(cls, instance: Mapping[str, Any], owner: Mapping[str, Any]) -> MonitoredEvent:
        """Build an event from raw API objects (parsed JSON or YAML).

        Raises:
            ManifestError: If the kinds are unsupported or do not pair up
        """
        instance_kind = _parse_enum(WorkloadKind, instance.get("kind"), "instance kind")
        owner_kind = _parse_enum(OwnerKind, owner.get("kind"), "owner kind")

        meta = instance.get("metadata") or {}
        owner_meta = owner.get("metadata") or {}
        if not meta.get("name") or not owner_meta.get("name"):
            raise ManifestError("instance and owner must both have metadata.name")

        namespace = meta.get("namespace") or "default"
        owner_obj = OwnerObject(
            kind=owner_kind,
            namespace=owner_meta.get("namespace") or namespace,
            name=owner_meta["name"],
            labels={str(k): str(v) for k, v in (owner_meta.get("labels") or {}).items()},
            uid=owner_meta.get("uid", ""),
        )

        raw_status = instance.get("status") or {}
        status: WorkloadStatus
        if instance_kind is WorkloadKind.JOB:
            status = _job_status(raw_status)
        else:
            status = _workflow_status(raw_status)

        return cls(
            kind=instance_kind,
            namespace=namespace,
            name=meta["name"],
            owner=owner_obj,
            status=status,
            uid=meta.get("uid", ""),
        )


def controlling_owner_name(instance: Mapping[str, Any], owner_kind: OwnerKind | str) -> str | None:
    """Return the name of the first owner reference of ``owner_kind``.

    Instances without such a reference are not scheduled workloads and
    are ignored by callers.
    """
    kind = owner_kind.value if isinstance(owner_kind, OwnerKind) else owner_kind
    for ref in (instance.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("kind") == kind and ref.get("name"):
            return ref["name"]
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Absent or unparseable values yield ``None``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _parse_enum(enum_cls: type[Enum], value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ManifestError(f"Unsupported {what}: {value!r} (expected one of: {allowed})") from None


def _conditions(raw: Any) -> tuple[Condition, ...]:
    result = []
    for item in raw or []:
        if not isinstance(item, Mapping) or not item.get("type"):
            continue
        result.append(
            Condition(
                type=str(item["type"]),
                status=str(item.get("status", "")),
                reason=str(item.get("reason") or ""),
                message=str(item.get("message") or ""),
                last_transition_time=parse_timestamp(item.get("lastTransitionTime")),
            )
        )
    return tuple(result)


def _count(raw: Mapping[str, Any], key: str) -> int:
    try:
        return max(int(raw.get(key) or 0), 0)
    except (TypeError, ValueError):
        return 0


def _job_status(raw: Mapping[str, Any]) -> JobStatus:
    return JobStatus(
        active=_count(raw, "active"),
        succeeded=_count(raw, "succeeded"),
        failed=_count(raw, "failed"),
        start_time=parse_timestamp(raw.get("startTime")),
        completion_time=parse_timestamp(raw.get("completionTime")),
        conditions=_conditions(raw.get("conditions")),
    )


def _workflow_status(raw: Mapping[str, Any]) -> WorkflowStatus:
    return WorkflowStatus(
        phase=str(raw.get("phase") or ""),
        started_at=parse_timestamp(raw.get("startedAt")),
        finished_at=parse_timestamp(raw.get("finishedAt")),
        message=str(raw.get("message") or ""),
        conditions=_conditions(raw.get("conditions")),
    )


__all__ = [
    "WorkloadKind",
    "OwnerKind",
    "OWNER_KIND_FOR",
    "Condition",
    "JobStatus",
    "WorkflowStatus",
    "WorkloadStatus",
    "OwnerObject",
    "MonitoredEvent",
    "controlling_owner_name",
    "parse_timestamp",
]
