"""
Domain model: monitored workloads, declared rules and destinations.

- workload: MonitoredEvent tagged variant (Job/CronJob, Workflow/CronWorkflow)
- rules: pydantic models for NotificationRule and Destination manifests
- selectors: label selector validation and matching
"""

from schednotify.domain.rules import (
    AuthType,
    Destination,
    DestinationSpec,
    NotificationRule,
    NotificationRuleSpec,
    NotificationSpec,
    SecretKeyRef,
)
from schednotify.domain.selectors import LabelSelector, Selector, compile_selector
from schednotify.domain.workload import (
    Condition,
    JobStatus,
    MonitoredEvent,
    OwnerKind,
    OwnerObject,
    WorkflowStatus,
    WorkloadKind,
    controlling_owner_name,
)

__all__ = [
    "AuthType",
    "Destination",
    "DestinationSpec",
    "NotificationRule",
    "NotificationRuleSpec",
    "NotificationSpec",
    "SecretKeyRef",
    "LabelSelector",
    "Selector",
    "compile_selector",
    "Condition",
    "JobStatus",
    "MonitoredEvent",
    "OwnerKind",
    "OwnerObject",
    "WorkflowStatus",
    "WorkloadKind",
    "controlling_owner_name",
]
