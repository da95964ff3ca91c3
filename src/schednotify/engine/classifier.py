"""
Status classification for monitored workloads.

Maps a raw workload status to the small status vocabulary rules are
written against, and extracts timing and failure details for messages.

Manifesto:
    Classification must never be the reason a notification is lost.
    A half-populated status (a Job that has not started yet, a Workflow
    without timestamps) still classifies; missing pieces become empty
    fields plus a recorded :class:`ClassificationGap`, never an error.

Architecture:
    ::

        MonitoredEvent.status
            │
            ├── JobStatus       succeeded > 0 → Succeeded
            │                   failed > 0    → Failed
            │                   otherwise     → Running
            │
            └── WorkflowStatus  phase verbatim (Running, Succeeded,
                                Failed, Error, Pending, ...)

        duration = end − start
            end = completion time
                  | first terminal condition's transition time (Jobs)
                  | now

Tags:
    classification, status, duration
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from schednotify.core.errors import ClassificationGap
from schednotify.domain.workload import JobStatus, MonitoredEvent, WorkflowStatus


class Status:
    """Well-known classified status values."""

    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    ERROR = "Error"  # Workflows only


_JOB_TERMINAL_CONDITIONS = ("Complete", "Failed")
_WORKFLOW_FAILURE_CONDITIONS = ("Failed", "Error")
_START_FIELDS = ("startTime", "startedAt")


@dataclass(frozen=True)
class ClassifiedStatus:
    """Result of classifying one workload snapshot.

    Attributes:
        status: Classified status (one of :class:`Status` or any phase string)
        duration: Elapsed run time, zero when the start time is unknown
        reason: Failure reason, empty when none
        message: Failure message, empty when none
        gaps: Missing data noticed along the way
    """

    status: str
    duration: timedelta = timedelta(0)
    reason: str = ""
    message: str = ""
    gaps: tuple[ClassificationGap, ...] = ()

    @property
    def duration_text(self) -> str:
        """Duration as ``1h2m3s``, or the empty string when unknown."""
        if any(g.field_name in _START_FIELDS for g in self.gaps):
            return ""
        return format_duration(self.duration)


def classify(event: MonitoredEvent, *, now: Callable[[], datetime] | None = None) -> ClassifiedStatus:
    """Classify an event's workload status. Never raises.

    Args:
        event: The monitored event
        now: Clock used for still-running workloads (default: UTC now)
    """
    clock = now or _utc_now
    match event.status:
        case JobStatus() as job:
            return _classify_job(job, clock)
        case WorkflowStatus() as wf:
            return _classify_workflow(wf, clock)
    return ClassifiedStatus(status="", gaps=(ClassificationGap("status"),))


def _classify_job(job: JobStatus, clock: Callable[[], datetime]) -> ClassifiedStatus:
    if job.succeeded > 0:
        status = Status.SUCCEEDED
    elif job.failed > 0:
        status = Status.FAILED
    else:
        status = Status.RUNNING

    gaps: list[ClassificationGap] = []
    duration = timedelta(0)
    if job.start_time is None:
        gaps.append(ClassificationGap("startTime"))
    else:
        end = job.completion_time
        if end is None:
            end = next(
                (
                    c.last_transition_time
                    for c in job.conditions
                    if c.type in _JOB_TERMINAL_CONDITIONS and c.is_true and c.last_transition_time
                ),
                None,
            )
        duration = _span(job.start_time, end or clock())

    reason = message = ""
    failed = next((c for c in job.conditions if c.type == "Failed" and c.is_true), None)
    if failed is not None:
        reason, message = failed.reason, failed.message

    return ClassifiedStatus(status, duration, reason, message, tuple(gaps))


def _classify_workflow(wf: WorkflowStatus, clock: Callable[[], datetime]) -> ClassifiedStatus:
    gaps: list[ClassificationGap] = []
    if not wf.phase:
        gaps.append(ClassificationGap("phase"))

    duration = timedelta(0)
    if wf.started_at is None:
        gaps.append(ClassificationGap("startedAt"))
    else:
        duration = _span(wf.started_at, wf.finished_at or clock())

    failure = next(
        (c for c in wf.conditions if c.type in _WORKFLOW_FAILURE_CONDITIONS and c.is_true),
        None,
    )
    reason = failure.reason if failure is not None else ""

    return ClassifiedStatus(wf.phase, duration, reason, wf.message, tuple(gaps))


def _span(start: datetime, end: datetime) -> timedelta:
    # Clock skew between the API server and us can make this negative
    return max(end - start, timedelta(0))


def _utc_now() -> datetime:
    return datetime.now(UTC)


def format_duration(value: timedelta) -> str:
    """Format a duration rounded to whole seconds: ``45s``, ``2m5s``, ``1h0m3s``.

    Zero is ``0s``.
    """
    total = int(round(value.total_seconds()))
    if total <= 0:
        return "0s"
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


__all__ = ["Status", "ClassifiedStatus", "classify", "format_duration"]
