"""
Outgoing message construction.

Turns a rendered title and message plus the event's render context into
a :class:`DispatchMessage`: one attachment with a color, a fixed set of
short fields, and a human-readable fallback. Channels only serialise
what is built here; they never decide layout.

Manifesto:
    Every destination sees the same message for the same event. Color
    follows the status tone unless the rule overrides it, and the field
    order is fixed so operators can scan a channel at a glance.

Architecture:
    ::

        title, text, context ──► build_message() ──► DispatchMessage
                                     │                   ├── attachment()
                                     ├── build_fields()  │     {title, text, color,
                                     └── resolve_color() │      fields, fallback}
                                                         └── channel, fallback

        Tones:
            Succeeded, Running → good
            Failed, Error      → danger
            anything else      → warning

Tags:
    message, attachment, color, fields, slack
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

GOOD = "good"
DANGER = "danger"
WARNING = "warning"

DEFAULT_FALLBACK_TEXT = "Workload status notification"

_TONES: dict[str, str] = {
    "succeeded": GOOD,
    "running": GOOD,
    "failed": DANGER,
    "error": DANGER,
}


class MessageContext(Protocol):
    """Event data the message layout reads (satisfied by ``RenderContext``)."""

    namespace: str
    owner_kind: str
    owner_name: str
    status: str
    duration: str
    reason: str
    message: str


@dataclass(frozen=True)
class AttachmentField:
    title: str
    value: str
    short: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "value": self.value, "short": self.short}


@dataclass(frozen=True)
class DispatchMessage:
    """A fully rendered message, ready for any channel.

    Attributes:
        title: Rendered title (may be empty)
        text: Rendered message body
        color: Tone name or explicit color code
        fields: Attachment fields in display order
        channel: Effective channel name, empty when none was resolved
        fallback: Plain-text summary for clients that cannot show attachments
    """

    title: str
    text: str
    color: str
    fields: tuple[AttachmentField, ...] = ()
    channel: str = ""
    fallback: str = DEFAULT_FALLBACK_TEXT

    def attachment(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "text": self.text,
            "color": self.color,
            "fields": [f.to_dict() for f in self.fields],
            "fallback": self.fallback,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and CLI output."""
        result = self.attachment()
        if self.channel:
            result["channel"] = self.channel
        return result


def status_color(status: str) -> str:
    """Tone for a classified status, compared case-insensitively."""
    return _TONES.get(status.casefold(), WARNING)


def resolve_color(override: str, status: str) -> str:
    """A non-empty tuple color wins over the status tone."""
    return override or status_color(status)


def build_fields(ctx: MessageContext) -> tuple[AttachmentField, ...]:
    """Namespace, Status, owner, Duration; then Reason and Message if present."""
    fields = [
        AttachmentField("Namespace", ctx.namespace),
        AttachmentField("Status", ctx.status),
        AttachmentField(ctx.owner_kind, ctx.owner_name),
        AttachmentField("Duration", ctx.duration),
    ]
    if ctx.reason:
        fields.append(AttachmentField("Reason", ctx.reason))
    if ctx.message:
        fields.append(AttachmentField("Message", ctx.message))
    return tuple(fields)


def build_message(
    title: str,
    text: str,
    ctx: MessageContext,
    *,
    color: str = "",
    channel: str = "",
    fallback_text: str = DEFAULT_FALLBACK_TEXT,
) -> DispatchMessage:
    """Assemble the message for one dispatch attempt.

    Args:
        title: Rendered title; also used as the fallback when non-empty
        text: Rendered message body
        ctx: Event data for fields and tone
        color: Tuple-level color override
        channel: Effective channel name
        fallback_text: Fallback used when the title is empty
    """
    return DispatchMessage(
        title=title,
        text=text,
        color=resolve_color(color, ctx.status),
        fields=build_fields(ctx),
        channel=channel,
        fallback=title or fallback_text,
    )


__all__ = [
    "GOOD",
    "DANGER",
    "WARNING",
    "DEFAULT_FALLBACK_TEXT",
    "MessageContext",
    "AttachmentField",
    "DispatchMessage",
    "status_color",
    "resolve_color",
    "build_fields",
    "build_message",
]
