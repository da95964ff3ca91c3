"""Dispatch channel implementations.

Manifesto:
    Each channel module implements a single delivery target. Channels
    share the message layout in ``message`` and the result type in
    ``base``; the orchestrator picks one per attempt by credential type.

Tags:
    channels, delivery, slack, webhook
"""

from schednotify.framework.channels.base import ChannelType, DeliveryResult, DispatchChannel, HttpChannel
from schednotify.framework.channels.dry_run import DryRunChannel
from schednotify.framework.channels.message import (
    DANGER,
    DEFAULT_FALLBACK_TEXT,
    GOOD,
    WARNING,
    AttachmentField,
    DispatchMessage,
    build_fields,
    build_message,
    resolve_color,
    status_color,
)
from schednotify.framework.channels.token import DEFAULT_API_URL, TokenChannel
from schednotify.framework.channels.webhook import WebhookChannel

__all__ = [
    # Base
    "ChannelType",
    "DeliveryResult",
    "DispatchChannel",
    "HttpChannel",
    # Message
    "AttachmentField",
    "DispatchMessage",
    "GOOD",
    "DANGER",
    "WARNING",
    "DEFAULT_FALLBACK_TEXT",
    "build_fields",
    "build_message",
    "resolve_color",
    "status_color",
    # Implementations
    "TokenChannel",
    "WebhookChannel",
    "DryRunChannel",
    "DEFAULT_API_URL",
]
