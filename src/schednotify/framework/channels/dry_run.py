"""Recording channel for dry runs and tests."""

from __future__ import annotations

import threading

from schednotify.core.errors import ChannelRequiredError
from schednotify.core.logging import get_logger
from schednotify.core.secrets import SecretValue
from schednotify.framework.channels.base import ChannelType, DeliveryResult, DispatchChannel
from schednotify.framework.channels.message import DispatchMessage

logger = get_logger(__name__)


class DryRunChannel(DispatchChannel):
    """
    Records messages instead of sending them.

    With ``require_channel=True`` it rejects messages without a channel,
    mirroring the token channel.
    """

    channel_type = ChannelType.DRY_RUN

    def __init__(self, *, require_channel: bool = False):
        self._require_channel = require_channel
        self._lock = threading.Lock()
        self._sent: list[DispatchMessage] = []

    @property
    def sent(self) -> list[DispatchMessage]:
        with self._lock:
            return list(self._sent)

    def send(
        self,
        message: DispatchMessage,
        credential: SecretValue,
        *,
        timeout: float | None = None,
    ) -> DeliveryResult:
        if self._require_channel and not message.channel:
            return DeliveryResult.fail(self.channel_type, ChannelRequiredError())
        with self._lock:
            self._sent.append(message)
        logger.info("channel.dry_run", title=message.title, channel=message.channel or None)
        return DeliveryResult.ok(self.channel_type, message="recorded")

    def clear(self) -> None:
        with self._lock:
            self._sent.clear()


__all__ = ["DryRunChannel"]
