"""Incoming-webhook channel.

Manifesto:
    The webhook URL is the credential. It is only ever logged in redacted
    form, and the channel name is sent only when one was resolved so the
    endpoint can fall back to its own default.

Tags:
    channels, webhook, HTTP-POST
"""

from __future__ import annotations

from typing import Any

from schednotify.core.errors import DeliveryError
from schednotify.core.secrets import SecretValue
from schednotify.framework.channels.base import ChannelType, DeliveryResult, HttpChannel
from schednotify.framework.channels.message import DispatchMessage


class WebhookChannel(HttpChannel):
    """POSTs the attachment payload to the destination's webhook URL."""

    channel_type = ChannelType.WEBHOOK

    def build_payload(self, message: DispatchMessage) -> dict[str, Any]:
        payload: dict[str, Any] = {"attachments": [message.attachment()]}
        if message.channel:
            payload["channel"] = message.channel
        if message.title:
            payload["text"] = message.title
        return payload

    def send(
        self,
        message: DispatchMessage,
        credential: SecretValue,
        *,
        timeout: float | None = None,
    ) -> DeliveryResult:
        """Send to the webhook."""
        try:
            response = self._post(credential.get_secret(), self.build_payload(message), timeout=timeout)
        except DeliveryError as e:
            if message.channel:
                e.with_context(channel=message.channel)
            return DeliveryResult.fail(self.channel_type, e)
        return DeliveryResult.ok(self.channel_type, response={"status": response.status_code})


__all__ = ["WebhookChannel"]
