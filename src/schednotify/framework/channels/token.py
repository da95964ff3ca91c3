"""Token-authenticated chat API channel.

Posts through the ``chat.postMessage`` style API with a bearer token. The
API needs an explicit channel, so a message without one is rejected
before any request is made.
"""

from __future__ import annotations

from typing import Any

import httpx

from schednotify.core.errors import ChannelRequiredError, DeliveryError
from schednotify.core.secrets import SecretValue, redact_url
from schednotify.framework.channels.base import ChannelType, DeliveryResult, HttpChannel
from schednotify.framework.channels.message import DispatchMessage

DEFAULT_API_URL = "https://slack.com/api/chat.postMessage"


class TokenChannel(HttpChannel):
    """
    Bot-token channel.

    The API answers HTTP 200 with ``{"ok": false, "error": ...}`` for most
    rejections, so the body is checked as well as the status code.
    """

    channel_type = ChannelType.TOKEN

    def __init__(self, http_client: httpx.Client, api_url: str = DEFAULT_API_URL):
        super().__init__(http_client)
        self._api_url = api_url

    def build_payload(self, message: DispatchMessage) -> dict[str, Any]:
        return {
            "channel": message.channel,
            "text": message.fallback,
            "attachments": [message.attachment()],
        }

    def send(
        self,
        message: DispatchMessage,
        credential: SecretValue,
        *,
        timeout: float | None = None,
    ) -> DeliveryResult:
        """Send via the chat API."""
        if not message.channel:
            return DeliveryResult.fail(self.channel_type, ChannelRequiredError())

        headers = {
            "Authorization": f"Bearer {credential.get_secret()}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            response = self._post(self._api_url, self.build_payload(message), headers=headers, timeout=timeout)
        except DeliveryError as e:
            e.with_context(channel=message.channel)
            return DeliveryResult.fail(self.channel_type, e)

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("ok") is False:
            reason = body.get("error") or "unknown_error"
            error = DeliveryError(
                f"API rejected message: {reason}",
                retryable=reason in ("ratelimited", "service_unavailable", "request_timeout"),
            ).with_context(
                channel=message.channel,
                url=redact_url(self._api_url),
                http_status=response.status_code,
                api_error=reason,
            )
            return DeliveryResult.fail(self.channel_type, error)

        response_info: dict[str, Any] = {"status": response.status_code}
        if isinstance(body, dict) and body.get("ts"):
            response_info["ts"] = body["ts"]
        return DeliveryResult.ok(self.channel_type, response=response_info)


__all__ = ["TokenChannel", "DEFAULT_API_URL"]
