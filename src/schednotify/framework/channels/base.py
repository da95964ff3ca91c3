"""
Dispatch channel base class and delivery result.

A channel delivers one :class:`DispatchMessage` with one credential and
reports the outcome as a :class:`DeliveryResult`. Channels never raise
for delivery problems and never retry; the caller decides what a failure
means.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from schednotify.core.errors import DeliveryError, NotifierError
from schednotify.core.logging import get_logger
from schednotify.core.secrets import SecretValue, redact_url
from schednotify.framework.channels.message import DispatchMessage

logger = get_logger(__name__)


class ChannelType(str, Enum):
    """Dispatch channel types."""

    TOKEN = "token"
    WEBHOOK = "webhook"
    DRY_RUN = "dry_run"  # Records instead of sending


@dataclass
class DeliveryResult:
    """Result of one delivery attempt."""

    channel_type: ChannelType
    success: bool
    message: str | None = None
    response: dict[str, Any] | None = None
    error: NotifierError | None = None
    delivered_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def ok(cls, channel_type: ChannelType, message: str | None = None, **kwargs: Any) -> DeliveryResult:
        return cls(channel_type=channel_type, success=True, message=message, **kwargs)

    @classmethod
    def fail(cls, channel_type: ChannelType, error: NotifierError) -> DeliveryResult:
        return cls(channel_type=channel_type, success=False, error=error, message=str(error))


class DispatchChannel(ABC):
    """
    Base class for dispatch channels.

    Subclasses implement :meth:`send`. HTTP channels share one injected
    ``httpx.Client``; the client is owned by whoever constructed it.
    """

    channel_type: ChannelType

    @property
    def name(self) -> str:
        return self.channel_type.value

    @abstractmethod
    def send(
        self,
        message: DispatchMessage,
        credential: SecretValue,
        *,
        timeout: float | None = None,
    ) -> DeliveryResult:
        """Deliver ``message`` once.

        Args:
            message: Fully built message, including the effective channel
            credential: API token or webhook URL, depending on the channel
            timeout: Per-request timeout in seconds (client default if None)
        """
        ...


class HttpChannel(DispatchChannel):
    """Shared POST handling for the HTTP channels."""

    def __init__(self, http_client: httpx.Client):
        self._client = http_client

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """POST ``payload`` as JSON.

        Raises:
            DeliveryError: On transport failures and non-2xx responses
        """
        kwargs: dict[str, Any] = {"json": payload, "headers": headers or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout

        safe_url = redact_url(url)
        try:
            response = self._client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            raise DeliveryError(f"Request timed out: {safe_url}", cause=e).with_context(url=safe_url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(
                f"Request failed: {type(e).__name__}", cause=e
            ).with_context(url=safe_url) from e

        if response.is_error:
            raise DeliveryError(
                f"Remote returned HTTP {response.status_code}",
                retryable=response.status_code >= 500 or response.status_code == 429,
            ).with_context(url=safe_url, http_status=response.status_code)

        logger.debug("channel.posted", channel=self.name, url=safe_url, http_status=response.status_code)
        return response


__all__ = ["ChannelType", "DeliveryResult", "DispatchChannel", "HttpChannel"]
