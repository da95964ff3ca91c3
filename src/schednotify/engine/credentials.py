"""Credential resolution for destinations.

A destination names an auth mode and, for that mode, a secret key
reference. Resolution reads exactly that one secret key from the rule's
namespace and yields a :class:`ResolvedCredential` with either a webhook
URL or an API token populated, never both.

Missing secrets, missing keys, a missing reference, or an empty value
fail with :class:`CredentialResolutionError`; the caller scopes that
failure to the one dispatch attempt it belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass

from schednotify.core.errors import CredentialResolutionError, SecretNotFoundError
from schednotify.core.secrets import SecretValue
from schednotify.domain.rules import AuthType, Destination
from schednotify.stores.protocol import SecretStore


@dataclass(frozen=True)
class ResolvedCredential:
    """Transport credential plus the effective channel name."""

    auth_type: AuthType
    webhook_url: SecretValue | None = None
    token: SecretValue | None = None
    channel: str = ""

    @property
    def uses_token(self) -> bool:
        return bool(self.token)


def effective_channel(destination: Destination, override: str = "") -> str:
    """Tuple-level channel override wins over the destination default."""
    return override or destination.spec.channel


class CredentialResolver:
    """Resolves destinations against a secret store."""

    def __init__(self, secret_store: SecretStore):
        self._secrets = secret_store

    def resolve(
        self,
        destination: Destination,
        namespace: str,
        *,
        channel_override: str = "",
    ) -> ResolvedCredential:
        """Resolve ``destination`` for a rule living in ``namespace``.

        Raises:
            CredentialResolutionError: If the reference, secret, or key is missing
        """
        spec = destination.spec
        ref = spec.secret_ref
        mode = spec.auth_type.value
        if ref is None:
            raise CredentialResolutionError(
                f"Destination {destination.name!r} uses {mode} auth but declares no secret reference"
            ).with_context(destination=destination.name, namespace=namespace)

        try:
            raw = self._secrets.get_secret_value(namespace, ref.name, ref.key)
        except SecretNotFoundError as e:
            e.with_context(destination=destination.name, namespace=namespace)
            raise

        try:
            value = SecretValue.from_bytes(raw)
        except UnicodeDecodeError as e:
            raise CredentialResolutionError(
                f"Secret {namespace}/{ref.name} key {ref.key!r} is not valid UTF-8", cause=e
            ).with_context(destination=destination.name, namespace=namespace) from e

        if not value:
            raise CredentialResolutionError(
                f"Secret {namespace}/{ref.name} key {ref.key!r} is empty"
            ).with_context(destination=destination.name, namespace=namespace)

        channel = effective_channel(destination, channel_override)
        if spec.auth_type is AuthType.TOKEN:
            return ResolvedCredential(AuthType.TOKEN, token=value, channel=channel)
        return ResolvedCredential(AuthType.WEBHOOK, webhook_url=value, channel=channel)


__all__ = ["ResolvedCredential", "CredentialResolver", "effective_channel"]
