"""
Core primitives shared by every layer of the notifier.

- errors: typed error hierarchy with structured context
- logging: structlog configuration and context binding
- secrets: redaction-safe secret wrapper
- settings: pydantic-settings configuration
"""

from schednotify.core.errors import (
    ChannelRequiredError,
    ClassificationGap,
    ConfigError,
    CredentialResolutionError,
    DeliveryError,
    DestinationNotFoundError,
    DispatchCancelledError,
    ErrorCategory,
    ErrorContext,
    ManifestError,
    NotifierError,
    RuleSelectorError,
    SecretNotFoundError,
    TemplateError,
)
from schednotify.core.logging import LogContext, configure_logging, get_logger
from schednotify.core.secrets import SecretValue, redact_url
from schednotify.core.settings import NotifierSettings, clear_settings_cache, get_settings

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "NotifierError",
    "ClassificationGap",
    "RuleSelectorError",
    "CredentialResolutionError",
    "SecretNotFoundError",
    "DestinationNotFoundError",
    "TemplateError",
    "ChannelRequiredError",
    "DeliveryError",
    "DispatchCancelledError",
    "ManifestError",
    "ConfigError",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Secrets
    "SecretValue",
    "redact_url",
    # Settings
    "NotifierSettings",
    "get_settings",
    "clear_settings_cache",
]
