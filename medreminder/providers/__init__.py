"""Outbound messaging providers."""

from .base_provider import (
    InvalidRecipientError,
    NotificationProvider,
    ProviderError,
    ProviderInitializationError,
    TransientDeliveryError,
)
from .line_provider import LineMessagingProvider

__all__ = [
    "InvalidRecipientError",
    "LineMessagingProvider",
    "NotificationProvider",
    "ProviderError",
    "ProviderInitializationError",
    "TransientDeliveryError",
]
