"""
Base Notification Provider.

Abstract base class for outbound messaging channels and the error classes
they raise.
"""

import abc
from typing import Any, Dict, Optional

from medreminder.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderError(Exception):
    """Base exception for messaging provider errors."""
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ProviderInitializationError(ProviderError):
    """The provider cannot be used at all, e.g. missing or rejected credentials."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("PROVIDER_INIT_FAILED", message, details)


class InvalidRecipientError(ProviderError):
    """The recipient was permanently rejected and will never accept messages."""
    def __init__(self, recipient: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.recipient = recipient
        super().__init__("INVALID_RECIPIENT", message, details)


class TransientDeliveryError(ProviderError):
    """Delivery failed for a reason that may clear up (network, rate limit, 5xx)."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSIENT_DELIVERY_FAILURE", message, details)


class NotificationProvider(abc.ABC):
    """Abstract base class for notification providers."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize notification provider.

        Args:
            config: Configuration for the provider
        """
        self.config = config
        self.is_initialized = False

    @abc.abstractmethod
    async def send(self, recipient: str, message: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        """
        Push a message to a recipient.

        Args:
            recipient: External recipient identifier
            message: Provider-specific structured message
            **kwargs: Additional provider-specific parameters

        Returns:
            Dict with send result (success, request_id, ...)

        Raises:
            InvalidRecipientError: recipient permanently rejected
            TransientDeliveryError: any other delivery failure
        """

    @abc.abstractmethod
    def validate_recipient(self, recipient: str) -> bool:
        """
        Validate recipient format.

        Args:
            recipient: Recipient identifier

        Returns:
            True if valid, False otherwise
        """

    async def initialize(self):
        """Initialize the provider (e.g., verify credentials)."""
        self.is_initialized = True
        logger.info(f"{self.__class__.__name__} initialized")

    async def cleanup(self):
        """Clean up resources (e.g., close connections)."""
        self.is_initialized = False
        logger.info(f"{self.__class__.__name__} cleaned up")
