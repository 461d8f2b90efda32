"""Exceptions raised by payment provider adapters."""

from typing import Iterable, Optional


class PaymentError(Exception):
    """Base exception for payment-related errors."""
    pass


class ServiceError(PaymentError):
    """Raised when a payment service operation fails for an order.

    Gateway failures are re-raised as this type with the gateway's own
    error message attached.
    """

    def __init__(
        self,
        message: str,
        order_id: Optional[str] = None,
        gateway_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.order_id = order_id
        self.gateway_message = gateway_message


class ConfigurationError(ServiceError):
    """Raised when required provider settings are missing or invalid."""

    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields = list(fields)


class PreconditionError(ServiceError):
    """Raised when per-order state required by an operation is absent."""
    pass


class OrderNotFoundError(ServiceError):
    """Raised when an order cannot be found."""
    pass
