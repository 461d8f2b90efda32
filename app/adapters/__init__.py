"""Adapters for integrating external payment service providers."""

from .base import PaymentAdapter, PaymentStatus, RedirectForm
from .exceptions import PaymentError, ServiceError, ConfigurationError, PreconditionError, OrderNotFoundError

__all__ = ["PaymentAdapter", "PaymentStatus", "RedirectForm", "PaymentError", "ServiceError", "ConfigurationError", "PreconditionError", "OrderNotFoundError"]
