"""Base classes and host interfaces for payment service providers."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

from .exceptions import OrderNotFoundError

logger = logging.getLogger(__name__)


# ==================== Enumerations ====================

class PaymentStatus(str, Enum):
    """Payment status of an order."""
    UNFINISHED = "unfinished"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    CANCELED = "canceled"
    REFUSED = "refused"
    REFUNDED = "refunded"
    RECEIVED = "received"


class AddressType(str, Enum):
    """Address slots of an order."""
    PAYMENT = "payment"
    DELIVERY = "delivery"


class ServiceType(str, Enum):
    """Service slots of an order."""
    PAYMENT = "payment"
    DELIVERY = "delivery"


class Feature(str, Enum):
    """Optional provider capabilities."""
    QUERY = "query"
    CAPTURE = "capture"
    CANCEL = "cancel"
    REFUND = "refund"
    REPAY = "repay"


# ==================== Host read model ====================

class Price(Protocol):
    value: Decimal
    costs: Decimal
    tax_value: Decimal
    tax_flag: bool
    currency_id: str


class Address(Protocol):
    first_name: str
    last_name: str
    company: str
    address1: str
    address2: str
    address3: str
    postal: str
    city: str
    country_id: str
    state: str
    telephone: str
    email: str


class ServiceAttributes(Protocol):
    """Key-value store attached to the payment service of an order."""

    def get(self, key: str, namespace: str) -> Optional[str]:
        ...

    def set(self, key: str, value: Any, namespace: str) -> None:
        ...


class OrderBase(Protocol):
    id: str
    price: Price

    def get_address(self, address_type: AddressType) -> Optional[Address]:
        """Return the address of the given type or None if there is none."""
        ...

    def get_service(self, service_type: ServiceType, code: str) -> ServiceAttributes:
        ...


class Order(Protocol):
    id: str
    base_id: str
    payment_status: PaymentStatus


class OrderRepository(Protocol):
    """Persistence operations the host platform provides to adapters."""

    async def get_order(self, order_id: str) -> Optional[Order]:
        ...

    async def get_order_base(self, base_id: str) -> OrderBase:
        ...

    async def save_order(self, order: Order) -> None:
        ...

    async def save_order_base(self, order_base: OrderBase) -> None:
        ...


# ==================== Value objects ====================

@dataclass
class RedirectForm:
    """Where the payer has to be sent to after the payment was set up."""
    url: str
    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConfigDefinition:
    """Backend configuration option offered by a provider."""
    code: str
    label: str
    type: str = "string"
    default: Any = ""
    required: bool = False


def to_bool(value: Any) -> bool:
    """Parse boolean configuration values as stored by the backend."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


# ==================== Base Provider ====================

class PaymentAdapter(ABC):
    """Abstract base class for payment service providers.

    Args:
        config: Service configuration as entered by the shop owner
        repository: Order persistence of the host platform
        platform_config: Shop wide settings, e.g. the payment URLs
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        repository: OrderRepository,
        platform_config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.config = dict(config)
        self.repository = repository
        self.platform_config = dict(platform_config or {})

    # ---------- configuration ----------

    def get_config_value(
        self, keys: Union[str, Iterable[str]], default: Any = None
    ) -> Any:
        """Return the first configured value of the given keys.

        The service configuration is checked first for all keys, then the
        platform configuration.
        """
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)

        for source in (self.config, self.platform_config):
            for key in keys:
                value = source.get(key)
                if value is not None and value != "":
                    return value

        return default

    def get_config_be(self) -> List[ConfigDefinition]:
        """Return the backend configuration definitions of the provider."""
        return []

    def check_config_be(self, attributes: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """Check the backend configuration attributes for validity.

        Returns:
            Mapping of every known option to an error message or None
        """
        return self.check_config(self.get_config_be(), attributes)

    @staticmethod
    def check_config(
        definitions: Iterable[ConfigDefinition], attributes: Mapping[str, Any]
    ) -> Dict[str, Optional[str]]:
        errors: Dict[str, Optional[str]] = {}

        for definition in definitions:
            value = attributes.get(definition.code)
            errors[definition.code] = None

            if value is None or value == "":
                if definition.required:
                    errors[definition.code] = f'Configuration for "{definition.code}" is missing'
                continue

            if definition.type == "boolean":
                try:
                    to_bool(value)
                except ValueError:
                    errors[definition.code] = f'Not a boolean value for "{definition.code}"'

        return errors

    # ---------- amounts ----------

    @staticmethod
    def get_amount(price: Price, costs: bool = True, tax: bool = True) -> Decimal:
        """Return the amount to pay for the given price.

        Args:
            price: Price item
            costs: Include the shipping/payment costs
            tax: Add the tax value if the price is a net price
        """
        amount = Decimal(str(price.value))

        if costs:
            amount += Decimal(str(price.costs or 0))

        if tax and not price.tax_flag:
            amount += Decimal(str(price.tax_value or 0))

        return amount

    # ---------- persistence ----------

    async def get_order(self, order_id: str) -> Order:
        order = await self.repository.get_order(order_id)
        if order is None:
            logger.warning("Order %s not found", order_id)
            raise OrderNotFoundError(
                f'Order with ID "{order_id}" not found', order_id=str(order_id)
            )
        return order

    async def get_order_base(self, order: Order) -> OrderBase:
        return await self.repository.get_order_base(order.base_id)

    async def save_order(self, order: Order) -> None:
        await self.repository.save_order(order)

    async def save_order_base(self, order_base: OrderBase) -> None:
        await self.repository.save_order_base(order_base)

    @staticmethod
    def set_attributes(
        service: ServiceAttributes, attributes: Mapping[str, Any], namespace: str
    ) -> None:
        for key, value in attributes.items():
            service.set(key, value, namespace)

    # ---------- lifecycle ----------

    @abstractmethod
    async def process(
        self, order: Order, params: Optional[Mapping[str, Any]] = None
    ) -> RedirectForm:
        """Start the payment for the given order.

        Args:
            order: Order invoice object
            params: Request parameters if available

        Returns:
            Redirect form with URL, method and parameters
        """
        pass

    async def query(self, order: Order) -> None:
        """Query the payment provider for status updates of the order."""
        raise NotImplementedError("Payment status query not implemented")

    async def capture(self, order: Order) -> None:
        """Capture a previously authorized payment."""
        raise NotImplementedError("Payment capture not implemented")

    async def cancel(self, order: Order) -> None:
        """Cancel an authorized payment."""
        raise NotImplementedError("Payment cancellation not implemented")

    async def refund(self, order: Order) -> None:
        """Refund a captured payment."""
        raise NotImplementedError("Payment refund not implemented")

    async def update_push(self, params: Mapping[str, Any]) -> Any:
        """Handle status notifications sent by the payment provider."""
        raise NotImplementedError("Push notifications not implemented")

    async def update_sync(self, params: Mapping[str, Any], order: Order) -> Order:
        """Update the order when the payer returns to the shop."""
        return order

    def is_implemented(self, feature: Feature) -> bool:
        return False
