"""SQLAlchemy implementation of the order persistence used by providers."""

import logging
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from adapters.base import AddressType, PaymentStatus, ServiceType
from adapters.exceptions import OrderNotFoundError
from models import (
    OrderAddressRecord,
    OrderBaseRecord,
    OrderRecord,
    OrderServiceRecord,
    PriceValue,
)

logger = logging.getLogger(__name__)


class SqlOrderRepository:
    """Order repository backed by an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        return await self._session.get(OrderRecord, str(order_id))

    async def get_order_base(self, base_id: str) -> OrderBaseRecord:
        order_base = await self._session.get(OrderBaseRecord, base_id)
        if order_base is None:
            raise OrderNotFoundError(f'Order base with ID "{base_id}" not found')
        return order_base

    async def save_order(self, order: OrderRecord) -> None:
        self._session.add(order)
        await self._session.commit()

    async def save_order_base(self, order_base: OrderBaseRecord) -> None:
        self._session.add(order_base)
        await self._session.commit()

    async def create_order(
        self,
        price: PriceValue,
        billing_address: Mapping[str, Any],
        delivery_address: Optional[Mapping[str, Any]] = None,
        service_code: str = "saferpay",
    ) -> OrderRecord:
        """Store a new order with its base, addresses and payment service."""
        order_base = OrderBaseRecord(id=str(uuid.uuid4()), price=price)
        order_base.addresses.append(
            OrderAddressRecord(type=AddressType.PAYMENT.value, **billing_address)
        )
        if delivery_address is not None:
            order_base.addresses.append(
                OrderAddressRecord(type=AddressType.DELIVERY.value, **delivery_address)
            )
        order_base.services.append(
            OrderServiceRecord(type=ServiceType.PAYMENT.value, code=service_code)
        )

        order = OrderRecord(
            id=str(uuid.uuid4()),
            base_id=order_base.id,
            payment_status=PaymentStatus.UNFINISHED,
        )

        self._session.add_all([order_base, order])
        await self._session.commit()

        logger.info("Created order %s with base %s", order.id, order_base.id)
        return order
