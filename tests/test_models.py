"""
Tests for the reference order model and the application settings.
"""

import logging
import os
import sys
from decimal import Decimal

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "app"))

from adapters.base import AddressType, ServiceType  # noqa: E402
from adapters.exceptions import PreconditionError  # noqa: E402
from config import Settings  # noqa: E402
from models import OrderAddressRecord, OrderBaseRecord, OrderServiceRecord, PriceValue  # noqa: E402


def make_order_base():
    order_base = OrderBaseRecord(
        id="base-1", price=PriceValue(value=Decimal("49.90"), currency_id="CHF")
    )
    order_base.addresses.append(OrderAddressRecord(type=AddressType.PAYMENT.value, city="Bern"))
    order_base.services.append(OrderServiceRecord(type=ServiceType.PAYMENT.value, code="saferpay"))
    return order_base


class TestOrderBaseRecord:

    def test_get_service_and_address(self):
        order_base = make_order_base()

        assert order_base.get_service(ServiceType.PAYMENT, "saferpay").code == "saferpay"
        assert order_base.get_address(AddressType.PAYMENT).city == "Bern"
        assert order_base.get_address(AddressType.DELIVERY) is None

    def test_missing_payment_service(self):
        order_base = make_order_base()

        with pytest.raises(PreconditionError) as exc_info:
            order_base.get_service(ServiceType.PAYMENT, "other")

        assert 'Service "other"' in str(exc_info.value)


class TestSettings:

    @pytest.mark.parametrize("name, expected", [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("verbose", logging.INFO),
    ])
    def test_log_level(self, name, expected):
        assert Settings(LOG_LEVEL=name).log_level == expected
