"""
Pytest configuration and fixtures for the Saferpay payment service tests.
"""

import os
import sys
from decimal import Decimal

import pytest

# Add app directory to Python path for imports
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "app"))

from adapters.base import AddressType  # noqa: E402
from adapters.saferpay import SaferpayAdapter  # noqa: E402
from adapters.saferpay.client import RequestConfig, SaferpayClient  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeAddress,
    FakeGateway,
    FakeOrder,
    FakeOrderBase,
    FakePrice,
    FakeRepository,
)


@pytest.fixture
def saferpay_config():
    """Service configuration as entered in the shop backend."""
    return {
        "saferpay.ApiUsername": "API_401860_80003225",
        "saferpay.ApiPassword": "C-y*bv8346Ze5-T8",
        "saferpay.ApiTestMode": "1",
        "saferpay.CustomerId": "401860",
        "saferpay.TerminalId": "17795278",
        "saferpay.MerchantEmails": "shop@example.com, billing@example.com",
    }


@pytest.fixture
def platform_config():
    return {
        "payment.url-success": "https://shop.example.com/checkout/confirm",
        "payment.url-update": "https://shop.example.com/payment/saferpay/update",
    }


@pytest.fixture
def billing_address():
    return FakeAddress(
        first_name="Anna",
        last_name="Muster",
        address1="Bahnhofstrasse 1",
        address2="c/o Example AG",
        address3="3rd floor",
        postal="8001",
        city="Zürich",
        country_id="CH",
        state="ZH",
        telephone="+41 44 000 00 00",
        email="anna@example.com",
    )


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def order(repository, billing_address):
    """Order of 49.90 CHF without a delivery address."""
    order_base = FakeOrderBase(
        id="base-1",
        price=FakePrice(value=Decimal("49.90"), currency_id="CHF"),
        addresses={AddressType.PAYMENT: billing_address},
    )
    return repository.add(FakeOrder(id="1001", base_id="base-1"), order_base)


@pytest.fixture
def service(repository, order):
    """Saferpay service attributes of the order."""
    return repository.bases[order.base_id].service


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def adapter(saferpay_config, platform_config, repository, gateway):
    client = SaferpayClient(
        RequestConfig("API_401860_80003225", "C-y*bv8346Ze5-T8", "401860", True),
        transport=gateway.transport(),
    )
    return SaferpayAdapter(saferpay_config, repository, platform_config, client=client)
