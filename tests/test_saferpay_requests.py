"""
Tests for assembling Saferpay requests from orders.
"""

import os
import sys
from decimal import Decimal

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "app"))

from adapters.base import AddressType  # noqa: E402
from adapters.exceptions import PreconditionError  # noqa: E402
from tests.fakes import FakeAddress, FakePrice  # noqa: E402


class TestAmount:

    @pytest.mark.parametrize("value,expected", [
        ("49.90", 4990),
        ("19.999", 1999),
        ("0.01", 1),
        ("100", 10000),
    ])
    def test_minor_units_are_truncated(self, adapter, value, expected):
        amount = adapter.get_amount_container(FakePrice(value=Decimal(value), currency_id="CHF"))

        assert amount.value == expected
        assert amount.currency_code == "CHF"

    def test_costs_are_included(self, adapter):
        price = FakePrice(value=Decimal("49.90"), costs=Decimal("5.00"), currency_id="EUR")

        assert adapter.get_amount_container(price).value == 5490

    def test_tax_is_added_for_net_prices(self, adapter):
        price = FakePrice(
            value=Decimal("100.00"),
            tax_value=Decimal("8.10"),
            tax_flag=False,
            currency_id="CHF",
        )

        assert adapter.get_amount_container(price).value == 10810


class TestAddress:

    def test_address_fields_are_mapped(self, adapter, billing_address):
        address = adapter.get_address_container(billing_address)

        assert address.first_name == "Anna"
        assert address.last_name == "Muster"
        assert address.street == "Bahnhofstrasse 1"
        assert address.street2 == "c/o Example AG 3rd floor"
        assert address.zip == "8001"
        assert address.city == "Zürich"
        assert address.country_code == "CH"
        assert address.country_subdivision_code == "ZH"
        assert address.phone == "+41 44 000 00 00"
        assert address.email == "anna@example.com"

    def test_empty_strings_become_none(self, adapter):
        address = adapter.get_address_container(FakeAddress(last_name="Muster", address3="Hinterhaus"))

        assert address.last_name == "Muster"
        assert address.first_name is None
        assert address.company is None
        assert address.street2 == "Hinterhaus"
        assert address.to_payload() == {"LastName": "Muster", "Street2": "Hinterhaus"}


class TestPayer:

    @pytest.mark.asyncio
    async def test_delivery_address_falls_back_to_billing_address(self, adapter, order):
        context = await adapter.get_context(order)

        payer = adapter.get_payer_container(context)

        assert payer.billing_address.email == "anna@example.com"
        assert payer.delivery_address == payer.billing_address

    @pytest.mark.asyncio
    async def test_delivery_address_is_used_when_present(self, adapter, order, repository):
        repository.bases[order.base_id].addresses[AddressType.DELIVERY] = FakeAddress(
            first_name="Beat", city="Bern", country_id="CH"
        )
        context = await adapter.get_context(order)

        payer = adapter.get_payer_container(context)

        assert payer.billing_address.first_name == "Anna"
        assert payer.delivery_address.first_name == "Beat"
        assert payer.delivery_address.city == "Bern"

    @pytest.mark.asyncio
    async def test_missing_billing_address(self, adapter, order, repository):
        repository.bases[order.base_id].addresses.clear()
        context = await adapter.get_context(order)

        with pytest.raises(PreconditionError):
            adapter.get_payer_container(context)


class TestPaymentAndNotification:

    @pytest.mark.asyncio
    async def test_payment_container(self, adapter, order):
        payment = adapter.get_payment_container(await adapter.get_context(order))

        assert payment.amount.value == 4990
        assert payment.amount.currency_code == "CHF"
        assert payment.order_id == "1001"
        assert payment.description == "Order 1001"

    @pytest.mark.asyncio
    async def test_description_is_translated(self, saferpay_config, platform_config, repository, order):
        from adapters.saferpay import SaferpayAdapter

        translations = {"Order {order_id}": "Bestellung {order_id}"}
        adapter = SaferpayAdapter(
            saferpay_config,
            repository,
            platform_config,
            translate=lambda text: translations.get(text, text),
        )

        payment = adapter.get_payment_container(await adapter.get_context(order))

        assert payment.description == "Bestellung 1001"

    @pytest.mark.asyncio
    async def test_notification_container(self, adapter, order):
        notification = adapter.get_notification_container(await adapter.get_context(order))

        assert notification.merchant_emails == ["shop@example.com", "billing@example.com"]
        assert notification.payer_email == "anna@example.com"
        assert notification.notify_url == "https://shop.example.com/payment/saferpay/update"

    @pytest.mark.asyncio
    async def test_initialize_request(self, adapter, order):
        request = adapter.get_initialize_request(await adapter.get_context(order), "req-1", 3)
        payload = request.to_payload()

        assert payload["RequestHeader"]["CustomerId"] == "401860"
        assert payload["RequestHeader"]["RequestId"] == "req-1"
        assert payload["RequestHeader"]["RetryIndicator"] == 3
        assert payload["RequestHeader"]["ClientInfo"]["ShopInfo"] == "saferpay-payment-service"
        assert payload["TerminalId"] == "17795278"
        assert payload["Payment"] == {
            "Amount": {"Value": "4990", "CurrencyCode": "CHF"},
            "OrderId": "1001",
            "Description": "Order 1001",
        }
        assert payload["Payer"]["BillingAddress"] == payload["Payer"]["DeliveryAddress"]
        assert payload["ReturnUrls"]["Fail"] == "https://shop.example.com/checkout/confirm"
        assert payload["Notification"]["PayerEmail"] == "anna@example.com"
        assert "PaymentMethodsOptions" not in payload
        assert "ConfigSet" not in payload
