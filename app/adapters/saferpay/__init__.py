"""Saferpay payment service provider."""

import logging
import platform
import sys
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import Response

from ..base import (
    Address,
    AddressType,
    ConfigDefinition,
    Feature,
    Order,
    OrderBase,
    OrderRepository,
    PaymentAdapter,
    PaymentStatus,
    Price,
    RedirectForm,
    ServiceAttributes,
    ServiceType,
    to_bool,
)
from ..exceptions import ConfigurationError, PreconditionError, ServiceError
from . import client as saferpay
from .client import RequestConfig, SaferpayClient, SaferpayError

logger = logging.getLogger(__name__)

NAMESPACE = "payment/saferpay"
SHOP_INFO = "saferpay-payment-service"

CONFIG_BE = [
    ConfigDefinition("saferpay.ApiUsername", "Username", required=True),
    ConfigDefinition("saferpay.ApiPassword", "Password", required=True),
    ConfigDefinition(
        "saferpay.ApiTestMode", "Connect to the Saferpay Test Environment",
        type="boolean", default=True,
    ),
    ConfigDefinition("saferpay.CustomerId", "Saferpay customer id", required=True),
    ConfigDefinition("saferpay.TerminalId", "Saferpay terminal id", required=True),
    ConfigDefinition("saferpay.ConfigSet", "Saferpay config set"),
    ConfigDefinition("saferpay.PaymentMethods", "Saferpay allowed payment methods"),
    ConfigDefinition("saferpay.PaymentMethodsOptions", "Saferpay payment methods options"),
    ConfigDefinition("saferpay.MerchantEmails", "Saferpay merchant emails comma separated"),
]

STATUS_MAP = {
    saferpay.Transaction.STATUS_AUTHORIZED: PaymentStatus.AUTHORIZED,
    saferpay.Transaction.STATUS_CANCELED: PaymentStatus.CANCELED,
    saferpay.Transaction.STATUS_CAPTURED: PaymentStatus.RECEIVED,
    saferpay.Transaction.STATUS_PENDING: PaymentStatus.PENDING,
}


def non_empty(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value != "" else None


def split_list(value: Any) -> Optional[List[str]]:
    if not value:
        return None
    items = [item.strip() for item in str(value).split(",") if item.strip()]
    return items or None


@dataclass
class PaymentContext:
    """Host objects needed by a single provider operation."""
    order: Order
    order_base: OrderBase
    service: ServiceAttributes
    billing_address: Optional[saferpay.Address] = None
    delivery_address: Optional[saferpay.Address] = None


class SaferpayAdapter(PaymentAdapter):
    """Payment provider for the Saferpay payment page.

    Args:
        config: Service configuration with ``saferpay.*`` keys
        repository: Order persistence of the host platform
        platform_config: Shop wide settings with the ``payment.url-*`` keys
        client: Saferpay API client, built from the configuration if omitted
        translate: Translation function for messages shown to shop owners
        code: Code of the payment service in the order
        timeout: Request timeout in seconds for the default client

    Raises:
        ConfigurationError: If required configuration values are missing
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        repository: OrderRepository,
        platform_config: Optional[Mapping[str, Any]] = None,
        client: Optional[SaferpayClient] = None,
        translate: Optional[Callable[[str], str]] = None,
        code: str = "saferpay",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(config, repository, platform_config)

        errors = {key: msg for key, msg in self.check_config_be(self.config).items() if msg}
        if errors:
            raise ConfigurationError(
                "Saferpay: " + "; ".join(errors.values()), fields=errors.keys()
            )

        self.code = code
        self.translate = translate or (lambda text: text)
        self.client = client or SaferpayClient(self.get_request_config(), timeout=timeout)

    # ==================== Configuration ====================

    def get_config_be(self) -> List[ConfigDefinition]:
        return list(CONFIG_BE)

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Return the provider setting ``saferpay.<name>``."""
        return self.get_config_value(f"saferpay.{name}", default)

    @property
    def api_key(self) -> str:
        return str(self.get_setting("ApiUsername"))

    @property
    def api_secret(self) -> str:
        return str(self.get_setting("ApiPassword"))

    @property
    def test_mode(self) -> bool:
        return to_bool(self.get_setting("ApiTestMode", True))

    @property
    def customer_id(self) -> str:
        return str(self.get_setting("CustomerId"))

    @property
    def terminal_id(self) -> str:
        return str(self.get_setting("TerminalId"))

    @property
    def config_set(self) -> Optional[str]:
        return non_empty(self.get_setting("ConfigSet"))

    @property
    def payment_methods(self) -> Optional[List[str]]:
        return split_list(self.get_setting("PaymentMethods"))

    @property
    def payment_methods_options(self) -> Optional[saferpay.PaymentMethodsOptions]:
        # Not configurable yet, the option is reserved in the backend
        return None

    @property
    def merchant_emails(self) -> Optional[List[str]]:
        return split_list(self.get_setting("MerchantEmails"))

    @property
    def success_url(self) -> str:
        url = self.get_config_value("payment.url-success")
        if not url:
            raise ConfigurationError(
                'Saferpay: Configuration for "payment.url-success" is missing',
                fields=["payment.url-success"],
            )
        return url

    @property
    def fail_url(self) -> str:
        return self.get_config_value("payment.url-failure") or self.success_url

    @property
    def abort_url(self) -> str:
        return self.get_config_value("payment.url-cancel") or self.success_url

    @property
    def update_url(self) -> Optional[str]:
        return self.get_config_value("payment.url-update")

    def get_request_config(self) -> RequestConfig:
        return RequestConfig(
            api_key=self.api_key,
            api_secret=self.api_secret,
            customer_id=self.customer_id,
            test_mode=self.test_mode,
        )

    # ==================== Service attributes ====================

    @staticmethod
    def get_request_id(service: ServiceAttributes) -> Optional[str]:
        return non_empty(service.get("RequestId", NAMESPACE))

    @staticmethod
    def get_retry_indicator(service: ServiceAttributes) -> Optional[int]:
        value = non_empty(service.get("RetryIndicator", NAMESPACE))
        return int(value) if value is not None else None

    @staticmethod
    def get_token(service: ServiceAttributes) -> Optional[str]:
        return non_empty(service.get("Token", NAMESPACE))

    @staticmethod
    def get_transaction_id(service: ServiceAttributes) -> Optional[str]:
        return non_empty(service.get("TransactionId", NAMESPACE))

    async def get_context(self, order: Order) -> PaymentContext:
        order_base = await self.get_order_base(order)
        service = order_base.get_service(ServiceType.PAYMENT, self.code)

        billing = order_base.get_address(AddressType.PAYMENT)
        delivery = order_base.get_address(AddressType.DELIVERY)

        billing_address = self.get_address_container(billing) if billing is not None else None
        if delivery is not None:
            delivery_address = self.get_address_container(delivery)
        else:
            delivery_address = billing_address

        return PaymentContext(
            order=order,
            order_base=order_base,
            service=service,
            billing_address=billing_address,
            delivery_address=delivery_address,
        )

    def check_token(self, context: PaymentContext) -> str:
        token = self.get_token(context.service)
        if token is None:
            raise PreconditionError(
                self.translate('Saferpay: Token for order ID "{order_id}" not available').format(
                    order_id=context.order.id
                ),
                order_id=str(context.order.id),
            )
        return token

    def check_transaction_id(self, context: PaymentContext) -> str:
        transaction_id = self.get_transaction_id(context.service)
        if transaction_id is None:
            raise PreconditionError(
                self.translate(
                    'Saferpay: TransactionId for order ID "{order_id}" not available'
                ).format(order_id=context.order.id),
                order_id=str(context.order.id),
            )
        return transaction_id

    # ==================== Request containers ====================

    def get_client_info_container(self) -> saferpay.ClientInfo:
        return saferpay.ClientInfo(
            shop_info=SHOP_INFO,
            os_info=f"{platform.system()} ({sys.platform})",
        )

    def get_request_header_container(
        self, request_id: Optional[str] = None, retry_indicator: int = 0
    ) -> saferpay.RequestHeader:
        return saferpay.RequestHeader(
            customer_id=self.customer_id,
            request_id=request_id or uuid.uuid4().hex,
            retry_indicator=retry_indicator,
            client_info=self.get_client_info_container(),
        )

    @staticmethod
    def get_address_container(address: Address) -> saferpay.Address:
        street2 = f"{address.address2 or ''} {address.address3 or ''}".strip()

        return saferpay.Address(
            first_name=non_empty(address.first_name),
            last_name=non_empty(address.last_name),
            company=non_empty(address.company),
            street=non_empty(address.address1),
            street2=non_empty(street2),
            zip=non_empty(address.postal),
            city=non_empty(address.city),
            country_code=non_empty(address.country_id),
            country_subdivision_code=non_empty(address.state),
            phone=non_empty(address.telephone),
            email=non_empty(address.email),
        )

    def get_payer_container(self, context: PaymentContext) -> saferpay.Payer:
        if context.billing_address is None:
            raise PreconditionError(
                self.translate(
                    'Saferpay: Billing address for order ID "{order_id}" not available'
                ).format(order_id=context.order.id),
                order_id=str(context.order.id),
            )

        return saferpay.Payer(
            billing_address=context.billing_address,
            delivery_address=context.delivery_address,
        )

    def get_amount_container(self, price: Price) -> saferpay.Amount:
        return saferpay.Amount(
            value=int(self.get_amount(price) * 100),
            currency_code=price.currency_id,
        )

    def get_payment_container(self, context: PaymentContext) -> saferpay.Payment:
        order_id = str(context.order.id)

        return saferpay.Payment(
            amount=self.get_amount_container(context.order_base.price),
            order_id=order_id,
            description=self.translate("Order {order_id}").format(order_id=order_id),
        )

    def get_return_urls_container(self) -> saferpay.ReturnUrls:
        return saferpay.ReturnUrls(
            success=self.success_url,
            fail=self.fail_url,
            abort=self.abort_url,
        )

    def get_notification_container(self, context: PaymentContext) -> saferpay.Notification:
        payer_email = context.billing_address.email if context.billing_address else None

        return saferpay.Notification(
            merchant_emails=self.merchant_emails,
            payer_email=payer_email,
            notify_url=self.update_url,
        )

    def get_transaction_reference_container(
        self, context: PaymentContext
    ) -> saferpay.TransactionReference:
        return saferpay.TransactionReference(
            transaction_id=self.get_transaction_id(context.service)
        )

    # ==================== Requests ====================

    def get_initialize_request(
        self, context: PaymentContext, request_id: str, retry_indicator: int = 0
    ) -> saferpay.InitializeRequest:
        return saferpay.InitializeRequest(
            request_header=self.get_request_header_container(request_id, retry_indicator),
            config_set=self.config_set,
            terminal_id=self.terminal_id,
            payment_methods=self.payment_methods,
            payment_methods_options=self.payment_methods_options,
            payment=self.get_payment_container(context),
            payer=self.get_payer_container(context),
            return_urls=self.get_return_urls_container(),
            notification=self.get_notification_container(context),
        )

    def get_assert_request(self, context: PaymentContext) -> saferpay.AssertRequest:
        return saferpay.AssertRequest(
            request_header=self.get_request_header_container(),
            token=self.check_token(context),
        )

    def get_capture_request(self, context: PaymentContext) -> saferpay.CaptureRequest:
        return saferpay.CaptureRequest(
            request_header=self.get_request_header_container(),
            transaction_reference=self.get_transaction_reference_container(context),
            amount=self.get_amount_container(context.order_base.price),
        )

    def get_cancel_request(self, context: PaymentContext) -> saferpay.CancelRequest:
        return saferpay.CancelRequest(
            request_header=self.get_request_header_container(),
            transaction_reference=self.get_transaction_reference_container(context),
        )

    def _gateway_error(self, action: str, order: Order, exc: SaferpayError) -> ServiceError:
        message = self.translate(
            'Saferpay: Error on {action} payment for order ID "{order_id}" with error "{error}"'
        ).format(action=action, order_id=order.id, error=exc.error_message)
        logger.error(message)
        return ServiceError(message, order_id=str(order.id), gateway_message=exc.error_message)

    # ==================== Lifecycle ====================

    async def process(
        self, order: Order, params: Optional[Mapping[str, Any]] = None
    ) -> RedirectForm:
        context = await self.get_context(order)

        request_id = self.get_request_id(context.service) or uuid.uuid4().hex
        try:
            retry_indicator = self.get_retry_indicator(context.service)
        except ValueError as exc:
            raise PreconditionError(
                self.translate(
                    'Saferpay: Invalid RetryIndicator for order ID "{order_id}"'
                ).format(order_id=order.id),
                order_id=str(order.id),
            ) from exc
        retry_indicator = 0 if retry_indicator is None else retry_indicator + 1

        self.set_attributes(
            context.service,
            {"RequestId": request_id, "RetryIndicator": retry_indicator},
            NAMESPACE,
        )

        try:
            request = self.get_initialize_request(context, request_id, retry_indicator)

            try:
                response = await request.execute(self.client)
            except SaferpayError as exc:
                raise self._gateway_error("initialize", order, exc) from exc

            # The token is needed later on to assert the payment
            self.set_attributes(context.service, {"Token": response.token}, NAMESPACE)
        finally:
            await self.save_order_base(context.order_base)

        logger.info(
            "Saferpay: initialized payment page for order %s (retry %d)",
            order.id, retry_indicator,
        )
        return RedirectForm(response.redirect_url, "GET", {})

    async def query(self, order: Order) -> None:
        context = await self.get_context(order)
        self.check_token(context)
        await self._update_status(context)

    async def capture(self, order: Order) -> None:
        await self._capture(await self.get_context(order))

    async def cancel(self, order: Order) -> None:
        await self._cancel(await self.get_context(order))

    async def refund(self, order: Order) -> None:
        logger.info("Saferpay: refund for order ID %s is not supported", order.id)

    async def update_push(self, params: Mapping[str, Any]) -> Response:
        if "orderid" not in params:
            return Response(
                status_code=400, content='Saferpay: Parameter "orderid" is missing'
            )

        order = await self.get_order(params["orderid"])
        await self._update_status(await self.get_context(order))

        return Response(status_code=200)

    async def update_sync(self, params: Mapping[str, Any], order: Order) -> Order:
        context = await self.get_context(order)
        await self._update_status(context)

        if self.get_transaction_id(context.service) is not None:
            if order.payment_status == PaymentStatus.AUTHORIZED:
                await self._capture(context)
            elif order.payment_status == PaymentStatus.CANCELED:
                await self._cancel(context)

        return order

    def is_implemented(self, feature: Feature) -> bool:
        return feature in (Feature.QUERY, Feature.CANCEL, Feature.CAPTURE, Feature.REPAY)

    async def _update_status(self, context: PaymentContext) -> None:
        if self.get_token(context.service) is None:
            return

        order = context.order
        request = self.get_assert_request(context)

        try:
            response = await request.execute(self.client)
        except SaferpayError as exc:
            raise self._gateway_error("assert", order, exc) from exc

        transaction = response.transaction
        attributes: Dict[str, Any] = {
            "TransactionId": transaction.id,
            "SixTransactionReference": transaction.six_transaction_reference,
        }

        if (
            transaction.type == saferpay.Transaction.TYPE_PAYMENT
            and transaction.status == saferpay.Transaction.STATUS_CAPTURED
        ):
            attributes["CaptureId"] = transaction.capture_id

        self.set_attributes(context.service, attributes, NAMESPACE)
        await self.save_order_base(context.order_base)

        self.set_payment_status(order, transaction)
        await self.save_order(order)

    async def _capture(self, context: PaymentContext) -> None:
        self.check_transaction_id(context)
        order = context.order
        request = self.get_capture_request(context)

        try:
            response = await request.execute(self.client)
        except SaferpayError as exc:
            raise self._gateway_error("capture", order, exc) from exc

        # The capture id is needed for refunds
        self.set_attributes(context.service, {"CaptureId": response.capture_id}, NAMESPACE)
        await self.save_order_base(context.order_base)

        order.payment_status = PaymentStatus.RECEIVED
        await self.save_order(order)
        logger.info("Saferpay: captured payment for order %s", order.id)

    async def _cancel(self, context: PaymentContext) -> None:
        self.check_transaction_id(context)
        order = context.order
        request = self.get_cancel_request(context)

        try:
            await request.execute(self.client)
        except SaferpayError as exc:
            raise self._gateway_error("cancel", order, exc) from exc

        order.payment_status = PaymentStatus.CANCELED
        await self.save_order(order)
        logger.info("Saferpay: canceled payment for order %s", order.id)

    def set_payment_status(self, order: Order, transaction: saferpay.Transaction) -> None:
        """Map the Saferpay transaction status onto the order payment status."""
        if transaction.type != saferpay.Transaction.TYPE_PAYMENT:
            return

        status = STATUS_MAP.get(transaction.status)
        if status is None:
            logger.info("Saferpay: order ID = %s, status = %s", order.id, transaction.status)
            return

        order.payment_status = status


__all__ = ["SaferpayAdapter", "PaymentContext", "NAMESPACE", "CONFIG_BE"]
