"""Thin async client for the Saferpay JSON API.

Request and response containers are pydantic models whose field names are
mapped to Saferpay's PascalCase JSON keys.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_serializer
from pydantic.alias_generators import to_pascal

logger = logging.getLogger(__name__)

SPEC_VERSION = "1.20"
LIVE_URL = "https://www.saferpay.com/api"
TEST_URL = "https://test.saferpay.com/api"


@dataclass(frozen=True)
class RequestConfig:
    """Credentials and environment used for every request."""
    api_key: str
    api_secret: str
    customer_id: str
    test_mode: bool = True

    @property
    def base_url(self) -> str:
        return TEST_URL if self.test_mode else LIVE_URL


class Container(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_pascal, populate_by_name=True, extra="ignore"
    )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ==================== Request containers ====================

class ClientInfo(Container):
    shop_info: Optional[str] = None
    os_info: Optional[str] = None


class RequestHeader(Container):
    spec_version: str = SPEC_VERSION
    customer_id: str
    request_id: str
    retry_indicator: int = 0
    client_info: Optional[ClientInfo] = None


class Address(Container):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    gender: Optional[str] = None
    street: Optional[str] = None
    street2: Optional[str] = None
    zip: Optional[str] = None
    city: Optional[str] = None
    country_subdivision_code: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[str] = None
    legal_form: Optional[str] = None


class Payer(Container):
    language_code: Optional[str] = None
    billing_address: Optional[Address] = None
    delivery_address: Optional[Address] = None


class Amount(Container):
    value: int
    currency_code: str

    @field_serializer("value")
    def serialize_value(self, value: int) -> str:
        # Saferpay expects the minor unit amount as a string
        return str(value)


class Payment(Container):
    amount: Amount
    order_id: Optional[str] = None
    description: Optional[str] = None


class ReturnUrls(Container):
    success: str
    fail: str
    abort: Optional[str] = None


class Notification(Container):
    merchant_emails: Optional[List[str]] = None
    payer_email: Optional[str] = None
    notify_url: Optional[str] = None


class PaymentMethodsOptions(Container):
    pass


class TransactionReference(Container):
    transaction_id: Optional[str] = None
    order_id: Optional[str] = None


# ==================== Response containers ====================

class ResponseHeader(Container):
    spec_version: Optional[str] = None
    request_id: Optional[str] = None


class Transaction(Container):
    TYPE_PAYMENT: ClassVar[str] = "PAYMENT"
    TYPE_REFUND: ClassVar[str] = "REFUND"

    STATUS_AUTHORIZED: ClassVar[str] = "AUTHORIZED"
    STATUS_CANCELED: ClassVar[str] = "CANCELED"
    STATUS_CAPTURED: ClassVar[str] = "CAPTURED"
    STATUS_PENDING: ClassVar[str] = "PENDING"

    type: str
    status: str
    id: str
    capture_id: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[Amount] = None
    order_id: Optional[str] = None
    acquirer_name: Optional[str] = None
    six_transaction_reference: Optional[str] = None


class InitializeResponse(Container):
    response_header: Optional[ResponseHeader] = None
    token: str
    expiration: Optional[str] = None
    redirect_url: str


class AssertResponse(Container):
    response_header: Optional[ResponseHeader] = None
    transaction: Transaction


class CaptureResponse(Container):
    response_header: Optional[ResponseHeader] = None
    capture_id: Optional[str] = None
    status: Optional[str] = None
    date: Optional[str] = None


class CancelResponse(Container):
    response_header: Optional[ResponseHeader] = None
    transaction_id: Optional[str] = None
    order_id: Optional[str] = None
    date: Optional[str] = None


class ErrorResponse(Container):
    response_header: Optional[ResponseHeader] = None
    behavior: Optional[str] = None
    error_name: Optional[str] = None
    error_message: Optional[str] = None
    transaction_id: Optional[str] = None
    error_detail: Optional[List[str]] = None
    processor_name: Optional[str] = None
    processor_result: Optional[str] = None
    processor_message: Optional[str] = None


class SaferpayError(Exception):
    """Raised when the Saferpay API answers with an error response."""

    def __init__(self, error_response: ErrorResponse, status_code: Optional[int] = None):
        super().__init__(error_response.error_message or error_response.error_name)
        self.error_response = error_response
        self.status_code = status_code

    @property
    def error_message(self) -> Optional[str]:
        return self.error_response.error_message


# ==================== Requests ====================

class Request(Container):
    api_path: ClassVar[str]
    response_class: ClassVar[Type[Container]]

    request_header: RequestHeader

    async def execute(self, client: "SaferpayClient") -> Any:
        return await client.send(self)


class InitializeRequest(Request):
    api_path: ClassVar[str] = "/Payment/v1/PaymentPage/Initialize"
    response_class: ClassVar[Type[Container]] = InitializeResponse

    config_set: Optional[str] = None
    terminal_id: str
    payment_methods: Optional[List[str]] = None
    payment_methods_options: Optional[PaymentMethodsOptions] = None
    payment: Payment
    payer: Optional[Payer] = None
    return_urls: ReturnUrls
    notification: Optional[Notification] = None


class AssertRequest(Request):
    api_path: ClassVar[str] = "/Payment/v1/PaymentPage/Assert"
    response_class: ClassVar[Type[Container]] = AssertResponse

    token: str


class CaptureRequest(Request):
    api_path: ClassVar[str] = "/Payment/v1/Transaction/Capture"
    response_class: ClassVar[Type[Container]] = CaptureResponse

    transaction_reference: TransactionReference
    amount: Optional[Amount] = None


class CancelRequest(Request):
    api_path: ClassVar[str] = "/Payment/v1/Transaction/Cancel"
    response_class: ClassVar[Type[Container]] = CancelResponse

    transaction_reference: TransactionReference


class SaferpayClient:
    """Sends requests to the Saferpay JSON API.

    Args:
        config: Credentials and environment
        timeout: Request timeout in seconds
        transport: Optional httpx transport, e.g. for testing
    """

    def __init__(
        self,
        config: RequestConfig,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timeout = timeout
        self.transport = transport

    async def send(self, request: Request) -> Any:
        url = f"{self.config.base_url}{request.api_path}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
        }

        try:
            async with httpx.AsyncClient(
                auth=(self.config.api_key, self.config.api_secret),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(url, json=request.to_payload(), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Saferpay %s not reachable: %s", request.api_path, exc)
            raise SaferpayError(self._communication_error(exc)) from exc

        if response.status_code >= 400:
            error = self._parse_error(response)
            logger.warning(
                "Saferpay %s failed with HTTP %s: %s",
                request.api_path, response.status_code, error.error_name,
            )
            raise SaferpayError(error, response.status_code)

        try:
            return request.response_class.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Saferpay %s returned an invalid response: %s", request.api_path, exc)
            raise SaferpayError(self._communication_error(exc), response.status_code) from exc

    @staticmethod
    def _communication_error(exc: Exception) -> ErrorResponse:
        return ErrorResponse(
            error_name="COMMUNICATION_ERROR",
            error_message=str(exc) or type(exc).__name__,
        )

    @staticmethod
    def _parse_error(response: httpx.Response) -> ErrorResponse:
        try:
            return ErrorResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            return ErrorResponse(
                error_name="UNKNOWN_ERROR",
                error_message=response.text or f"HTTP {response.status_code}",
            )
