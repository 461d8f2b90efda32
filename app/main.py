import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from decimal import Decimal
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config import Settings, get_settings
from adapters import (
    ConfigurationError,
    OrderNotFoundError,
    PaymentAdapter,
    PreconditionError,
    ServiceError,
)
from adapters.saferpay import CONFIG_BE, SaferpayAdapter
from adapters.saferpay.client import SaferpayClient
from models import Base, OrderRecord, PriceValue
from repository import SqlOrderRepository

# Configure logging
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger("saferpay-payment-service")


class EndpointFilter(logging.Filter):
    """Filter out noisy health check access logs."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging filter
        return "GET /health" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(EndpointFilter())


class AddressIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address1: str = ""
    address2: str = ""
    address3: str = ""
    postal: str = ""
    city: str = ""
    country_id: str = ""
    state: str = ""
    telephone: str = ""
    email: str = ""


class OrderCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: str = Field(min_length=3, max_length=3)
    costs: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    billing_address: AddressIn
    delivery_address: Optional[AddressIn] = None


def order_response(order: OrderRecord) -> dict:
    return {"order_id": order.id, "payment_status": order.payment_status.value}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    engine: AsyncEngine = create_async_engine(settings.database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.sessionmaker = async_sessionmaker(engine, expire_on_commit=False)
    logger.info("Order database ready at %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title="Saferpay Payment Service",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if isinstance(exc, OrderNotFoundError):
        status_code = 404
    elif isinstance(exc, PreconditionError):
        status_code = 409
    elif isinstance(exc, ConfigurationError):
        status_code = 500
    else:
        status_code = 502

    logger.warning("Payment operation failed (%s): %s", status_code, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "order_id": exc.order_id},
    )


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.sessionmaker() as session:
        yield session


def get_saferpay_client() -> Optional[SaferpayClient]:
    """Client used by the provider; None builds one from the settings."""
    return None


def get_provider(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    client: Optional[SaferpayClient] = Depends(get_saferpay_client),
) -> PaymentAdapter:
    return SaferpayAdapter(
        settings.service_config(),
        SqlOrderRepository(session),
        settings.platform_config(),
        client=client,
        timeout=settings.SAFERPAY_TIMEOUT,
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "saferpay-payment-service"}


@app.get("/payment/saferpay/config")
async def config_check(settings: Settings = Depends(get_settings)):
    """Backend configuration options and their validation errors."""
    errors = PaymentAdapter.check_config(CONFIG_BE, settings.service_config())
    return [
        {**asdict(definition), "error": errors[definition.code]}
        for definition in CONFIG_BE
    ]


@app.post("/orders", status_code=201)
async def create_order(payload: OrderCreate, session: AsyncSession = Depends(get_session)):
    repository = SqlOrderRepository(session)
    order = await repository.create_order(
        PriceValue(
            value=payload.amount,
            costs=payload.costs,
            currency_id=payload.currency.upper(),
        ),
        payload.billing_address.model_dump(),
        payload.delivery_address.model_dump() if payload.delivery_address else None,
    )
    return order_response(order)


@app.get("/orders/{order_id}")
async def get_order(order_id: str, provider: PaymentAdapter = Depends(get_provider)):
    return order_response(await provider.get_order(order_id))


@app.post("/orders/{order_id}/payment")
async def process_payment(order_id: str, provider: PaymentAdapter = Depends(get_provider)):
    """Start the payment and return where the payer has to be redirected to."""
    order = await provider.get_order(order_id)
    form = await provider.process(order)
    return asdict(form)


@app.post("/orders/{order_id}/payment/{action}")
async def payment_action(
    order_id: str, action: str, provider: PaymentAdapter = Depends(get_provider)
):
    order = await provider.get_order(order_id)

    if action == "query":
        await provider.query(order)
    elif action == "capture":
        await provider.capture(order)
    elif action == "cancel":
        await provider.cancel(order)
    elif action == "refund":
        await provider.refund(order)
    else:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")

    logger.info("Payment %s for order %s: %s", action, order_id, order.payment_status.value)
    return order_response(order)


@app.get("/payment/saferpay/update")
async def saferpay_update_push(request: Request, provider: PaymentAdapter = Depends(get_provider)):
    """Notification URL called by Saferpay when a payment changed."""
    return await provider.update_push(request.query_params)


@app.get("/payment/saferpay/return")
async def saferpay_update_sync(request: Request, provider: PaymentAdapter = Depends(get_provider)):
    """Return page the payer is sent to by the Saferpay payment page."""
    order_id = request.query_params.get("orderid")
    if not order_id:
        raise HTTPException(status_code=400, detail='Parameter "orderid" is missing')

    order = await provider.get_order(order_id)
    order = await provider.update_sync(request.query_params, order)
    return order_response(order)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=get_settings().HTTP_PORT,
        reload=True,
        log_level="info"
    )
