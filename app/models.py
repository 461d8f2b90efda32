from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, composite, mapped_column, relationship

from adapters.base import AddressType, PaymentStatus, ServiceType
from adapters.exceptions import PreconditionError


class Base(DeclarativeBase):
    pass


@dataclass
class PriceValue:
    value: Decimal
    costs: Decimal = Decimal("0.00")
    tax_value: Decimal = Decimal("0.00")
    tax_flag: bool = True
    currency_id: str = "EUR"


class OrderBaseRecord(Base):
    __tablename__ = "order_bases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    costs: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_flag: Mapped[bool] = mapped_column(Boolean, nullable=False)
    currency_id: Mapped[str] = mapped_column(String(3), nullable=False)
    price: Mapped[PriceValue] = composite(
        "value", "costs", "tax_value", "tax_flag", "currency_id"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )

    addresses: Mapped[List["OrderAddressRecord"]] = relationship(
        back_populates="order_base", lazy="selectin", cascade="all, delete-orphan"
    )
    services: Mapped[List["OrderServiceRecord"]] = relationship(
        back_populates="order_base", lazy="selectin", cascade="all, delete-orphan"
    )

    def get_address(self, address_type: AddressType) -> Optional["OrderAddressRecord"]:
        for address in self.addresses:
            if address.type == address_type.value:
                return address
        return None

    def get_service(self, service_type: ServiceType, code: str) -> "OrderServiceRecord":
        for service in self.services:
            if service.type == service_type.value and service.code == code:
                return service
        raise PreconditionError(
            f'Service "{code}" of type "{service_type.value}" not available '
            f'in order base "{self.id}"'
        )


class OrderRecord(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    base_id: Mapped[str] = mapped_column(ForeignKey("order_bases.id"), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=PaymentStatus.UNFINISHED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=datetime.utcnow, nullable=True
    )


class OrderAddressRecord(Base):
    __tablename__ = "order_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_id: Mapped[str] = mapped_column(ForeignKey("order_bases.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    first_name: Mapped[str] = mapped_column(String(64), default="")
    last_name: Mapped[str] = mapped_column(String(64), default="")
    company: Mapped[str] = mapped_column(String(100), default="")
    address1: Mapped[str] = mapped_column(String(200), default="")
    address2: Mapped[str] = mapped_column(String(200), default="")
    address3: Mapped[str] = mapped_column(String(200), default="")
    postal: Mapped[str] = mapped_column(String(16), default="")
    city: Mapped[str] = mapped_column(String(200), default="")
    country_id: Mapped[str] = mapped_column(String(2), default="")
    state: Mapped[str] = mapped_column(String(200), default="")
    telephone: Mapped[str] = mapped_column(String(32), default="")
    email: Mapped[str] = mapped_column(String(255), default="")

    order_base: Mapped[OrderBaseRecord] = relationship(back_populates="addresses")


class OrderServiceRecord(Base):
    __tablename__ = "order_services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_id: Mapped[str] = mapped_column(ForeignKey("order_bases.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)

    order_base: Mapped[OrderBaseRecord] = relationship(back_populates="services")
    attributes: Mapped[List["OrderServiceAttributeRecord"]] = relationship(
        back_populates="service", lazy="selectin", cascade="all, delete-orphan"
    )

    def get(self, key: str, namespace: str) -> Optional[str]:
        for attribute in self.attributes:
            if attribute.type == namespace and attribute.code == key:
                return attribute.value
        return None

    def set(self, key: str, value: Any, namespace: str) -> None:
        value = None if value is None else str(value)

        for attribute in self.attributes:
            if attribute.type == namespace and attribute.code == key:
                attribute.value = value
                return

        self.attributes.append(
            OrderServiceAttributeRecord(type=namespace, code=key, value=value)
        )


class OrderServiceAttributeRecord(Base):
    __tablename__ = "order_service_attributes"
    __table_args__ = (UniqueConstraint("service_id", "type", "code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("order_services.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    service: Mapped[OrderServiceRecord] = relationship(back_populates="attributes")
