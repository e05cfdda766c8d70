from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.db.base import Base

SEARCHABLE_ADDRESS_KEYS = ("firstName", "lastName", "email", "place", "street", "zipCode", "country", "company")


def address_search_text(addresses: list[dict[str, Any]] | None) -> str:
    """Lower-cased address values, one per line, matched by the order search."""
    values = [
        str(address[key]).strip().lower()
        for address in addresses or []
        for key in SEARCHABLE_ADDRESS_KEYS
        if address.get(key) not in (None, "")
    ]
    return "\n".join(values)


class PendingOrder(Base):
    __tablename__ = "pending_orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    campaign_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("campaigns.id"), nullable=True, index=True)
    company_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("companies.id"), nullable=True, index=True)
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    posted_order_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    cost_center: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR", server_default="EUR")
    order_no: Mapped[str] = mapped_column(String(64), nullable=False, default="0", server_default="0")
    shipping_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    shipped: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deliverydate: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    payment_type: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    payment_target: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), server_default="0")
    order_status: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    inetorderno: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    platform: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    language: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    is_posted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_queued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_greeting_card_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_invoice_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    is_order_confirmation_generated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    is_packing_slip_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    jtl_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    jtl_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    order_line_requests: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    shipping_address_requests: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    billing_address_requests: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    payment_information_requests: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    search_text: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_pending_orders_company_created_at", "company_id", "created_at"),
        Index("ix_pending_orders_user_created_at", "user_id", "created_at"),
        Index("ix_pending_orders_lifecycle", "is_posted", "is_queued", "order_status"),
    )

    @validates("shipping_address_requests")
    def _index_shipping_addresses(self, _key: str, addresses: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self.search_text = address_search_text(addresses)
        return addresses

    @property
    def is_catalogue_order(self) -> bool:
        return self.campaign_id is None

    @property
    def is_posted_or_queued(self) -> bool:
        return bool(self.is_posted or self.is_queued)
