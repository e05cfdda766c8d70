from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any

from pydantic import AfterValidator, ConfigDict, Field, field_validator, model_validator

from app.schemas.common import CamelModel, Envelope, PaginationMeta, as_utc


def _not_in_past(value: datetime | None) -> datetime | None:
    value = as_utc(value)
    if value is not None and value < datetime.now(timezone.utc) - timedelta(days=1):
        raise ValueError("must not be more than one day in the past")
    return value


ShipDate = Annotated[datetime, AfterValidator(_not_in_past)]


class OrderLineRequestIn(CamelModel):
    item_name: str | None = None
    article_number: str | None = None
    item_net_sale: float | None = None
    item_vat: float | None = Field(default=None, alias="itemVAT")
    quantity: float | None = Field(default=None, gt=0)
    type: int | None = None
    discount: float | None = None
    net_purchase_price: float | None = None


class AddressRequestIn(CamelModel):
    salutation: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    company: str | None = None
    company_addition: str | None = None
    street: str | None = None
    address_addition: str | None = None
    zip_code: str | None = None
    place: str | None = None
    phone: str | None = None
    state: str | None = None
    country: str | None = None
    iso: str | None = None
    telephone: str | None = None
    mobile: str | None = None
    fax: str | None = None
    email: str | None = None
    cost_center: str | None = None


class ShippingAddressRequestIn(AddressRequestIn):
    start_date: date | None = None


class PaymentInformationRequestIn(CamelModel):
    bank_name: str | None = None
    blz: str | None = None
    accountno: str | None = None
    cardno: str | None = None
    validity: date | None = None
    cvv: str | None = None
    card_type: str | None = None
    owner: str | None = None
    iban: str | None = None
    bic: str | None = None


class PendingOrderIn(CamelModel):
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    order_no: str = "0"
    shipping_id: int | None = None
    shipped: ShipDate | None = None
    deliverydate: datetime | None = None
    note: str | None = None
    description: str | None = None
    cost_center: str | None = None
    order_line_requests: list[OrderLineRequestIn] = Field(min_length=1)
    shipping_address_requests: list[ShippingAddressRequestIn] = Field(min_length=1)
    billing_address_requests: list[AddressRequestIn] | None = None
    payment_information_requests: list[PaymentInformationRequestIn] | None = None

    @field_validator("deliverydate")
    @classmethod
    def normalize_deliverydate(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_delivery_after_shipping(self) -> "PendingOrderIn":
        if self.shipped and self.deliverydate and self.deliverydate < self.shipped:
            raise ValueError("deliverydate must not be before shipped")
        return self


class PendingOrdersCreateIn(CamelModel):
    pending_orders: list[PendingOrderIn] = Field(min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "pendingOrders": [
                    {
                        "currency": "EUR",
                        "orderNo": "0",
                        "shipped": "2030-01-10T09:00:00Z",
                        "deliverydate": "2030-01-10T09:00:00Z",
                        "costCenter": "Marketing",
                        "orderLineRequests": [
                            {"itemName": "Gift Box", "articleNumber": "1498", "itemNetSale": 0, "itemVAT": 0, "quantity": 1}
                        ],
                        "shippingAddressRequests": [
                            {
                                "firstName": "Ada",
                                "lastName": "Lovelace",
                                "street": "Main Street 1",
                                "zipCode": "10115",
                                "place": "Berlin",
                                "country": "DE",
                                "email": "ada@example.com",
                            }
                        ],
                    }
                ]
            }
        }
    )


class PendingOrderUpdateFields(CamelModel):
    shipped: ShipDate | None = None
    deliverydate: datetime | None = None
    note: str | None = None
    description: str | None = None
    cost_center: str | None = None
    shipping_id: int | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    shipping_address_requests: list[ShippingAddressRequestIn] | None = Field(default=None, min_length=1)
    billing_address_requests: list[AddressRequestIn] | None = None

    @field_validator("deliverydate")
    @classmethod
    def normalize_deliverydate(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_delivery_after_shipping(self) -> "PendingOrderUpdateFields":
        if self.shipped and self.deliverydate and self.deliverydate < self.shipped:
            raise ValueError("deliverydate must not be before shipped")
        return self


class PendingOrderUpdateIn(CamelModel):
    pending_order: PendingOrderUpdateFields


class PostedOrderIn(CamelModel):
    order_id: str = Field(min_length=17, pattern=r"^\d+$")
    shipped: ShipDate


class DuplicateOrdersIn(CamelModel):
    posted_orders: list[PostedOrderIn] = Field(min_length=1)


class PendingOrderOut(CamelModel):
    id: str
    user_id: str
    customer_id: int
    posted_order_id: str
    cost_center: str | None = None
    currency: str
    order_no: str
    shipping_id: int | None = None
    shipped: datetime | None = None
    deliverydate: datetime | None = None
    note: str | None = None
    description: str | None = None
    payment_type: int
    payment_target: int
    discount: float
    order_status: int
    inetorderno: int
    platform: int
    language: int
    is_posted: bool
    is_queued: bool
    is_greeting_card_sent: bool
    is_invoice_generated: bool
    is_order_confirmation_generated: bool
    is_packing_slip_generated: bool
    jtl_id: int | None = None
    jtl_number: str | None = None
    order_line_requests: list[dict[str, Any]]
    shipping_address_requests: list[dict[str, Any]]
    billing_address_requests: list[dict[str, Any]] | None = None
    created: datetime
    created_by: str
    updated_by: str
    created_by_full_name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("shipped", "deliverydate", "created", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class PendingOrderEnvelope(Envelope):
    pending_order: PendingOrderOut


class PendingOrderListEnvelope(Envelope):
    pending_orders: list[PendingOrderOut]
    meta: PaginationMeta | None = None
