"""Pydantic request/response schemas for the commerce API.

These are external contracts, separate from the internal Protean commands.
Money always crosses the wire as a two-place decimal string.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1)

    model_config = {"json_schema_extra": {"examples": [{"variant_id": "var-001", "quantity": 2}]}}


class SetCartQuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


class ApplyOfferRequest(BaseModel):
    offer_id: str


class GuestCartLineSchema(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1)


class MergeGuestCartRequest(BaseModel):
    lines: list[GuestCartLineSchema]


# ---------------------------------------------------------------------------
# Cart Response Schemas
# ---------------------------------------------------------------------------
class CartLineResponse(BaseModel):
    variant_id: str
    sku: str
    title: str | None = None
    quantity: int
    base_price: str
    unit_price: str
    unit_discount: str
    line_discount: str
    line_total: str


class CartResponse(BaseModel):
    customer_id: str
    offer_id: str | None = None
    applied_offer_id: str | None = None
    lines: list[CartLineResponse]
    subtotal: str
    discount: str
    shipping: str
    payable: str
    currency: str


class MergeGuestCartResponse(BaseModel):
    cart: CartResponse
    skipped_variant_ids: list[str]


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    address_id: str


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: str
    reason: str | None = Field(default=None, max_length=500)
    expected_revision: int | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"status": "Packed"},
                {"status": "Cancelled", "reason": "Customer unreachable"},
            ]
        }
    }


class UpdatePaymentStatusRequest(BaseModel):
    payment_status: str
    reason: str | None = Field(default=None, max_length=500)
    expected_revision: int | None = None


class ReturnLineSchema(BaseModel):
    variant_id: str
    quantity: int


class ReturnStockRequest(BaseModel):
    lines: list[ReturnLineSchema] = Field(min_length=1)
    request_id: str | None = Field(default=None, max_length=100)


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class ShippingAddressResponse(BaseModel):
    address_id: str | None = None
    recipient: str
    phone: str | None = None
    street: str
    city: str
    state: str | None = None
    country: str


class OrderLineResponse(BaseModel):
    variant_id: str
    sku: str | None = None
    title: str | None = None
    quantity: int
    actual_price: str
    offer_price: str | None = None
    line_discount: str
    offer_id: str | None = None
    returned_quantity: int


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    address_id: str
    status: str
    payment_mode: str
    payment_status: str
    revision: int
    actual_price: str
    discount_price: str
    shipping_price: str
    payable_price: str
    currency: str
    offer_id: str | None = None
    cancel_reason: str | None = None
    cancelled_by: str | None = None
    placed_at: datetime | None = None
    packed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    shipping_address: ShippingAddressResponse | None = None
    lines: list[OrderLineResponse]


class OrderSummaryResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    payment_status: str | None = None
    item_count: int
    unit_count: int
    returned_units: int
    payable_price: str | None = None
    currency: str | None = None
    placed_at: datetime | None = None


class ReturnLineResponse(BaseModel):
    variant_id: str
    ordered_quantity: int
    returned_quantity: int
    remaining_quantity: int
    returned_now: int
    stock_quantity: int | None = None


class ReturnStockResponse(BaseModel):
    order_id: str
    request_id: str
    replayed: bool
    status: str
    lines: list[ReturnLineResponse]
