"""FastAPI routes for carts, checkout, customer orders and order administration.

Shoppers identify themselves with the ``X-Customer-Id`` header and admins
with ``X-Admin-Id``; authentication happens in front of this service. Every
mutating route returns the authoritative state after the change.
"""

import json

from fastapi import APIRouter, Header

from commerce.api.schemas import (
    AddToCartRequest,
    ApplyOfferRequest,
    CancelOrderRequest,
    CartResponse,
    CheckoutRequest,
    MergeGuestCartRequest,
    MergeGuestCartResponse,
    OrderResponse,
    OrderSummaryResponse,
    ReturnStockRequest,
    ReturnStockResponse,
    SetCartQuantityRequest,
    UpdateOrderStatusRequest,
    UpdatePaymentStatusRequest,
)
from commerce.cart.lines import (
    AddToCart,
    ApplyCartOffer,
    ClearCart,
    MergeGuestCart,
    RemoveCartOffer,
    RemoveFromCart,
    SetCartQuantity,
)
from commerce.cart.quote import quote_for_customer
from commerce.exceptions import NotFound
from commerce.order.cancellation import CancelOrder
from commerce.order.checkout import PlaceOrder
from commerce.order.order import Order
from commerce.order.payment import UpdatePaymentStatus
from commerce.order.returns import ReturnStock
from commerce.order.status import UpdateOrderStatus, lock_keys_for_order
from commerce.projections.order_summary import all_orders, orders_for_customer
from commerce.shared.repository import fetch
from commerce.utils.locks import cart_key, dispatch


def _cart(customer_id) -> CartResponse:
    return CartResponse(**quote_for_customer(customer_id).to_dict())


def order_payload(order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        address_id=str(order.address_id),
        status=order.status,
        payment_mode=order.payment_mode,
        payment_status=order.payment_status,
        revision=order.revision,
        actual_price=order.pricing.actual_price,
        discount_price=order.pricing.discount_price,
        shipping_price=order.pricing.shipping_price,
        payable_price=order.pricing.payable_price,
        currency=order.pricing.currency,
        offer_id=str(order.offer_id) if order.offer_id else None,
        cancel_reason=order.cancel_reason,
        cancelled_by=order.cancelled_by,
        placed_at=order.placed_at,
        packed_at=order.packed_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
        shipping_address=(
            {
                "address_id": str(address.address_id) if address.address_id else None,
                "recipient": address.recipient,
                "phone": address.phone,
                "street": address.street,
                "city": address.city,
                "state": address.state,
                "country": address.country,
            }
            if address
            else None
        ),
        lines=[
            {
                "variant_id": str(line.variant_id),
                "sku": line.sku,
                "title": line.title,
                "quantity": line.quantity,
                "actual_price": line.actual_price,
                "offer_price": line.offer_price,
                "line_discount": line.line_discount,
                "offer_id": str(line.offer_id) if line.offer_id else None,
                "returned_quantity": line.returned_quantity or 0,
            }
            for line in order.items
        ],
    )


def _summary_payload(summary) -> OrderSummaryResponse:
    return OrderSummaryResponse(
        order_id=str(summary.order_id),
        customer_id=str(summary.customer_id),
        status=summary.status,
        payment_status=summary.payment_status,
        item_count=summary.item_count or 0,
        unit_count=summary.unit_count or 0,
        returned_units=summary.returned_units or 0,
        payable_price=summary.payable_price,
        currency=summary.currency,
        placed_at=summary.placed_at,
    )


def _own_order(order_id, customer_id):
    order = fetch(Order, order_id)
    if str(order.customer_id) != str(customer_id):
        raise NotFound("Order", order_id)
    return order


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(x_customer_id: str = Header()) -> CartResponse:
    return _cart(x_customer_id)


@cart_router.post("", response_model=CartResponse)
async def add_to_cart(body: AddToCartRequest, x_customer_id: str = Header()) -> CartResponse:
    command = AddToCart(customer_id=x_customer_id, variant_id=body.variant_id, quantity=body.quantity)
    dispatch(command, cart_key(x_customer_id))
    return _cart(x_customer_id)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(x_customer_id: str = Header()) -> CartResponse:
    dispatch(ClearCart(customer_id=x_customer_id), cart_key(x_customer_id))
    return _cart(x_customer_id)


@cart_router.post("/merge", response_model=MergeGuestCartResponse)
async def merge_guest_cart(body: MergeGuestCartRequest, x_customer_id: str = Header()) -> MergeGuestCartResponse:
    command = MergeGuestCart(
        customer_id=x_customer_id,
        lines=json.dumps([line.model_dump() for line in body.lines]),
    )
    skipped = dispatch(command, cart_key(x_customer_id))
    return MergeGuestCartResponse(cart=_cart(x_customer_id), skipped_variant_ids=skipped or [])


# Declared before the /{variant_id} routes so "offer" is not taken for a variant id
@cart_router.put("/offer", response_model=CartResponse)
async def apply_offer(body: ApplyOfferRequest, x_customer_id: str = Header()) -> CartResponse:
    dispatch(ApplyCartOffer(customer_id=x_customer_id, offer_id=body.offer_id), cart_key(x_customer_id))
    return _cart(x_customer_id)


@cart_router.delete("/offer", response_model=CartResponse)
async def remove_offer(x_customer_id: str = Header()) -> CartResponse:
    dispatch(RemoveCartOffer(customer_id=x_customer_id), cart_key(x_customer_id))
    return _cart(x_customer_id)


@cart_router.put("/{variant_id}", response_model=CartResponse)
async def set_cart_quantity(
    variant_id: str, body: SetCartQuantityRequest, x_customer_id: str = Header()
) -> CartResponse:
    command = SetCartQuantity(customer_id=x_customer_id, variant_id=variant_id, quantity=body.quantity)
    dispatch(command, cart_key(x_customer_id))
    return _cart(x_customer_id)


@cart_router.delete("/{variant_id}", response_model=CartResponse)
async def remove_from_cart(variant_id: str, x_customer_id: str = Header()) -> CartResponse:
    dispatch(RemoveFromCart(customer_id=x_customer_id, variant_id=variant_id), cart_key(x_customer_id))
    return _cart(x_customer_id)


# ---------------------------------------------------------------------------
# Customer Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(tags=["orders"])


@order_router.post("/checkout", status_code=201, response_model=OrderResponse)
async def checkout(body: CheckoutRequest, x_customer_id: str = Header()) -> OrderResponse:
    command = PlaceOrder(customer_id=x_customer_id, address_id=body.address_id)
    order_id = dispatch(command, cart_key(x_customer_id))
    return order_payload(fetch(Order, order_id))


@order_router.get("/orders", response_model=list[OrderSummaryResponse])
async def list_my_orders(x_customer_id: str = Header()) -> list[OrderSummaryResponse]:
    return [_summary_payload(summary) for summary in orders_for_customer(x_customer_id)]


@order_router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(order_id: str, x_customer_id: str = Header()) -> OrderResponse:
    return order_payload(_own_order(order_id, x_customer_id))


@order_router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(order_id: str, body: CancelOrderRequest, x_customer_id: str = Header()) -> OrderResponse:
    command = CancelOrder(order_id=order_id, customer_id=x_customer_id, reason=body.reason)
    dispatch(command, *lock_keys_for_order(order_id))
    return order_payload(fetch(Order, order_id))


# ---------------------------------------------------------------------------
# Admin Order Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=list[OrderSummaryResponse])
async def list_orders(status: str | None = None) -> list[OrderSummaryResponse]:
    return [_summary_payload(summary) for summary in all_orders(status=status)]


@admin_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return order_payload(fetch(Order, order_id))


@admin_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, x_admin_id: str = Header(default="admin")
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        reason=body.reason,
        acted_by=x_admin_id,
        expected_revision=body.expected_revision,
    )
    dispatch(command, *lock_keys_for_order(order_id))
    return order_payload(fetch(Order, order_id))


@admin_router.put("/{order_id}/payment", response_model=OrderResponse)
async def update_payment_status(
    order_id: str, body: UpdatePaymentStatusRequest, x_admin_id: str = Header(default="admin")
) -> OrderResponse:
    command = UpdatePaymentStatus(
        order_id=order_id,
        payment_status=body.payment_status,
        reason=body.reason,
        acted_by=x_admin_id,
        expected_revision=body.expected_revision,
    )
    dispatch(command, *lock_keys_for_order(order_id))
    return order_payload(fetch(Order, order_id))


@admin_router.post("/{order_id}/return-stock", response_model=ReturnStockResponse)
async def return_stock(
    order_id: str, body: ReturnStockRequest, x_admin_id: str = Header(default="admin")
) -> ReturnStockResponse:
    command = ReturnStock(
        order_id=order_id,
        lines=json.dumps([line.model_dump() for line in body.lines]),
        request_id=body.request_id,
        acted_by=x_admin_id,
    )
    summary = dispatch(command, *lock_keys_for_order(order_id))
    return ReturnStockResponse(**summary)
