"""FastAPI routes for the Ordering domain: carts, orders, payments and shipping.

Handlers that take an aggregate lock or call a provider are plain functions,
so FastAPI runs them in its threadpool instead of on the event loop.
"""

import json

from fastapi import APIRouter, Body, HTTPException
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddCartItemRequest,
    ApplyDiscountRequest,
    BulkShipmentRequest,
    CancelOrderRequest,
    CancelShipmentRequest,
    CheckoutRequest,
    InitiatePaymentRequest,
    OrderIdResponse,
    PaymentInitiatedResponse,
    ReconciliationResponse,
    RefundRequest,
    RemoveCartItemRequest,
    ReturnOrderRequest,
    SetShippingAddressRequest,
    SetShippingRequest,
    ShipOrderRequest,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateStatusRequest,
    VerifyPaymentRequest,
)
from ordering.carrier.port import ShipmentRequest
from ordering.cart.discounts import ApplyCartDiscount, RemoveCartDiscount
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItemQuantity
from ordering.cart.management import ClearCart, load_or_create_cart
from ordering.cart.shipping import SetCartShipping, SetCartShippingAddress
from ordering.catalogue import get_catalogue
from ordering.errors import AuthenticationFailed
from ordering.fulfillment import shipments
from ordering.locking import cart_locks, order_locks, process_serialized
from ordering.order.cancellation import cancel_order
from ordering.order.checkout import place_order
from ordering.order.order import Order
from ordering.order.returns import ReturnOrder
from ordering.order.status import UpdateOrderStatus
from ordering.payment.reconciliation import (
    AUTHENTICATION_FAILED_MESSAGE,
    PAYMENT_STATUS_MAPPING,
    get_reconciler,
)


def _variant_fields(variant) -> dict:
    if variant is None:
        return {}
    return {"variant_name": variant.name, "variant_option": variant.option}


def _cart_view(cart) -> dict:
    return {
        "customer_id": str(cart.customer_id),
        "items": [
            {
                "product_id": str(item.product_id),
                "variant": item.variant.to_dict() if item.variant else None,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total": item.total,
            }
            for item in cart.items
        ],
        "discount_code": cart.discount_code,
        "shipping_method": cart.shipping_method,
        "shipping_address": cart.shipping_address.to_dict() if cart.shipping_address else None,
        "summary": cart.summary(),
    }


def _order_view(order) -> dict:
    return {
        "order_id": str(order.id),
        "customer_id": str(order.customer_id),
        **order.summary(),
        "payment_method": order.payment.method,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "variant": item.variant.to_dict() if item.variant else None,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total": item.total,
            }
            for item in order.items
        ],
        "tracking": order.tracking.to_dict() if order.tracking else None,
        "status_history": [
            {"state": change.state, "note": change.note, "actor": change.actor} for change in order.history
        ],
    }


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}")
async def get_cart(customer_id: str) -> dict:
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.post("/{customer_id}/items")
def add_cart_item(customer_id: str, body: AddCartItemRequest) -> dict:
    """Add a product at its current catalogue price."""
    product = get_catalogue().find_product(body.product_id)
    if not product.is_active:
        raise HTTPException(status_code=400, detail=f"{product.name} is not available")
    if product.stock_quantity < body.quantity:
        raise HTTPException(status_code=400, detail=f"Only {product.stock_quantity} of {product.name} in stock")

    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
        unit_price=product.price,
        **_variant_fields(body.variant),
    )
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.put("/{customer_id}/items")
def update_cart_item(customer_id: str, body: UpdateCartItemRequest) -> dict:
    command = UpdateCartItemQuantity(
        customer_id=customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
        **_variant_fields(body.variant),
    )
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.delete("/{customer_id}/items")
def remove_cart_item(customer_id: str, body: RemoveCartItemRequest) -> dict:
    command = RemoveFromCart(
        customer_id=customer_id,
        product_id=body.product_id,
        **_variant_fields(body.variant),
    )
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.delete("/{customer_id}")
def clear_cart(customer_id: str) -> dict:
    process_serialized(cart_locks, customer_id, ClearCart(customer_id=customer_id))
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.post("/{customer_id}/discount")
def apply_discount(customer_id: str, body: ApplyDiscountRequest) -> dict:
    command = ApplyCartDiscount(
        customer_id=customer_id,
        code=body.code,
        amount=body.amount,
        discount_type=body.discount_type,
    )
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.delete("/{customer_id}/discount")
def remove_discount(customer_id: str) -> dict:
    process_serialized(cart_locks, customer_id, RemoveCartDiscount(customer_id=customer_id))
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.put("/{customer_id}/shipping")
def set_shipping(customer_id: str, body: SetShippingRequest) -> dict:
    command = SetCartShipping(customer_id=customer_id, method=body.method, cost=body.cost)
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


@cart_router.put("/{customer_id}/address")
def set_shipping_address(customer_id: str, body: SetShippingAddressRequest) -> dict:
    command = SetCartShippingAddress(customer_id=customer_id, address=json.dumps(body.address.model_dump()))
    process_serialized(cart_locks, customer_id, command)
    return _cart_view(load_or_create_cart(customer_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
def checkout(body: CheckoutRequest) -> OrderIdResponse:
    order_id = place_order(
        customer_id=body.customer_id,
        contact=body.contact.model_dump(),
        payment_method=body.payment_method,
        shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        customer_notes=body.customer_notes,
    )
    return OrderIdResponse(order_id=order_id)


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return _order_view(current_domain.repository_for(Order).get(order_id))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
def update_order_status(order_id: str, body: UpdateStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(order_id=order_id, status=body.status, note=body.note, actor=body.actor)
    status = process_serialized(order_locks, order_id, command)
    return StatusResponse(status=status)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
def cancel(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    cancel_order(order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    return StatusResponse(status="cancelled")


@order_router.put("/{order_id}/return", response_model=StatusResponse)
def return_order(order_id: str, body: ReturnOrderRequest) -> StatusResponse:
    command = ReturnOrder(order_id=order_id, reason=body.reason, actor=body.actor)
    process_serialized(order_locks, order_id, command)
    return StatusResponse(status="returned")


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


def _reconciliation_response(outcome) -> ReconciliationResponse:
    return ReconciliationResponse(
        outcome=outcome.outcome.value,
        order_id=outcome.order_id,
        payment_status=outcome.payment_status,
        order_status=outcome.order_status,
    )


@payment_router.post("/initiate", response_model=PaymentInitiatedResponse)
def initiate_payment(body: InitiatePaymentRequest) -> PaymentInitiatedResponse:
    result = get_reconciler().initiate_payment(body.order_id, redirect_url=body.redirect_url)
    return PaymentInitiatedResponse(
        order_id=body.order_id,
        payment_url=result.payment_url,
        transaction_id=result.transaction_id,
    )


@payment_router.post("/callback", response_model=ReconciliationResponse)
def payment_callback(payload: dict = Body(...)) -> ReconciliationResponse:
    """Gateway server-to-server callback. Safe to deliver more than once."""
    try:
        outcome = get_reconciler().handle_webhook(payload)
    except AuthenticationFailed:
        raise HTTPException(status_code=400, detail=AUTHENTICATION_FAILED_MESSAGE) from None
    return _reconciliation_response(outcome)


@payment_router.post("/verify", response_model=ReconciliationResponse)
def verify_payment(body: VerifyPaymentRequest) -> ReconciliationResponse:
    return _reconciliation_response(get_reconciler().verify_payment(body.order_id))


@payment_router.post("/refund")
def refund(body: RefundRequest) -> dict:
    result = get_reconciler().refund(body.order_id, amount=body.amount, reason=body.reason)
    return {"order_id": body.order_id, "refund_id": result.refund_id, "status": result.status}


@payment_router.get("/status-mapping")
async def status_mapping() -> dict:
    return {code: state.value for code, state in PAYMENT_STATUS_MAPPING.items()}


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.post("/orders/{order_id}")
def ship_order(order_id: str, body: ShipOrderRequest | None = None) -> dict:
    weight = body.weight if body else 0.5
    result = shipments.create_shipment_for_order(order_id, weight=weight)
    return {"order_id": order_id, "waybill": result.waybill, "tracking_url": result.tracking_url}


@shipping_router.get("/track/{waybill}")
def track(waybill: str) -> dict:
    info = shipments.track_shipment(waybill)
    return {
        "waybill": info.waybill,
        "status": info.status,
        "current_location": info.current_location,
        "estimated_delivery": info.estimated_delivery,
        "delivered_at": info.delivered_at,
        "timeline": info.timeline,
    }


@shipping_router.get("/pincode/{pincode}")
def pincode(pincode: str) -> dict:
    result = shipments.check_serviceability(pincode)
    return {
        "pincode": result.pincode,
        "serviceable": result.serviceable,
        "city": result.city,
        "state": result.state,
        "delivery_days": result.delivery_days,
        "cash_on_delivery": result.cash_on_delivery,
    }


@shipping_router.post("/bulk-create")
def bulk_create(body: BulkShipmentRequest) -> dict:
    requests = [ShipmentRequest.from_dict(shipment.model_dump()) for shipment in body.shipments]
    return shipments.create_shipments_in_bulk(requests).to_dict()


@shipping_router.post("/cancel", response_model=StatusResponse)
def cancel_shipment(body: CancelShipmentRequest) -> StatusResponse:
    shipments.cancel_shipment(body.waybill, reason=body.reason)
    return StatusResponse(status="cancelled")
