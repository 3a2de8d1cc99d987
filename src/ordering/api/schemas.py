"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), kept separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    label: str = "home"
    street: str
    city: str
    state: str | None = None
    pincode: str = Field(pattern=r"^[0-9]{6}$")
    country: str = "India"


class VariantSchema(BaseModel):
    name: str | None = None
    option: str | None = None


class ContactSchema(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = Field(default=None, pattern=r"^[0-9]{10}$")


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    variant: VariantSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "variant": {"name": "size", "option": "M"},
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    product_id: str
    quantity: int
    variant: VariantSchema | None = None


class RemoveCartItemRequest(BaseModel):
    product_id: str
    variant: VariantSchema | None = None


class ApplyDiscountRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    amount: float = Field(ge=0)
    discount_type: str = "fixed"


class SetShippingRequest(BaseModel):
    method: str = "standard"
    cost: float = Field(default=0.0, ge=0)


class SetShippingAddressRequest(BaseModel):
    address: AddressSchema


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer_id: str
    contact: ContactSchema
    payment_method: str
    shipping_address: AddressSchema | None = None
    customer_notes: str | None = Field(default=None, max_length=1000)


class UpdateStatusRequest(BaseModel):
    status: str
    note: str | None = None
    actor: str = "admin"


class CancelOrderRequest(BaseModel):
    reason: str = Field(default="Cancelled by customer", min_length=1, max_length=500)
    cancelled_by: str = "customer"


class ReturnOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)
    actor: str = "admin"


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class InitiatePaymentRequest(BaseModel):
    order_id: str
    redirect_url: str | None = None


class VerifyPaymentRequest(BaseModel):
    order_id: str


class RefundRequest(BaseModel):
    order_id: str
    amount: float = Field(gt=0)
    reason: str = "Customer requested refund"


# ---------------------------------------------------------------------------
# Shipping Request Schemas
# ---------------------------------------------------------------------------
class DimensionsSchema(BaseModel):
    length: float = Field(default=10.0, ge=1)
    width: float = Field(default=10.0, ge=1)
    height: float = Field(default=10.0, ge=1)


class ShipmentItemSchema(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    quantity: int = Field(ge=1)


class ShipmentSchema(BaseModel):
    order_number: str = Field(min_length=1)
    customer_name: str = Field(min_length=2, max_length=50)
    phone: str
    email: str
    address: AddressSchema
    items: list[ShipmentItemSchema] = Field(min_length=1)
    weight: float = Field(default=0.5, ge=0.1)
    dimensions: DimensionsSchema | None = None
    cod_amount: float = Field(default=0.0, ge=0)
    declared_value: float = Field(default=0.0, ge=0)


class ShipOrderRequest(BaseModel):
    weight: float = Field(default=0.5, ge=0.1)


class BulkShipmentRequest(BaseModel):
    shipments: list[ShipmentSchema] = Field(min_length=1, max_length=100)


class CancelShipmentRequest(BaseModel):
    waybill: str = Field(min_length=1)
    reason: str = Field(default="Customer requested cancellation", min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderIdResponse(BaseModel):
    order_id: str


class PaymentInitiatedResponse(BaseModel):
    order_id: str
    payment_url: str
    transaction_id: str


class ReconciliationResponse(BaseModel):
    outcome: str
    order_id: str
    payment_status: str
    order_status: str
