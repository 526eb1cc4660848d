"""Pydantic request/response schemas for the marketplace API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# --- Shared ---


class ShippingAddressSchema(BaseModel):
    full_name: str = Field(..., max_length=255)
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    province: str = Field(..., max_length=100)
    postal_code: str = Field(..., max_length=20)
    phone: str = Field(..., max_length=30)


class PaymentMethodSchema(BaseModel):
    type: str = Field(..., description="card, gcash, paymaya or cod")
    masked_details: str | None = Field(None, max_length=50)


class StatusResponse(BaseModel):
    status: str = "ok"


class LifecycleReceipt(BaseModel):
    """Outcome of a lifecycle command. ``synced=False`` means kept locally only."""

    order_id: str
    order_number: str | None = None
    status: str
    synced: bool
    mode: str
    error: str | None = None


# --- Cart ---


class AddToCartRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-rattan-bag",
                    "name": "Rattan Shoulder Bag",
                    "unit_price": 100.0,
                    "quantity": 2,
                    "seller_id": "seller-ilocos",
                    "seller_name": "Ilocos Weaves",
                    "variant": "Natural",
                }
            ]
        }
    }

    product_id: str
    name: str = Field(..., max_length=255)
    unit_price: float = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    seller_id: str
    seller_name: str | None = Field(None, max_length=255)
    variant: str | None = Field(None, max_length=255)


class UpdateCartQuantityRequest(BaseModel):
    quantity: int


class CartItemIdResponse(BaseModel):
    item_id: str


class CartResponse(BaseModel):
    buyer_id: str
    items: list[dict[str, Any]]
    total: float


class CheckoutRequest(BaseModel):
    buyer_name: str | None = Field(None, max_length=255)
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethodSchema


class CheckoutResponse(LifecycleReceipt):
    total: float
    is_paid: bool
    estimated_delivery: str
    tracking_number: str | None = None


class SnapshotResponse(BaseModel):
    items: list[dict[str, Any]]
    orders: list[dict[str, Any]]


# --- Orders ---


class TransitionOrderRequest(BaseModel):
    target_status: str
    actor_id: str | None = None
    actor_role: str = "system"
    note: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    cancelled_by: str | None = None
    actor_role: str = "buyer"


class RequestReturnRequest(BaseModel):
    buyer_id: str
    reason: str = Field(..., description="damaged, wrong_item, missing_parts, not_as_described or other")
    solution: str = Field(..., description="return_refund, replacement or refund_only")
    comments: str | None = None
    evidence: list[str] = Field(default_factory=list, max_length=5)


class ReturnReceipt(LifecycleReceipt):
    refund_amount: float


class ItemReviewSchema(BaseModel):
    item_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None
    images: list[str] = Field(default_factory=list, max_length=5)


class SubmitReviewsRequest(BaseModel):
    buyer_id: str
    reviews: list[ItemReviewSchema] = Field(..., min_length=1)


class ReviewReceipt(LifecycleReceipt):
    review_id: str
    order_reviewed: bool


class ProcessDueTransitionsRequest(BaseModel):
    as_of: str | None = Field(None, description="ISO timestamp; defaults to now")


class ProgressionResponse(BaseModel):
    fired: int
    skipped: int


# --- Sellers ---


class TransitionSellerOrderRequest(BaseModel):
    target_status: str
    note: str | None = None


class SellerOrderResponse(BaseModel):
    seller_order_id: str
    order_id: str
    status: str
    payment_status: str


class ResolveReturnRequest(BaseModel):
    approved: bool
    note: str | None = None
    resolved_by: str | None = None


class ReturnResolutionResponse(BaseModel):
    seller_order_id: str
    return_status: str
    payment_status: str


class SellerVerificationRequest(BaseModel):
    approved: bool
    note: str | None = None


class SyncResponse(BaseModel):
    synced: bool
    mode: str
    error: str | None = None


# --- Inventory ---


class RegisterStockRequest(BaseModel):
    product_id: str
    product_name: str = Field(..., max_length=255)
    seller_id: str
    initial_quantity: int = Field(0, ge=0)


class AdjustStockRequest(BaseModel):
    quantity_change: int
    notes: str = Field(..., min_length=1)
    actor_id: str


class RestockProductRequest(BaseModel):
    quantity: int = Field(..., ge=1)
    actor_id: str
    notes: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    product_name: str
    seller_id: str
    quantity: int
    ledger: list[dict[str, Any]]


# --- Notifications ---


class NotificationResponse(BaseModel):
    id: str
    notification_type: str
    title: str | None = None
    message: str
    order_id: str | None = None
    order_number: str | None = None
    read: bool
    created_at: str | None = None


class LiveFeedResponse(BaseModel):
    unread_count: int
    entries: list[dict[str, Any]]
