"""FastAPI routes for the marketplace — carts, orders, sellers, stock, notices."""

import json
from datetime import datetime

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AddToCartRequest,
    AdjustStockRequest,
    CancelOrderRequest,
    CartItemIdResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    LifecycleReceipt,
    LiveFeedResponse,
    NotificationResponse,
    ProcessDueTransitionsRequest,
    ProductIdResponse,
    ProgressionResponse,
    RegisterStockRequest,
    RequestReturnRequest,
    ResolveReturnRequest,
    RestockProductRequest,
    ReturnReceipt,
    ReturnResolutionResponse,
    ReviewReceipt,
    SellerOrderResponse,
    SellerVerificationRequest,
    SnapshotResponse,
    StatusResponse,
    StockResponse,
    SubmitReviewsRequest,
    SyncResponse,
    TransitionOrderRequest,
    TransitionSellerOrderRequest,
    UpdateCartQuantityRequest,
)
from marketplace.backend import call_backend
from marketplace.cart.checkout import Checkout
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity, load_cart
from marketplace.inventory.management import AdjustStock, RegisterStock, RestockProduct
from marketplace.inventory.stock import StockItem
from marketplace.notification.live_feed import get_live_feed
from marketplace.notification.management import MarkNotificationRead
from marketplace.notification.notification import Notification
from marketplace.order.cancellation import CancelOrder
from marketplace.order.payment import SettlePayment
from marketplace.order.queries import fetch_buyer_orders, fetch_order_detail, fetch_seller_orders
from marketplace.order.returns import RequestReturn
from marketplace.order.reviews import ReviewOrderItem
from marketplace.order.transition import TransitionOrder
from marketplace.progression.processing import ProcessDueTransitions
from marketplace.projections.order_timeline import timeline_for
from marketplace.seller_order.fulfilment import ResolveReturn, TransitionSellerOrder
from marketplace.snapshot import LocalSnapshotStore

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{buyer_id}", response_model=CartResponse)
async def get_cart(buyer_id: str) -> CartResponse:
    cart = load_cart(buyer_id)
    return CartResponse(buyer_id=buyer_id, items=cart.items_snapshot(), total=cart.total)


@cart_router.post("/{buyer_id}/items", status_code=201, response_model=CartItemIdResponse)
async def add_cart_item(buyer_id: str, body: AddToCartRequest) -> CartItemIdResponse:
    command = AddToCart(buyer_id=buyer_id, **body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return CartItemIdResponse(item_id=result)


@cart_router.put("/{buyer_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(buyer_id: str, item_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(buyer_id=buyer_id, item_id=item_id, new_quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{buyer_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(buyer_id: str, item_id: str) -> StatusResponse:
    current_domain.process(RemoveFromCart(buyer_id=buyer_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{buyer_id}/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout(buyer_id: str, body: CheckoutRequest) -> CheckoutResponse:
    command = Checkout(
        buyer_id=buyer_id,
        buyer_name=body.buyer_name,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=json.dumps(body.payment_method.model_dump()),
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


@cart_router.put("/{buyer_id}/snapshot", response_model=SnapshotResponse)
async def save_snapshot(buyer_id: str) -> SnapshotResponse:
    return SnapshotResponse(**LocalSnapshotStore().save(buyer_id))


@cart_router.post("/{buyer_id}/snapshot/restore", response_model=SnapshotResponse)
async def restore_snapshot(buyer_id: str) -> SnapshotResponse:
    return SnapshotResponse(**LocalSnapshotStore().restore(buyer_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("")
async def list_buyer_orders(buyer_id: str) -> list[dict]:
    return fetch_buyer_orders(buyer_id)


@order_router.post("/progression/run", response_model=ProgressionResponse)
async def run_progression(body: ProcessDueTransitionsRequest) -> ProgressionResponse:
    as_of = datetime.fromisoformat(body.as_of) if body.as_of else None
    result = current_domain.process(ProcessDueTransitions(as_of=as_of), asynchronous=False)
    return ProgressionResponse(**result)


@order_router.get("/{order_ref}")
async def get_order(order_ref: str, buyer_id: str | None = None) -> dict:
    order = fetch_order_detail(order_ref, buyer_id=buyer_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_ref} not found")
    return order


@order_router.get("/{order_id}/timeline")
async def get_order_timeline(order_id: str) -> list[dict]:
    return [
        {
            "event_type": entry.event_type,
            "status": entry.status,
            "actor_id": entry.actor_id,
            "actor_role": entry.actor_role,
            "description": entry.description,
            "note": entry.note,
            "occurred_at": entry.occurred_at.isoformat(),
        }
        for entry in timeline_for(order_id)
    ]


@order_router.put("/{order_id}/status", response_model=LifecycleReceipt)
async def transition_order(order_id: str, body: TransitionOrderRequest) -> LifecycleReceipt:
    command = TransitionOrder(order_id=order_id, **body.model_dump())
    return LifecycleReceipt(**current_domain.process(command, asynchronous=False))


@order_router.post("/{order_id}/cancel", response_model=LifecycleReceipt)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> LifecycleReceipt:
    command = CancelOrder(order_id=order_id, **body.model_dump())
    return LifecycleReceipt(**current_domain.process(command, asynchronous=False))


@order_router.post("/{order_id}/return", response_model=ReturnReceipt)
async def request_return(order_id: str, body: RequestReturnRequest) -> ReturnReceipt:
    command = RequestReturn(
        order_id=order_id,
        buyer_id=body.buyer_id,
        reason=body.reason,
        solution=body.solution,
        comments=body.comments,
        evidence=json.dumps(body.evidence),
    )
    return ReturnReceipt(**current_domain.process(command, asynchronous=False))


@order_router.post("/{order_id}/reviews", response_model=list[ReviewReceipt])
async def submit_reviews(order_id: str, body: SubmitReviewsRequest) -> list[ReviewReceipt]:
    receipts = []
    for review in body.reviews:
        command = ReviewOrderItem(
            order_id=order_id,
            item_id=review.item_id,
            buyer_id=body.buyer_id,
            rating=review.rating,
            comment=review.comment,
            images=json.dumps(review.images),
        )
        receipts.append(ReviewReceipt(**current_domain.process(command, asynchronous=False)))
    return receipts


@order_router.post("/{order_id}/settle-payment", response_model=StatusResponse)
async def settle_payment(order_id: str) -> StatusResponse:
    current_domain.process(SettlePayment(order_id=order_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(prefix="/sellers", tags=["sellers"])


@seller_router.get("/{seller_id}/orders")
async def list_seller_orders(seller_id: str) -> list[dict]:
    return fetch_seller_orders(seller_id)


@seller_router.put("/{seller_id}/orders/{seller_order_id}/status", response_model=SellerOrderResponse)
async def transition_seller_order(
    seller_id: str, seller_order_id: str, body: TransitionSellerOrderRequest
) -> SellerOrderResponse:
    command = TransitionSellerOrder(
        seller_order_id=seller_order_id,
        seller_id=seller_id,
        target_status=body.target_status,
        note=body.note,
    )
    return SellerOrderResponse(**current_domain.process(command, asynchronous=False))


@seller_router.post("/{seller_id}/orders/{seller_order_id}/return", response_model=ReturnResolutionResponse)
async def resolve_return(seller_id: str, seller_order_id: str, body: ResolveReturnRequest) -> ReturnResolutionResponse:
    command = ResolveReturn(seller_order_id=seller_order_id, **body.model_dump())
    return ReturnResolutionResponse(**current_domain.process(command, asynchronous=False))


@seller_router.post("/{seller_id}/verification", response_model=SyncResponse)
async def notify_verification(seller_id: str, body: SellerVerificationRequest) -> SyncResponse:
    result = call_backend("notify_seller_verification", seller_id, body.approved, body.note)
    return SyncResponse(
        synced=result.synced,
        mode=result.mode,
        error=result.error,
    )


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_stock(body: RegisterStockRequest) -> ProductIdResponse:
    result = current_domain.process(RegisterStock(**body.model_dump()), asynchronous=False)
    return ProductIdResponse(product_id=result)


@inventory_router.get("/{product_id}", response_model=StockResponse)
async def get_stock(product_id: str) -> StockResponse:
    stock = current_domain.repository_for(StockItem).get(product_id)
    return StockResponse(
        product_id=str(stock.product_id),
        product_name=stock.product_name,
        seller_id=str(stock.seller_id),
        quantity=stock.quantity,
        ledger=[
            {
                "change_type": e.change_type,
                "reason": e.reason,
                "quantity_before": e.quantity_before,
                "quantity_change": e.quantity_change,
                "quantity_after": e.quantity_after,
                "reference_id": e.reference_id,
                "actor_id": e.actor_id,
                "notes": e.notes,
                "recorded_at": e.recorded_at.isoformat(),
            }
            for e in sorted(stock.ledger, key=lambda e: e.recorded_at)
        ],
    )


@inventory_router.post("/{product_id}/adjust", response_model=StatusResponse)
async def adjust_stock(product_id: str, body: AdjustStockRequest) -> StatusResponse:
    current_domain.process(AdjustStock(product_id=product_id, **body.model_dump()), asynchronous=False)
    return StatusResponse()


@inventory_router.post("/{product_id}/restock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockProductRequest) -> StatusResponse:
    current_domain.process(RestockProduct(product_id=product_id, **body.model_dump()), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Notification Router
# ---------------------------------------------------------------------------
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("/feed", response_model=LiveFeedResponse)
async def live_feed(recipient_id: str | None = None) -> LiveFeedResponse:
    feed = get_live_feed()
    return LiveFeedResponse(
        unread_count=feed.unread_count(recipient_id),
        entries=[
            {
                "id": n.id,
                "order_id": n.order_id,
                "type": n.type,
                "message": n.message,
                "timestamp": n.timestamp.isoformat(),
                "read": n.read,
            }
            for n in feed.entries(recipient_id)
        ],
    )


@notification_router.get("/{recipient_id}", response_model=list[NotificationResponse])
async def list_notifications(recipient_id: str) -> list[NotificationResponse]:
    repo = current_domain.repository_for(Notification)
    notifications = repo._dao.query.filter(recipient_id=recipient_id).all().items
    return [
        NotificationResponse(
            id=str(n.id),
            notification_type=n.notification_type,
            title=n.title,
            message=n.message,
            order_id=str(n.order_id) if n.order_id else None,
            order_number=n.order_number,
            read=n.read,
            created_at=n.created_at.isoformat() if n.created_at else None,
        )
        for n in sorted(notifications, key=lambda n: n.created_at, reverse=True)
    ]


@notification_router.put("/{notification_id}/read", response_model=StatusResponse)
async def mark_notification_read(notification_id: str) -> StatusResponse:
    current_domain.process(MarkNotificationRead(notification_id=notification_id), asynchronous=False)
    return StatusResponse()
