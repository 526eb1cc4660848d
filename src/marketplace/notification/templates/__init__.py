"""Template registry — maps NotificationType to template classes.

Each template knows its audience and how to render a title and message
from the transition's context.
"""

from marketplace.notification.notification import NotificationType
from marketplace.notification.templates.buyer import (
    CancelledTemplate,
    DeliveredTemplate,
    OrderPlacedTemplate,
    OrderUpdateTemplate,
    ReturnSubmittedTemplate,
    ReviewCompletedTemplate,
    SellerConfirmedTemplate,
    ShippedTemplate,
)
from marketplace.notification.templates.seller import (
    CancellationRequestTemplate,
    LowStockTemplate,
    NewOrderTemplate,
    ReturnApprovedTemplate,
    ReturnRejectedTemplate,
    ReturnRequestTemplate,
)

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.ORDER_PLACED.value: OrderPlacedTemplate,
    NotificationType.SELLER_CONFIRMED.value: SellerConfirmedTemplate,
    NotificationType.SHIPPED.value: ShippedTemplate,
    NotificationType.DELIVERED.value: DeliveredTemplate,
    NotificationType.CANCELLED.value: CancelledTemplate,
    NotificationType.RETURN_SUBMITTED.value: ReturnSubmittedTemplate,
    NotificationType.REVIEW_COMPLETED.value: ReviewCompletedTemplate,
    NotificationType.ORDER_UPDATE.value: OrderUpdateTemplate,
    NotificationType.NEW_ORDER.value: NewOrderTemplate,
    NotificationType.CANCELLATION_REQUEST.value: CancellationRequestTemplate,
    NotificationType.RETURN_REQUEST.value: ReturnRequestTemplate,
    NotificationType.RETURN_APPROVED.value: ReturnApprovedTemplate,
    NotificationType.RETURN_REJECTED.value: ReturnRejectedTemplate,
    NotificationType.LOW_STOCK.value: LowStockTemplate,
}

# Buyer notification sent when an order reaches each status
STATUS_NOTIFICATIONS: dict[str, str] = {
    "confirmed": NotificationType.SELLER_CONFIRMED.value,
    "shipped": NotificationType.SHIPPED.value,
    "delivered": NotificationType.DELIVERED.value,
    "cancelled": NotificationType.CANCELLED.value,
    "returned": NotificationType.RETURN_SUBMITTED.value,
    "reviewed": NotificationType.REVIEW_COMPLETED.value,
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls


def type_for_status(status: str) -> str:
    return STATUS_NOTIFICATIONS.get(status, NotificationType.ORDER_UPDATE.value)
