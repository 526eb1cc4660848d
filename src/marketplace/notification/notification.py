"""Notification aggregate (CQRS) — one message to one party about one order.

Notifications are written once by the dispatcher and never edited afterwards,
except for the ``read`` flag.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.notification.events import NotificationCreated, NotificationRead


class NotificationType(Enum):
    # Buyer-facing
    ORDER_PLACED = "order_placed"
    SELLER_CONFIRMED = "seller_confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURN_SUBMITTED = "return_submitted"
    REVIEW_COMPLETED = "review_completed"
    ORDER_UPDATE = "order_update"
    # Seller-facing
    NEW_ORDER = "new_order"
    CANCELLATION_REQUEST = "cancellation_request"
    RETURN_REQUEST = "return_request"
    RETURN_APPROVED = "return_approved"
    RETURN_REJECTED = "return_rejected"
    LOW_STOCK = "low_stock"


class RecipientRole(Enum):
    BUYER = "buyer"
    SELLER = "seller"


@marketplace.aggregate
class Notification:
    recipient_id: Identifier(required=True)
    recipient_role: String(choices=RecipientRole, required=True)
    notification_type: String(choices=NotificationType, required=True)

    order_id: Identifier()
    order_number: String(max_length=32)

    title: String(max_length=200)
    message: Text(required=True)

    read: Boolean(default=False)
    read_at: DateTime()
    created_at: DateTime()

    @classmethod
    def create(cls, recipient_id, recipient_role, notification_type, message, title=None, order_id=None, order_number=None):
        now = datetime.now(UTC)
        notification = cls(
            recipient_id=recipient_id,
            recipient_role=recipient_role,
            notification_type=notification_type,
            order_id=order_id,
            order_number=order_number,
            title=title,
            message=message,
            read=False,
            created_at=now,
        )
        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                recipient_id=str(recipient_id),
                recipient_role=recipient_role,
                notification_type=notification_type,
                order_id=str(order_id) if order_id else None,
                created_at=now,
            )
        )
        return notification

    def mark_read(self):
        if self.read:
            return
        now = datetime.now(UTC)
        self.read = True
        self.read_at = now
        self.raise_(
            NotificationRead(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                read_at=now,
            )
        )
