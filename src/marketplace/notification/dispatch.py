"""Notification dispatcher.

``render_message`` is pure: (type, context) → title and message.
``dispatch_notification`` writes exactly one durable Notification row and one
live feed entry per call. It does not deduplicate; callers send once per
logical event.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.notification.live_feed import LiveNotification, get_live_feed
from marketplace.notification.notification import Notification
from marketplace.notification.templates import get_template

logger = structlog.get_logger(__name__)


def render_message(notification_type: str, context: dict) -> dict:
    return get_template(notification_type).render(context)


def dispatch_notification(recipient_id, notification_type, context, order_id=None, order_number=None) -> Notification:
    template = get_template(notification_type)
    content = render_message(notification_type, {"order_number": order_number, **context})

    notification = Notification.create(
        recipient_id=str(recipient_id),
        recipient_role=template.audience,
        notification_type=notification_type,
        title=content["title"],
        message=content["message"],
        order_id=str(order_id) if order_id else None,
        order_number=order_number,
    )
    current_domain.repository_for(Notification).add(notification)

    get_live_feed().push(
        LiveNotification(
            id=str(notification.id),
            order_id=str(order_id) if order_id else None,
            type=notification_type,
            message=content["message"],
            timestamp=notification.created_at,
            recipient_id=str(recipient_id),
        )
    )
    logger.info(
        "Notification dispatched",
        notification_id=str(notification.id),
        recipient_id=str(recipient_id),
        notification_type=notification_type,
        order_id=str(order_id) if order_id else None,
    )
    return notification
