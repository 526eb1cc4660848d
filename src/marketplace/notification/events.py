"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Notification")
class NotificationCreated:
    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    recipient_role = String(required=True)
    notification_type = String(required=True)
    order_id = String()
    created_at = DateTime(required=True)


@marketplace.event(part_of="Notification")
class NotificationRead:
    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    read_at = DateTime(required=True)
