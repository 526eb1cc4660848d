"""MarkNotificationRead command + handler."""

from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.notification.live_feed import get_live_feed
from marketplace.notification.notification import Notification


@marketplace.command(part_of="Notification")
class MarkNotificationRead:
    notification_id = Identifier(required=True)


@marketplace.command_handler(part_of=Notification)
class NotificationManagementHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command: MarkNotificationRead) -> None:
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.mark_read()
        repo.add(notification)
        get_live_feed().mark_read(str(notification.id))
