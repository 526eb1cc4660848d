"""ScheduledTransition aggregate — a pending, cancellable status change.

Demo and fallback deployments have no carrier or seller feed, so checkout
schedules ``pending → confirmed`` and ``confirmed → shipped`` a fixed delay
after placement. Firing a transition goes through the order state machine;
a transition that no longer applies (the order was cancelled meanwhile) is
marked skipped, never forced.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.order.order import OrderStatus

CONFIRM_DELAY = timedelta(seconds=2)
SHIP_DELAY = timedelta(seconds=60)


class ScheduleStatus(Enum):
    PENDING = "pending"
    FIRED = "fired"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@marketplace.event(part_of="ScheduledTransition")
class TransitionScheduled:
    __version__ = 1

    schedule_id = Identifier(required=True)
    order_id = Identifier(required=True)
    target_status = String(required=True)
    due_at = DateTime(required=True)


@marketplace.aggregate
class ScheduledTransition:
    order_id: Identifier(required=True)
    target_status: String(choices=OrderStatus, required=True)
    due_at: DateTime(required=True)
    status: String(choices=ScheduleStatus, default=ScheduleStatus.PENDING.value)
    outcome: Text()
    resolved_at: DateTime()
    created_at: DateTime()

    @classmethod
    def schedule(cls, order_id, target_status, due_at):
        now = datetime.now(UTC)
        scheduled = cls(
            order_id=order_id,
            target_status=target_status,
            due_at=due_at,
            status=ScheduleStatus.PENDING.value,
            created_at=now,
        )
        scheduled.raise_(
            TransitionScheduled(
                schedule_id=str(scheduled.id),
                order_id=str(order_id),
                target_status=target_status,
                due_at=due_at,
            )
        )
        return scheduled

    def is_due(self, as_of) -> bool:
        due_at = self.due_at
        # Normalize timezone awareness for comparison
        if due_at.tzinfo is None and as_of.tzinfo is not None:
            due_at = due_at.replace(tzinfo=as_of.tzinfo)
        elif due_at.tzinfo is not None and as_of.tzinfo is None:
            due_at = due_at.replace(tzinfo=None)
        return self.status == ScheduleStatus.PENDING.value and due_at <= as_of

    def _resolve(self, status: ScheduleStatus, outcome=None):
        if self.status != ScheduleStatus.PENDING.value:
            raise ValidationError({"status": [f"Scheduled transition is already {self.status}"]})
        self.status = status.value
        self.outcome = outcome
        self.resolved_at = datetime.now(UTC)

    def mark_fired(self):
        self._resolve(ScheduleStatus.FIRED)

    def mark_skipped(self, reason):
        self._resolve(ScheduleStatus.SKIPPED, reason)

    def cancel(self, reason=None):
        self._resolve(ScheduleStatus.CANCELLED, reason)


def schedule_progression(order_id, placed_at) -> list[ScheduledTransition]:
    """The demo progression for a freshly placed order."""
    confirm_at = placed_at + CONFIRM_DELAY
    return [
        ScheduledTransition.schedule(order_id, OrderStatus.CONFIRMED.value, confirm_at),
        ScheduledTransition.schedule(order_id, OrderStatus.SHIPPED.value, confirm_at + SHIP_DELAY),
    ]
