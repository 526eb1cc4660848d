"""ProcessDueTransitions command + handler — fire due scheduled transitions.

Invoked by the progression clock in ``server.py`` (or a test) with an
optional ``as_of``. Each due transition re-enters the order state machine
through ``TransitionOrder``, so the guard is re-checked at firing time.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import ActorRole
from marketplace.order.transition import TransitionOrder
from marketplace.progression.schedule import ScheduledTransition, ScheduleStatus

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="ScheduledTransition")
class ProcessDueTransitions:
    """Request to fire every scheduled transition due by ``as_of``."""

    as_of: DateTime()  # Optional: defaults to now


@marketplace.command(part_of="ScheduledTransition")
class CancelScheduledTransition:
    schedule_id: Identifier(required=True)
    reason: Text()


@marketplace.command_handler(part_of=ScheduledTransition)
class ProgressionHandler:
    @handle(ProcessDueTransitions)
    def process_due(self, command: ProcessDueTransitions) -> dict:
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(ScheduledTransition)

        pending = repo._dao.query.filter(status=ScheduleStatus.PENDING.value).all().items
        due = sorted((s for s in pending if s.is_due(as_of)), key=lambda s: s.due_at)

        fired = skipped = 0
        for scheduled in due:
            try:
                current_domain.process(
                    TransitionOrder(
                        order_id=str(scheduled.order_id),
                        target_status=scheduled.target_status,
                        actor_id="progression",
                        actor_role=ActorRole.SYSTEM.value,
                    ),
                    asynchronous=False,
                )
            except (ValidationError, ObjectNotFoundError) as exc:
                # Stale: the order moved on (or away) since this was scheduled
                scheduled.mark_skipped(str(exc))
                skipped += 1
                logger.info(
                    "Scheduled transition no longer applies, skipped",
                    schedule_id=str(scheduled.id),
                    order_id=str(scheduled.order_id),
                    target_status=scheduled.target_status,
                )
            else:
                scheduled.mark_fired()
                fired += 1
            repo.add(scheduled)

        logger.info("Scheduled transitions processed", fired=fired, skipped=skipped, as_of=str(as_of))
        return {"fired": fired, "skipped": skipped}

    @handle(CancelScheduledTransition)
    def cancel_scheduled(self, command: CancelScheduledTransition) -> None:
        repo = current_domain.repository_for(ScheduledTransition)
        scheduled = repo.get(command.schedule_id)
        scheduled.cancel(command.reason)
        repo.add(scheduled)
