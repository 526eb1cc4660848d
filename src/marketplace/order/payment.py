"""SettlePayment — record cash collected for a cash-on-delivery order."""

from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.command(part_of="Order")
class SettlePayment:
    order_id = Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class SettlePaymentHandler:
    @handle(SettlePayment)
    def settle_payment(self, command: SettlePayment) -> str:
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.settle_payment()
        repo.add(order)
        return str(order.id)
