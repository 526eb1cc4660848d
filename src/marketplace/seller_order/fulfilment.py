"""Seller-side commands.

TransitionSellerOrder — a seller confirms, ships, delivers or cancels their
own projection. Other sellers' projections of the same order are untouched;
the synchronizer decides whether the buyer order follows.

ResolveReturn — the admin layer approves or rejects a return request for one
seller's share of a returned order.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import OrderStatus
from marketplace.seller_order.seller_order import SellerOrder


@marketplace.command(part_of="SellerOrder")
class TransitionSellerOrder:
    seller_order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    target_status = String(choices=OrderStatus, required=True)
    note = Text()


@marketplace.command(part_of="SellerOrder")
class ResolveReturn:
    seller_order_id = Identifier(required=True)
    approved = Boolean(required=True)
    note = Text()
    resolved_by = String(max_length=255)


@marketplace.command_handler(part_of=SellerOrder)
class SellerFulfilmentHandler:
    @handle(TransitionSellerOrder)
    def transition_seller_order(self, command: TransitionSellerOrder) -> dict:
        repo = current_domain.repository_for(SellerOrder)
        seller_order = repo.get(command.seller_order_id)
        if str(seller_order.seller_id) != str(command.seller_id):
            raise ValidationError({"seller_id": ["Sellers can only update their own orders"]})

        seller_order.transition(command.target_status, actor_id=str(command.seller_id), note=command.note)
        repo.add(seller_order)
        return {
            "seller_order_id": str(seller_order.id),
            "order_id": str(seller_order.order_id),
            "status": seller_order.status,
            "payment_status": seller_order.payment_status,
        }

    @handle(ResolveReturn)
    def resolve_return(self, command: ResolveReturn) -> dict:
        repo = current_domain.repository_for(SellerOrder)
        seller_order = repo.get(command.seller_order_id)
        seller_order.resolve_return(approved=command.approved, note=command.note)
        repo.add(seller_order)
        return {
            "seller_order_id": str(seller_order.id),
            "return_status": seller_order.return_status,
            "payment_status": seller_order.payment_status,
        }
