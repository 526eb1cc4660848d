"""Seller-facing templates."""

from marketplace.notification.notification import NotificationType, RecipientRole
from marketplace.notification.templates.buyer import format_peso


class NewOrderTemplate:
    notification_type = NotificationType.NEW_ORDER.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        buyer = context.get("buyer_name") or "a buyer"
        return {
            "title": "New Order Received",
            "message": f"New order #{number} from {buyer}. Total: {format_peso(context.get('total'))}",
        }


class CancellationRequestTemplate:
    notification_type = NotificationType.CANCELLATION_REQUEST.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        reason = context.get("reason") or "no reason given"
        return {
            "title": "Order Cancelled by Buyer",
            "message": f"Order #{number} was cancelled by the buyer. Reason: {reason}",
        }


class ReturnRequestTemplate:
    notification_type = NotificationType.RETURN_REQUEST.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        reason = context.get("reason", "other").replace("_", " ")
        solution = context.get("solution", "return_refund").replace("_", " ")
        return {
            "title": "Return Requested",
            "message": f"Return requested for order #{number}. Reason: {reason}. Requested solution: {solution}.",
        }


class ReturnApprovedTemplate:
    notification_type = NotificationType.RETURN_APPROVED.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {
            "title": "Return Approved",
            "message": (
                f"The return for order #{number} was approved. "
                f"Refund amount: {format_peso(context.get('refund_amount'))}"
            ),
        }


class ReturnRejectedTemplate:
    notification_type = NotificationType.RETURN_REJECTED.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        message = f"The return for order #{number} was rejected."
        if context.get("note"):
            message += f" Note: {context['note']}"
        return {"title": "Return Rejected", "message": message}


class LowStockTemplate:
    notification_type = NotificationType.LOW_STOCK.value
    audience = RecipientRole.SELLER.value

    @staticmethod
    def render(context: dict) -> dict:
        name = context.get("product_name", "A product")
        quantity = context.get("current_quantity", 0)
        return {"title": "Low Stock Alert", "message": f"{name} is running low: only {quantity} left in stock."}
