"""Buyer-facing templates — one per order status the buyer hears about."""

from marketplace.notification.notification import NotificationType, RecipientRole


def format_peso(amount) -> str:
    return f"₱{float(amount or 0):,.2f}"


class OrderPlacedTemplate:
    notification_type = NotificationType.ORDER_PLACED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {
            "title": "Order Placed",
            "message": f"Your order #{number} has been placed. Total: {format_peso(context.get('total'))}",
        }


class SellerConfirmedTemplate:
    notification_type = NotificationType.SELLER_CONFIRMED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {
            "title": "Order Confirmed",
            "message": f"Your order #{number} has been confirmed and is being prepared.",
        }


class ShippedTemplate:
    notification_type = NotificationType.SHIPPED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        tracking = context.get("tracking_number")
        message = f"Your order #{number} has been shipped and is on its way!"
        if tracking:
            message += f" Tracking number: {tracking}"
        return {"title": "Order Shipped", "message": message}


class DeliveredTemplate:
    notification_type = NotificationType.DELIVERED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {
            "title": "Order Delivered",
            "message": f"Your order #{number} has been delivered. Enjoy your purchase!",
        }


class CancelledTemplate:
    notification_type = NotificationType.CANCELLED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        message = f"Your order #{number} has been cancelled."
        if context.get("reason"):
            message += f" Reason: {context['reason']}"
        return {"title": "Order Cancelled", "message": message}


class ReturnSubmittedTemplate:
    notification_type = NotificationType.RETURN_SUBMITTED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {
            "title": "Return Requested",
            "message": (
                f"Your return request for order #{number} has been submitted. "
                f"Refund amount: {format_peso(context.get('refund_amount'))}"
            ),
        }


class ReviewCompletedTemplate:
    notification_type = NotificationType.REVIEW_COMPLETED.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        return {"title": "Thanks for your review", "message": f"Thank you for reviewing order #{number}!"}


class OrderUpdateTemplate:
    """Fallback for statuses without a dedicated message."""

    notification_type = NotificationType.ORDER_UPDATE.value
    audience = RecipientRole.BUYER.value

    @staticmethod
    def render(context: dict) -> dict:
        number = context.get("order_number", "N/A")
        status = context.get("status", "unknown")
        return {"title": "Order Update", "message": f"Order #{number} status updated to {status}"}
