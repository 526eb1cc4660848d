"""Plain-dict rendering of an Order for the backend and the local snapshot."""

import json


def _iso(value):
    return value.isoformat() if value is not None else None


def order_to_dict(order) -> dict:
    return_request = None
    if order.return_request is not None:
        rr = order.return_request
        return_request = {
            "reason": rr.reason,
            "solution": rr.solution,
            "comments": rr.comments,
            "evidence": json.loads(rr.evidence) if rr.evidence else [],
            "refund_amount": rr.refund_amount,
            "submitted_at": _iso(rr.submitted_at),
        }

    address = order.shipping_address
    payment = order.payment_method
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "buyer_id": str(order.buyer_id),
        "buyer_name": order.buyer_name,
        "items": [
            {**snapshot, "review_submitted": bool(item.review_submitted)}
            for item, snapshot in zip(order.items, order.items_snapshot())
        ],
        "total": order.total,
        "shipping_address": {
            "full_name": address.full_name,
            "street": address.street,
            "city": address.city,
            "province": address.province,
            "postal_code": address.postal_code,
            "phone": address.phone,
        }
        if address is not None
        else None,
        "payment_method": {"type": payment.type, "masked_details": payment.masked_details} if payment else None,
        "status": order.status,
        "is_paid": bool(order.is_paid),
        "tracking_number": order.tracking_number,
        "created_at": _iso(order.created_at),
        "estimated_delivery": _iso(order.estimated_delivery),
        "delivered_at": _iso(order.delivered_at),
        "cancellation_reason": order.cancellation_reason,
        "return_request": return_request,
        "reviews": [
            {
                "item_id": str(r.item_id),
                "product_id": str(r.product_id),
                "rating": r.rating,
                "comment": r.comment,
                "images": json.loads(r.images) if r.images else [],
                "submitted_at": _iso(r.submitted_at),
            }
            for r in order.reviews
        ],
    }
