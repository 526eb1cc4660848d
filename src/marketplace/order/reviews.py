"""Per-item reviews of a delivered order.

Each line item is reviewed on its own through ``ReviewOrderItem``. A second
review for the same (order item, buyer) is rejected with ``AlreadyReviewed``
and the first one stands. Once every item of the order carries a review the
order itself moves to ``reviewed`` and the reviews are materialized on it.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import call_backend
from marketplace.domain import marketplace
from marketplace.errors import AlreadyReviewed
from marketplace.order.order import Order
from marketplace.order.transition import receipt

MAX_REVIEW_IMAGES = 5


@marketplace.event(part_of="ItemReview")
class ItemReviewed:
    __version__ = 1

    review_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    rating = Integer(required=True)
    submitted_at = DateTime(required=True)


@marketplace.entity(part_of="ItemReview")
class ReviewImage:
    url = String(required=True, max_length=500)
    display_order = Integer(default=0)


@marketplace.aggregate
class ItemReview:
    """One buyer's review of one order line item."""

    order_id = Identifier(required=True)
    order_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    rating = Integer(required=True, min_value=1, max_value=5)
    comment = Text()
    images = HasMany(ReviewImage)
    submitted_at = DateTime()

    @invariant.post
    def images_cannot_exceed_maximum(self):
        if len(self.images) > MAX_REVIEW_IMAGES:
            raise ValidationError({"images": [f"Cannot attach more than {MAX_REVIEW_IMAGES} images to a review"]})

    @classmethod
    def submit(cls, order_id, order_item_id, product_id, buyer_id, rating, comment=None, images=None):
        now = datetime.now(UTC)
        review = cls(
            order_id=order_id,
            order_item_id=order_item_id,
            product_id=product_id,
            buyer_id=buyer_id,
            rating=rating,
            comment=comment,
            images=[ReviewImage(url=url, display_order=i) for i, url in enumerate(images or [])],
            submitted_at=now,
        )
        review.raise_(
            ItemReviewed(
                review_id=str(review.id),
                order_id=str(order_id),
                order_item_id=str(order_item_id),
                product_id=str(product_id),
                buyer_id=str(buyer_id),
                rating=rating,
                submitted_at=now,
            )
        )
        return review

    def to_dict(self) -> dict:
        return {
            "item_id": str(self.order_item_id),
            "product_id": str(self.product_id),
            "rating": self.rating,
            "comment": self.comment,
            "images": [img.url for img in sorted(self.images, key=lambda img: img.display_order)],
            "submitted_at": self.submitted_at,
        }


@marketplace.command(part_of="ItemReview")
class ReviewOrderItem:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    rating = Integer(required=True)
    comment = Text()
    images = Text()  # JSON array of image references


@marketplace.command_handler(part_of=ItemReview)
class ReviewOrderItemHandler:
    @handle(ReviewOrderItem)
    def review_order_item(self, command: ReviewOrderItem) -> dict:
        order_repo = current_domain.repository_for(Order)
        review_repo = current_domain.repository_for(ItemReview)

        order = order_repo.get(command.order_id)
        if str(order.buyer_id) != str(command.buyer_id):
            raise ValidationError({"buyer_id": ["Only the buyer can review this order"]})
        item = order.get_item(command.item_id)

        existing = review_repo._dao.query.filter(
            order_item_id=str(command.item_id),
            buyer_id=str(command.buyer_id),
        ).all()
        if existing.items:
            raise AlreadyReviewed({"review": ["This item has already been reviewed"]})

        review = ItemReview.submit(
            order_id=str(order.id),
            order_item_id=str(item.id),
            product_id=str(item.product_id),
            buyer_id=str(command.buyer_id),
            rating=command.rating,
            comment=command.comment,
            images=json.loads(command.images) if command.images else [],
        )
        all_reviewed = order.mark_item_reviewed(item.id)
        review_repo.add(review)

        if all_reviewed:
            # The review just added is not visible to queries until commit
            earlier = review_repo._dao.query.filter(order_id=str(order.id)).all().items
            reviews = [r.to_dict() for r in earlier if str(r.id) != str(review.id)] + [review.to_dict()]
            order.complete_review(reviews, actor_id=str(command.buyer_id))
        order_repo.add(order)

        result = call_backend(
            "submit_review",
            str(order.id),
            str(command.buyer_id),
            [{**review.to_dict(), "submitted_at": review.submitted_at.isoformat()}],
        )
        return receipt(order, result, review_id=str(review.id), order_reviewed=all_reviewed)
