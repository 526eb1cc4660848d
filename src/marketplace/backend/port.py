"""Order backend port (abstract interface).

The contracts the order lifecycle needs from the hosted backend of record.
Adapters: ``InMemoryBackend`` (dev/test), ``RestBackend`` (hosted store over
HTTP) and ``LocalOnlyBackend`` (fallback when the store is unreachable).

Adapters raise ``PersistenceUnavailable`` when the store cannot be reached.
They never raise domain errors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OrderSnapshot:
    """Read model of an order as the backend of record reports it."""

    order_id: str
    order_number: str
    buyer_id: str
    status: str
    total: float
    is_paid: bool = False
    created_at: str | None = None
    seller_id: str | None = None
    items: tuple = ()


@dataclass(frozen=True)
class OrderDetailSnapshot(OrderSnapshot):
    shipping_address: dict = field(default_factory=dict)
    payment_method: dict = field(default_factory=dict)
    tracking_number: str | None = None
    estimated_delivery: str | None = None
    delivered_at: str | None = None
    return_request: dict | None = None
    reviews: tuple = ()


class OrderBackend(ABC):
    """Abstract backend of record for orders, ledger entries and notices."""

    @abstractmethod
    def persist_order_create(self, order: dict) -> str | None:
        """Store a newly placed order. Returns the stored order id."""
        ...

    @abstractmethod
    def persist_order_status(
        self,
        order_id: str,
        status: str,
        note: str | None,
        actor_id: str | None,
        actor_role: str | None,
    ) -> bool: ...

    @abstractmethod
    def persist_ledger_entry(self, product_id: str, delta_qty: int, reason: str, reference_id: str | None) -> bool: ...

    @abstractmethod
    def fetch_buyer_orders(self, buyer_id: str) -> list[OrderSnapshot]: ...

    @abstractmethod
    def fetch_seller_orders(self, seller_id: str) -> list[OrderSnapshot]: ...

    @abstractmethod
    def fetch_order_detail(self, order_id_or_number: str, buyer_id: str | None = None) -> OrderDetailSnapshot | None:
        """Look up one order by id or by its user-facing number."""
        ...

    @abstractmethod
    def notify_party_new_order(
        self,
        seller_id: str,
        order_id: str,
        order_number: str,
        buyer_name: str,
        total: float,
    ) -> bool: ...

    @abstractmethod
    def notify_seller_verification(self, seller_id: str, approved: bool, note: str | None = None) -> bool:
        """Tell a seller the admin layer approved or rejected their account."""
        ...

    @abstractmethod
    def submit_review(self, order_id: str, buyer_id: str, reviews: list[dict]) -> bool: ...

    @abstractmethod
    def cancel_order(self, order_id: str, reason: str, cancelled_by: str | None, changed_by_role: str | None) -> bool: ...
