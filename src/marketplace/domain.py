"""Marketplace bounded context — order lifecycle for a multi-seller bazaar.

Turns a buyer's cart into an order, advances it through fulfilment,
keeps the buyer order and its per-seller projections consistent, deducts
stock exactly once per sale and notifies both parties at every step.
"""

import structlog
from protean.domain import Domain

from marketplace.utils.logging import configure_logging

configure_logging(log_dir="logs")

logger = structlog.get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
