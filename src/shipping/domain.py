"""Shipping bounded context — outbound and return shipments.

Owns the shipment lifecycle from order placement to delivery (or loss,
damage, cancellation). Each Shipment keeps an append-only tracking ledger;
the current status fields are a cache of the ledger's tail.
"""

from protean.domain import Domain

from shared.logging import configure_logging

configure_logging()

shipping = Domain(name="shipping")
