"""Returns bounded context — customer returns, inspection and refunds.

Owns the ReturnRequest lifecycle from the customer's request through
pickup, receipt and quality inspection to a refund, an exchange, or a
rejection. The refund is a sub-state of the ReturnRequest aggregate.
"""

from protean.domain import Domain

from shared.logging import configure_logging

configure_logging()

returns = Domain(name="returns")
