"""Refund gateway port (abstract interface).

The returns context hands settled-inspection refunds to a payment provider
through this contract. Adapters never touch the ReturnRequest aggregate;
the command handler records their outcome on the refund sub-state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RefundSubmission:
    """Result of handing a refund to the gateway."""

    accepted: bool
    gateway_reference: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class RefundGateway(ABC):
    """Abstract refund gateway interface."""

    @abstractmethod
    def submit_refund(
        self,
        refund_id: str,
        order_id: str,
        amount: float,
        method: str,
        idempotency_key: str,
    ) -> RefundSubmission:
        """Submit a refund for asynchronous settlement."""
        ...
