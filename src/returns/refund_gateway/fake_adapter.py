"""Configurable fake refund gateway for development and testing.

Accepts or declines every submission depending on its configuration and
records each call, so tests can assert what was sent. Toggled at runtime
through /returns/refund-gateway/configure outside production.
"""

from uuid import uuid4

from returns.refund_gateway.port import RefundGateway, RefundSubmission


class FakeRefundGateway(RefundGateway):
    """Configurable fake refund gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined by gateway"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Refund declined by gateway") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def submit_refund(
        self,
        refund_id: str,
        order_id: str,
        amount: float,
        method: str,
        idempotency_key: str,
    ) -> RefundSubmission:
        self.calls.append(
            {
                "method": "submit_refund",
                "refund_id": refund_id,
                "order_id": order_id,
                "amount": amount,
                "refund_method": method,
                "idempotency_key": idempotency_key,
            }
        )

        if self.should_succeed:
            return RefundSubmission(
                accepted=True,
                gateway_reference=f"fake_rfnd_{uuid4().hex[:12]}",
                gateway_status="processing",
            )
        return RefundSubmission(
            accepted=False,
            gateway_status="declined",
            failure_reason=self.failure_reason,
        )
