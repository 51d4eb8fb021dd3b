"""Refund gateway factory.

get_refund_gateway() / set_refund_gateway() swap the implementation;
FakeRefundGateway is the default until a provider adapter is installed.
"""

from returns.refund_gateway.fake_adapter import FakeRefundGateway
from returns.refund_gateway.port import RefundGateway

_current_gateway: RefundGateway | None = None


def get_refund_gateway() -> RefundGateway:
    """Return the current refund gateway. Defaults to FakeRefundGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeRefundGateway()
    return _current_gateway


def set_refund_gateway(gateway: RefundGateway) -> None:
    """Override the active refund gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_refund_gateway() -> None:
    global _current_gateway
    _current_gateway = None
