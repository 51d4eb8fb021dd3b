import pytest
from reconciliation.alerts import reset_alert_adapter
from returns.domain import returns
from returns.refund_gateway import reset_refund_gateway
from shipping.domain import shipping


def _reset_data(domain):
    with domain.domain_context():
        for _, provider in domain.providers.items():
            provider._data_reset()


@pytest.fixture(autouse=True)
def _clean(shipping_bed, returns_bed):
    reset_alert_adapter()
    reset_refund_gateway()
    yield
    _reset_data(shipping)
    _reset_data(returns)
    reset_alert_adapter()
    reset_refund_gateway()
