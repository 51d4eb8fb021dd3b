import pytest
from protean import current_domain
from returns.refund_gateway import reset_refund_gateway


@pytest.fixture(autouse=True)
def _ctx(returns_bed):
    reset_refund_gateway()
    with returns_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
    reset_refund_gateway()
