import pytest
from protean import current_domain


@pytest.fixture(autouse=True)
def _ctx(shipping_bed):
    with shipping_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
