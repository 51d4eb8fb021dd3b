"""Tests for the refund gateway port and factory."""

from returns.refund_gateway import get_refund_gateway, reset_refund_gateway, set_refund_gateway
from returns.refund_gateway.fake_adapter import FakeRefundGateway


class TestFakeRefundGateway:
    def test_accepts_by_default(self):
        gw = FakeRefundGateway()
        result = gw.submit_refund("REF1", "ord-1", 100.0, "WALLET", idempotency_key="REF1-1")
        assert result.accepted is True
        assert result.gateway_reference.startswith("fake_rfnd_")
        assert result.gateway_status == "processing"

    def test_declines_when_configured(self):
        gw = FakeRefundGateway()
        gw.configure(should_succeed=False, failure_reason="Insufficient balance")
        result = gw.submit_refund("REF1", "ord-1", 100.0, "WALLET", idempotency_key="REF1-1")
        assert result.accepted is False
        assert result.gateway_reference is None
        assert result.failure_reason == "Insufficient balance"

    def test_records_calls(self):
        gw = FakeRefundGateway()
        gw.submit_refund("REF1", "ord-1", 100.0, "WALLET", idempotency_key="REF1-1")
        gw.submit_refund("REF2", "ord-2", 50.0, "STORE_CREDIT", idempotency_key="REF2-1")
        assert [c["refund_id"] for c in gw.calls] == ["REF1", "REF2"]
        assert gw.calls[1]["refund_method"] == "STORE_CREDIT"


class TestRefundGatewayFactory:
    def test_default_is_fake(self):
        reset_refund_gateway()
        assert isinstance(get_refund_gateway(), FakeRefundGateway)

    def test_same_instance_until_reset(self):
        gw = get_refund_gateway()
        assert get_refund_gateway() is gw
        reset_refund_gateway()
        assert get_refund_gateway() is not gw

    def test_set_overrides(self):
        custom = FakeRefundGateway()
        set_refund_gateway(custom)
        assert get_refund_gateway() is custom
