"""Tests for Shipment repository views and scans."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from shared.errors import ConstraintViolation
from shipping.shipment.creation import CreateShipment
from shipping.shipment.shipment import Shipment
from shipping.shipment.status import UpdateShipmentStatus


def _create(order_id, customer_id="cust-r-001", vendor_id="vend-r-001", **kwargs):
    return current_domain.process(
        CreateShipment(order_id=order_id, customer_id=customer_id, vendor_id=vendor_id, **kwargs),
        asynchronous=False,
    )


def _update(tn, status):
    current_domain.process(UpdateShipmentStatus(tracking_number=tn, status=status), asynchronous=False)


def _repo():
    return current_domain.repository_for(Shipment)


class TestCustomerAndVendorViews:
    def test_customer_shipments(self):
        _create("ord-r-1")
        _create("ord-r-2")
        _create("ord-r-3", customer_id="someone-else")
        assert len(_repo().for_customer("cust-r-001")) == 2

    def test_active_for_customer_excludes_terminal(self):
        tn = _create("ord-r-1")
        _create("ord-r-2")
        _update(tn, "DELIVERED")
        active = _repo().active_for_customer("cust-r-001")
        assert [s.order_id for s in active] == ["ord-r-2"]

    def test_vendor_stats_buckets(self):
        _create("ord-r-1")
        moving = _create("ord-r-2")
        out = _create("ord-r-3")
        done = _create("ord-r-4")
        _update(moving, "REACHED_HUB")
        _update(out, "OUT_FOR_DELIVERY")
        _update(done, "DELIVERED")
        assert _repo().vendor_stats("vend-r-001") == {
            "pending": 1,
            "in_transit": 1,
            "out_for_delivery": 1,
            "delivered": 1,
        }


class TestOperationalScans:
    def test_delayed_excludes_terminal_and_on_time(self):
        past = datetime.now(UTC) - timedelta(days=1)
        future = datetime.now(UTC) + timedelta(days=3)
        late = _create("ord-r-1", estimated_delivery_date=past)
        _create("ord-r-2", estimated_delivery_date=future)
        late_but_done = _create("ord-r-3", estimated_delivery_date=past)
        _update(late_but_done, "DELIVERED")

        delayed = _repo().delayed(datetime.now(UTC))
        assert [s.tracking_number for s in delayed] == [late]

    def test_needing_update(self):
        _create("ord-r-1")
        assert _repo().needing_update(datetime.now(UTC) - timedelta(hours=24)) == []
        assert len(_repo().needing_update(datetime.now(UTC) + timedelta(minutes=1))) == 1

    def test_scan_pages_past_default_limit(self):
        for i in range(105):
            _create(f"ord-bulk-{i}")
        assert len(list(_repo().active())) == 105


class TestStoreUniqueness:
    def test_duplicate_tracking_number_rejected_on_add(self):
        _repo().add(Shipment.create(tracking_number="ODOP10000001", order_id="ord-u-1", customer_id="cust-u"))
        clash = Shipment.create(tracking_number="ODOP10000001", order_id="ord-u-2", customer_id="cust-u")

        with pytest.raises(ConstraintViolation) as exc:
            _repo().add(clash)

        assert "tracking_number" in exc.value.messages
        assert _repo().order_has_shipment("ord-u-2") is False

    def test_second_shipment_for_same_order_rejected_on_add(self):
        _repo().add(Shipment.create(tracking_number="ODOP10000002", order_id="ord-u-3", customer_id="cust-u"))
        clash = Shipment.create(tracking_number="ODOP10000003", order_id="ord-u-3", customer_id="cust-u")

        with pytest.raises(ConstraintViolation) as exc:
            _repo().add(clash)

        assert "order_id" in exc.value.messages
        assert [s.tracking_number for s in _repo().for_customer("cust-u")] == ["ODOP10000002"]
