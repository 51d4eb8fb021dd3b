"""Tests for refund amount calculation."""

import pytest
from protean.exceptions import ValidationError
from returns.return_request.return_request import calculate_refund


class TestCalculateRefund:
    def test_full_refund_from_price(self):
        assert calculate_refund(225.0, 2) == (450.0, 450.0)

    def test_deduction_reduces_refund(self):
        assert calculate_refund(225.0, 2, amount=450.0, deductions=50.0, deduction_reason="Missing tags") == (
            450.0,
            400.0,
        )

    def test_rounds_to_two_decimals(self):
        gross, refund = calculate_refund(33.333, 3, deductions=0.004, deduction_reason="Rounding")
        assert gross == 100.0
        assert refund == 100.0

    def test_amount_must_match_price_times_quantity(self):
        with pytest.raises(ValidationError) as exc:
            calculate_refund(225.0, 2, amount=500.0)
        assert "amount" in exc.value.messages

    def test_amount_required_without_price(self):
        with pytest.raises(ValidationError):
            calculate_refund(None, 1)

    def test_amount_accepted_without_price(self):
        assert calculate_refund(None, 1, amount=99.0) == (99.0, 99.0)

    def test_negative_deductions_rejected(self):
        with pytest.raises(ValidationError):
            calculate_refund(100.0, 1, deductions=-5.0, deduction_reason="x")

    def test_deductions_cannot_exceed_gross(self):
        with pytest.raises(ValidationError) as exc:
            calculate_refund(100.0, 1, deductions=150.0, deduction_reason="Damaged")
        assert "deductions" in exc.value.messages

    def test_deductions_need_a_reason(self):
        with pytest.raises(ValidationError) as exc:
            calculate_refund(100.0, 1, deductions=10.0)
        assert "deduction_reason" in exc.value.messages

    def test_full_deduction_allowed(self):
        assert calculate_refund(100.0, 1, deductions=100.0, deduction_reason="Unusable") == (100.0, 0.0)
