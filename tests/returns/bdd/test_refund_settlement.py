"""BDD tests for refund settlement and the exchange path."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, when

scenarios("features/refund_settlement.feature")


@when(
    parsers.cfparse('a refund of {amount:g} is initiated with a deduction of {deductions:g} for "{reason}"'),
    target_fixture="rr",
)
def initiate_refund(rr, amount, deductions, reason):
    rr.initiate_refund(amount=amount, deductions=deductions, deduction_reason=reason)
    return rr


@when(
    parsers.cfparse('a refund of {amount:g} is attempted with a deduction of {deductions:g} for "{reason}"'),
    target_fixture="rr",
)
def attempt_refund(rr, amount, deductions, reason, error):
    try:
        rr.initiate_refund(amount=amount, deductions=deductions, deduction_reason=reason)
    except ValidationError as exc:
        error["exc"] = exc
    return rr


@when(parsers.cfparse('the gateway declines the refund with "{reason}"'), target_fixture="rr")
def gateway_declines(rr, reason):
    rr.fail_refund(reason, count_attempt=True)
    return rr


@when("the refund is retried", target_fixture="rr")
def refund_retried(rr):
    rr.retry_refund()
    rr.mark_refund_submitted("gw-bdd-2")
    return rr


@when(parsers.cfparse('the refund settles with transaction "{transaction_id}"'), target_fixture="rr")
def refund_settles(rr, transaction_id):
    rr.complete_refund(transaction_id)
    return rr


@when(parsers.cfparse('the replacement ships with "{carrier}"'), target_fixture="rr")
def replacement_ships(rr, carrier):
    rr.ship_exchange(carrier=carrier, tracking_number="BD-1")
    return rr
