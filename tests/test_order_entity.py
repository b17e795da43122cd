from decimal import Decimal

import pytest

from domain.common.exceptions import (
    DomainValidationException,
    InvalidOrderStateException,
    OrderAccessForbiddenException,
)
from domain.order.entity import ALLOWED_TRANSITIONS, Order, OrderStatus, can_transition


def make_order(status: OrderStatus = OrderStatus.CREATED, **kwargs) -> Order:
    defaults = dict(id=1, buyer_id=10, seller_id=20, product_id=5, amount_usd=Decimal("50.00"))
    defaults.update(kwargs)
    return Order(status=status, **defaults)


def test_terminal_statuses_have_no_exits():
    assert ALLOWED_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()
    assert ALLOWED_TRANSITIONS[OrderStatus.REFUNDED] == frozenset()
    # COMPLETED may only enter the refund flow
    assert ALLOWED_TRANSITIONS[OrderStatus.COMPLETED] == frozenset({OrderStatus.REFUND_REQUESTED})


def test_every_status_has_a_row():
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)


def test_can_transition_rejects_unlisted_edges():
    assert can_transition(OrderStatus.CREATED, OrderStatus.PAID_REPORTED)
    assert not can_transition(OrderStatus.CREATED, OrderStatus.CONFIRMED)
    assert not can_transition(OrderStatus.CANCELLED, OrderStatus.CREATED)


def test_completion_is_only_reachable_from_confirmed():
    sources = {status for status, targets in ALLOWED_TRANSITIONS.items() if OrderStatus.COMPLETED in targets}
    assert sources == {OrderStatus.CONFIRMED, OrderStatus.REFUND_REQUESTED}
    assert not can_transition(OrderStatus.PAID_REPORTED, OrderStatus.COMPLETED)
    assert not can_transition(OrderStatus.PAYMENT_VERIFIED, OrderStatus.COMPLETED)


def test_negative_amount_rejected():
    with pytest.raises(DomainValidationException):
        make_order(amount_usd=Decimal("-1"))


def test_report_payment_without_verification_goes_to_paid_reported():
    order = make_order()
    order.report_payment()
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.payment_verified is False
    assert order.verification_details is None


def test_report_payment_with_successful_verification():
    order = make_order()
    details = {"verified": True, "amount": "4.00000000"}
    order.report_payment("0xabc", "ethereum", details)
    assert order.status == OrderStatus.PAYMENT_VERIFIED
    assert order.payment_verified is True
    assert order.verification_details == details
    assert order.transaction_hash == "0xabc"


def test_report_payment_with_failed_verification_records_details():
    order = make_order()
    details = {"verified": False, "error": "Transaction not found on blockchain"}
    order.report_payment("0xabc", "ethereum", details)
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.payment_verified is False
    assert order.verification_details["error"] == "Transaction not found on blockchain"


@pytest.mark.parametrize("status", [s for s in OrderStatus if s != OrderStatus.CREATED])
def test_report_payment_outside_created_fails_and_keeps_status(status):
    order = make_order(status)
    with pytest.raises(InvalidOrderStateException):
        order.report_payment()
    assert order.status == status


def test_apply_verification_failure_leaves_status():
    order = make_order(OrderStatus.PAID_REPORTED, transaction_hash="0xabc", payment_network="eth")
    changed = order.apply_verification({"verified": False, "error": "Transaction failed or is still pending"})
    assert changed is False
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.verification_details["error"] == "Transaction failed or is still pending"


def test_apply_verification_requires_hash_and_network():
    order = make_order(OrderStatus.PAID_REPORTED)
    with pytest.raises(InvalidOrderStateException):
        order.apply_verification({"verified": True})


def test_confirm_payment_auto_delivery_completes():
    order = make_order(OrderStatus.PAID_REPORTED)
    order.confirm_payment(auto_delivery=True)
    assert order.status == OrderStatus.COMPLETED


def test_confirm_payment_manual_delivery_stops_at_confirmed():
    order = make_order(OrderStatus.PAYMENT_VERIFIED)
    order.confirm_payment(auto_delivery=False)
    assert order.status == OrderStatus.CONFIRMED


def test_confirm_payment_requires_reported_payment():
    order = make_order(OrderStatus.CREATED)
    with pytest.raises(InvalidOrderStateException):
        order.confirm_payment(auto_delivery=False)


@pytest.mark.parametrize(
    "status",
    [OrderStatus.COMPLETED, OrderStatus.REFUNDED, OrderStatus.CANCELLED, OrderStatus.REFUND_REQUESTED],
)
def test_cancel_refused_outside_cancellable_statuses(status):
    order = make_order(status)
    with pytest.raises(InvalidOrderStateException):
        order.cancel()
    assert order.status == status


def test_refund_hooks():
    order = make_order(OrderStatus.COMPLETED)
    order.mark_refund_requested()
    assert order.status == OrderStatus.REFUND_REQUESTED
    assert order.restore_after_refund_rejection() is True
    assert order.status == OrderStatus.COMPLETED


def test_restore_after_rejection_is_noop_elsewhere():
    order = make_order(OrderStatus.CANCELLED)
    assert order.restore_after_refund_rejection() is False
    assert order.status == OrderStatus.CANCELLED


def test_refund_not_allowed_from_created():
    order = make_order(OrderStatus.CREATED)
    with pytest.raises(InvalidOrderStateException):
        order.mark_refund_requested()


def test_party_guards():
    order = make_order()
    order.ensure_buyer(10)
    order.ensure_seller(20)
    with pytest.raises(OrderAccessForbiddenException):
        order.ensure_buyer(20)
    with pytest.raises(OrderAccessForbiddenException):
        order.ensure_party(99)
