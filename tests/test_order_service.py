import asyncio
from decimal import Decimal

import pytest
from pydantic import ValidationError

from application.dtos.identity import CurrentUser
from application.dtos.orders import CreateOrderDTO, ReportPaymentDTO
from application.dtos.verification import TransactionVerification
from application.services.order_service import OrderApplicationService
from domain.common.exceptions import (
    InvalidOrderStateException,
    OrderAccessForbiddenException,
    OrderNotFoundException,
    OrderStateConflictException,
    ProductNotFoundException,
    SelfPurchaseException,
)
from domain.order.entity import OrderStatus
from domain.product.entity import DeliveryType
from tests.fakes import ReadBarrier, RecordingNotifier

BUYER = 10
SELLER = 20
STRANGER = 30

GOOD_TX = "0x" + "a1" * 32
BAD_TX = "0x" + "b2" * 32
SLOW_TX = "0x" + "c3" * 32
SOL_SIG = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"


@pytest.fixture
def service(uow_factory, verifier, notifier) -> OrderApplicationService:
    return OrderApplicationService(uow_factory=uow_factory, verifier=verifier, notifier=notifier)


async def _create(service, store, **product_kwargs):
    product = store.add_product(SELLER, **product_kwargs)
    return await service.create_order(BUYER, CreateOrderDTO(product_id=product.id))


@pytest.mark.asyncio
async def test_create_order_snapshots_price_and_notifies_seller(service, store, notifier):
    order = await _create(service, store, price="12.50", title="Agent template")
    assert order.status == OrderStatus.CREATED
    assert order.amount_usd == Decimal("12.50")
    assert order.seller_id == SELLER
    assert notifier.sent == [("order_created", (SELLER, order.id, "Agent template"))]


@pytest.mark.asyncio
async def test_self_purchase_rejected_and_no_order_created(service, store):
    product = store.add_product(BUYER)
    with pytest.raises(SelfPurchaseException):
        await service.create_order(BUYER, CreateOrderDTO(product_id=product.id))
    assert store.orders == {}


@pytest.mark.asyncio
async def test_create_order_for_missing_product(service):
    with pytest.raises(ProductNotFoundException):
        await service.create_order(BUYER, CreateOrderDTO(product_id=999))


@pytest.mark.asyncio
async def test_manual_order_end_to_end(service, store, verifier, notifier):
    order = await _create(service, store, price="50.00", delivery_type=DeliveryType.MANUAL)
    assert order.amount_usd == Decimal("50.00")

    order = await service.report_payment(order.id, BUYER, ReportPaymentDTO())
    assert order.status == OrderStatus.PAID_REPORTED
    assert verifier.calls == []

    order = await service.confirm_payment(order.id, SELLER)
    assert order.status == OrderStatus.CONFIRMED

    order = await service.complete_order(order.id, SELLER)
    assert order.status == OrderStatus.COMPLETED

    delivery = await service.get_delivery_content(order.id, BUYER)
    assert delivery.delivery_type == DeliveryType.MANUAL
    assert delivery.delivery_content == "license key: ABC-123"

    with pytest.raises(OrderAccessForbiddenException):
        await service.get_delivery_content(order.id, STRANGER)

    assert notifier.names() == [
        "order_created",
        "payment_reported",
        "payment_confirmed",
        "order_completed",
    ]


@pytest.mark.asyncio
async def test_auto_delivery_confirm_goes_straight_to_completed(service, store, notifier):
    order = await _create(service, store, delivery_type=DeliveryType.AUTO)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())
    order = await service.confirm_payment(order.id, SELLER)
    assert order.status == OrderStatus.COMPLETED
    assert notifier.names()[-2:] == ["payment_confirmed", "order_completed"]


@pytest.mark.asyncio
async def test_report_payment_with_verified_transaction(service, store, verifier, notifier):
    verifier.results[GOOD_TX] = TransactionVerification(
        verified=True, amount="4.00000000", from_address="0xfrom", to="0xto", block_number=100
    )
    order = await _create(service, store)
    order = await service.report_payment(
        order.id, BUYER, ReportPaymentDTO(transaction_hash=GOOD_TX, payment_network="eth")
    )
    assert order.status == OrderStatus.PAYMENT_VERIFIED
    assert order.payment_verified is True
    assert order.verification_details == {
        "verified": True,
        "amount": "4.00000000",
        "from": "0xfrom",
        "to": "0xto",
        "blockNumber": 100,
    }
    assert verifier.calls == [(GOOD_TX, "eth")]
    assert notifier.sent[-1] == ("payment_reported", (SELLER, order.id, True))


@pytest.mark.asyncio
async def test_report_payment_with_unverifiable_transaction(service, store, verifier):
    order = await _create(service, store)
    order = await service.report_payment(
        order.id, BUYER, ReportPaymentDTO(transaction_hash=BAD_TX, payment_network="bsc")
    )
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.payment_verified is False
    assert order.verification_details["verified"] is False
    assert order.verification_details["error"] == "Transaction not found on blockchain"


@pytest.mark.asyncio
async def test_report_payment_hash_without_network_skips_verification(service, store, verifier):
    order = await _create(service, store)
    order = await service.report_payment(order.id, BUYER, ReportPaymentDTO(transaction_hash="0xabc"))
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.transaction_hash == "0xabc"
    assert verifier.calls == []


@pytest.mark.asyncio
async def test_report_payment_twice_fails_without_network_call(service, store, verifier):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())

    with pytest.raises(InvalidOrderStateException):
        await service.report_payment(
            order.id, BUYER, ReportPaymentDTO(transaction_hash=GOOD_TX, payment_network="eth")
        )
    assert verifier.calls == []
    assert store.orders[order.id].status == OrderStatus.PAID_REPORTED


@pytest.mark.asyncio
async def test_report_payment_by_non_buyer_forbidden(service, store):
    order = await _create(service, store)
    with pytest.raises(OrderAccessForbiddenException):
        await service.report_payment(order.id, SELLER, ReportPaymentDTO())
    assert store.orders[order.id].status == OrderStatus.CREATED


@pytest.mark.asyncio
async def test_verify_payment_failure_keeps_status_and_records_error(service, store, verifier):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO(transaction_hash=SLOW_TX, payment_network="eth"))

    verifier.results[SLOW_TX] = TransactionVerification.failure("Transaction failed or is still pending")
    order = await service.verify_payment(order.id, BUYER)
    assert order.status == OrderStatus.PAID_REPORTED
    assert order.verification_details == {
        "verified": False,
        "error": "Transaction failed or is still pending",
    }


@pytest.mark.asyncio
async def test_verify_payment_success_moves_to_verified(service, store, verifier, notifier):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO(transaction_hash=SOL_SIG, payment_network="sol"))

    verifier.results[SOL_SIG] = TransactionVerification(verified=True, amount="1.500000000", confirmations=1)
    order = await service.verify_payment(order.id, BUYER)
    assert order.status == OrderStatus.PAYMENT_VERIFIED
    assert order.payment_verified is True
    assert notifier.sent[-1] == ("payment_reported", (SELLER, order.id, True))


@pytest.mark.asyncio
async def test_verify_payment_without_hash_is_invalid(service, store, verifier):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())
    with pytest.raises(InvalidOrderStateException):
        await service.verify_payment(order.id, BUYER)
    assert verifier.calls == []


@pytest.mark.asyncio
async def test_only_seller_confirms(service, store):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())
    with pytest.raises(OrderAccessForbiddenException):
        await service.confirm_payment(order.id, BUYER)


@pytest.mark.asyncio
async def test_cancel_by_buyer_notifies_seller(service, store, notifier):
    order = await _create(service, store)
    order = await service.cancel_order(order.id, BUYER)
    assert order.status == OrderStatus.CANCELLED
    assert notifier.sent[-1] == ("order_cancelled", (SELLER, order.id))


@pytest.mark.asyncio
async def test_cancel_by_seller_notifies_buyer(service, store, notifier):
    order = await _create(service, store)
    await service.cancel_order(order.id, SELLER)
    assert notifier.sent[-1] == ("order_cancelled", (BUYER, order.id))


@pytest.mark.asyncio
async def test_cancel_after_completion_fails(service, store):
    order = await _create(service, store, delivery_type=DeliveryType.AUTO)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())
    await service.confirm_payment(order.id, SELLER)

    with pytest.raises(InvalidOrderStateException):
        await service.cancel_order(order.id, BUYER)
    assert store.orders[order.id].status == OrderStatus.COMPLETED


@pytest.mark.asyncio
async def test_cancel_by_stranger_forbidden(service, store):
    order = await _create(service, store)
    with pytest.raises(OrderAccessForbiddenException):
        await service.cancel_order(order.id, STRANGER)


@pytest.mark.asyncio
async def test_delivery_requires_completed_order(service, store):
    order = await _create(service, store)
    with pytest.raises(InvalidOrderStateException):
        await service.get_delivery_content(order.id, BUYER)


@pytest.mark.asyncio
async def test_unknown_order(service):
    with pytest.raises(OrderNotFoundException):
        await service.confirm_payment(404, SELLER)


@pytest.mark.asyncio
async def test_get_order_visibility(service, store):
    order = await _create(service, store)
    assert (await service.get_order(order.id, CurrentUser(id=BUYER))).id == order.id
    assert (await service.get_order(order.id, CurrentUser(id=SELLER))).id == order.id
    assert (await service.get_order(order.id, CurrentUser(id=STRANGER, role="admin"))).id == order.id
    with pytest.raises(OrderAccessForbiddenException):
        await service.get_order(order.id, CurrentUser(id=STRANGER))


@pytest.mark.asyncio
async def test_purchase_and_sales_lists(service, store):
    first = await _create(service, store)
    second = await _create(service, store)

    purchases = await service.list_purchases(BUYER)
    assert {o.id for o in purchases} == {first.id, second.id}
    assert await service.list_purchases(SELLER) == []
    sales = await service.list_sales(SELLER)
    assert len(sales) == 2
    assert len(await service.list_orders()) == 2


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_transition(uow_factory, verifier, store):
    service = OrderApplicationService(uow_factory, verifier, RecordingNotifier(fail=True))
    order = await _create(service, store)
    order = await service.cancel_order(order.id, BUYER)
    assert order.status == OrderStatus.CANCELLED
    assert store.orders[order.id].status == OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_concurrent_confirm_and_cancel_exactly_one_wins(service, store):
    order = await _create(service, store)
    await service.report_payment(order.id, BUYER, ReportPaymentDTO())

    # both requests read PAID_REPORTED before either writes
    store.order_read_barrier = ReadBarrier(2)
    results = await asyncio.gather(
        service.confirm_payment(order.id, SELLER),
        service.cancel_order(order.id, BUYER),
        return_exceptions=True,
    )
    store.order_read_barrier = None

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], OrderStateConflictException)
    assert store.orders[order.id].status == winners[0].status
    assert winners[0].status in {OrderStatus.CONFIRMED, OrderStatus.CANCELLED}


@pytest.mark.parametrize(
    "tx_hash, network",
    [
        ("0xabc", "eth"),
        ("a1" * 32, "polygon"),
        ("0x" + "a1" * 32, "bitcoin"),
        ("../../eth/main/txs/deadbeef", "bitcoin"),
        ("../../eth/main/txs/deadbeef", None),
        ("0OIl" * 10, "solana"),
    ],
)
def test_report_payment_dto_rejects_malformed_hash(tx_hash, network):
    with pytest.raises(ValidationError):
        ReportPaymentDTO(transaction_hash=tx_hash, payment_network=network)


@pytest.mark.parametrize(
    "tx_hash, network",
    [
        (GOOD_TX, "ethereum"),
        (GOOD_TX.upper().replace("0X", "0x"), "bsc"),
        ("f" * 64, "btc"),
        (SOL_SIG, "solana"),
        ("0xabc", None),
        ("0xabc", "dogecoin"),
    ],
)
def test_report_payment_dto_accepts_well_formed_hash(tx_hash, network):
    dto = ReportPaymentDTO(transaction_hash=tx_hash, payment_network=network)
    assert dto.transaction_hash == tx_hash


@pytest.mark.asyncio
async def test_readonly_precheck_never_commits(service, store, uow_factory, verifier):
    verifier.results[GOOD_TX] = TransactionVerification(verified=True, amount="4.00000000")
    order = await _create(service, store)
    uow_factory.created.clear()

    await service.report_payment(order.id, BUYER, ReportPaymentDTO(transaction_hash=GOOD_TX, payment_network="eth"))

    readonly = [uow for uow in uow_factory.created if uow._readonly]
    writes = [uow for uow in uow_factory.created if not uow._readonly]
    assert readonly and all(uow.commits == 0 for uow in readonly)
    assert len(writes) == 1 and writes[0].commits == 1
