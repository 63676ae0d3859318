"""
Unit tests for the payment order and verification workflow
"""
import hashlib
import hmac
import json

import httpx
import pytest

from sitfit.schemas.credits import Plan
from sitfit.schemas.payments import ProviderOrder
from sitfit.services.payments import (PaymentService, build_receipt_id,
                                      compute_signature)
from sitfit.services.razorpay import RazorpayClient
from sitfit.utils.errors import (InvalidPaymentSignature, OrderAmountMismatch,
                                 PaymentOrderMismatch, PaymentProviderError)
from tests.conftest import RAZORPAY_KEY_ID, RAZORPAY_SECRET, USER_ID

ORDER_ID = "order_TEST123"
PAYMENT_ID = "pay_ABC123"


def flip_last_character(signature: str) -> str:
    return signature[:-1] + ("0" if signature[-1] != "0" else "1")


def test_receipt_id_is_bounded_for_long_user_ids():
    receipt = build_receipt_id("u" * 200, timestamp_ms=1712345678901)

    assert len(receipt) <= 40
    assert receipt == f"rcpt_{'u' * 20}_45678901"


def test_receipt_id_for_short_user_id():
    assert build_receipt_id("abc", timestamp_ms=1712345678901) == "rcpt_abc_45678901"


def test_signature_matches_known_hmac():
    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert compute_signature("secret", "order_1", "pay_1") == expected


@pytest.mark.asyncio
async def test_create_order_sends_minor_units(payment_service, razorpay_requests):
    order = await payment_service.create_order(USER_ID, Plan.MONTHLY, 299)

    assert order.order_id == ORDER_ID
    assert order.amount == 29900
    assert order.currency == "INR"
    assert order.key == RAZORPAY_KEY_ID

    assert len(razorpay_requests) == 1
    request = razorpay_requests[0]
    assert request.url.path == "/v1/orders"
    assert request.headers["authorization"].startswith("Basic ")
    body = json.loads(request.content)
    assert body["amount"] == 29900
    assert body["notes"] == {"userId": USER_ID, "plan": "monthly"}
    assert len(body["receipt"]) <= 40


@pytest.mark.asyncio
async def test_create_order_yearly(payment_service):
    order = await payment_service.create_order(USER_ID, Plan.YEARLY, 2999)

    assert order.amount == 299900


@pytest.mark.asyncio
async def test_create_order_rejects_amount_mismatch(payment_service, razorpay_requests):
    with pytest.raises(OrderAmountMismatch) as exc_info:
        await payment_service.create_order(USER_ID, Plan.MONTHLY, 1)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["expected_amount"] == 299
    assert razorpay_requests == []


@pytest.mark.asyncio
async def test_create_order_provider_failure(ledger):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": {"code": "SERVER_ERROR"}}))
    provider = RazorpayClient(RAZORPAY_KEY_ID, RAZORPAY_SECRET, client=httpx.AsyncClient(transport=transport))
    service = PaymentService(ledger, provider)

    with pytest.raises(PaymentProviderError) as exc_info:
        await service.create_order(USER_ID, Plan.MONTHLY, 299)

    assert exc_info.value.status_code == 502
    assert exc_info.value.provider_status == 500


@pytest.mark.asyncio
async def test_create_order_provider_unreachable(ledger):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = RazorpayClient(
        RAZORPAY_KEY_ID, RAZORPAY_SECRET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(PaymentProviderError):
        await PaymentService(ledger, provider).create_order(USER_ID, Plan.YEARLY, 2999)


async def paid_order(payment_service, plan=Plan.MONTHLY, payment_id=PAYMENT_ID, user_id=USER_ID):
    """Create an order for ``plan`` and return the checkout widget's confirmation for it."""
    order = await payment_service.create_order(user_id, plan, payment_service.price_for(plan))
    return order.order_id, payment_id, compute_signature(RAZORPAY_SECRET, order.order_id, payment_id)


@pytest.mark.asyncio
async def test_verify_upgrades_and_records_payment(payment_service, ledger, clock):
    order_id, payment_id, signature = await paid_order(payment_service)

    assert await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)

    credits = await ledger.get_or_init(USER_ID)
    assert credits.is_premium is True
    assert credits.is_unlimited()
    history = await payment_service.get_payment_history(USER_ID)
    assert len(history) == 1
    assert history[0].order_id == ORDER_ID
    assert history[0].payment_id == PAYMENT_ID
    assert history[0].amount == 299
    assert history[0].status == "success"
    assert history[0].date == clock.now


@pytest.mark.asyncio
async def test_verify_looks_up_the_paid_order(payment_service, razorpay_requests):
    order_id, payment_id, signature = await paid_order(payment_service)

    await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)

    lookup = razorpay_requests[-1]
    assert lookup.method == "GET"
    assert lookup.url.path == f"/v1/orders/{order_id}"
    assert lookup.headers["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_verify_rejects_plan_other_than_ordered(payment_service, ledger, users):
    order_id, payment_id, signature = await paid_order(payment_service, Plan.MONTHLY)
    before = await users.find_one({"_id": USER_ID})

    with pytest.raises(PaymentOrderMismatch) as exc_info:
        await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.YEARLY)

    assert exc_info.value.status_code == 400
    assert await users.find_one({"_id": USER_ID}) == before
    assert await ledger.check_active(USER_ID) is False
    assert await payment_service.get_payment_history(USER_ID) == []


@pytest.mark.asyncio
async def test_verify_rejects_order_of_another_user(payment_service, ledger):
    order_id, payment_id, signature = await paid_order(payment_service, user_id="someone-else")

    with pytest.raises(PaymentOrderMismatch):
        await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)

    assert await ledger.check_active(USER_ID) is False


@pytest.mark.asyncio
async def test_verify_rejects_order_at_another_price(payment_service, razorpay_orders, ledger):
    order_id, payment_id, signature = await paid_order(payment_service)
    razorpay_orders[order_id]["amount"] = 100

    with pytest.raises(PaymentOrderMismatch):
        await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)

    assert await ledger.check_active(USER_ID) is False


@pytest.mark.asyncio
async def test_verify_unknown_order_is_a_provider_error(payment_service, ledger):
    signature = compute_signature(RAZORPAY_SECRET, "order_UNKNOWN", PAYMENT_ID)

    with pytest.raises(PaymentProviderError) as exc_info:
        await payment_service.verify_and_upgrade(USER_ID, "order_UNKNOWN", PAYMENT_ID, signature, Plan.MONTHLY)

    assert exc_info.value.provider_status == 400
    assert await ledger.check_active(USER_ID) is False


@pytest.mark.asyncio
async def test_tampered_signature_changes_nothing(payment_service, ledger, users, razorpay_requests):
    order_id, payment_id, signature = await paid_order(payment_service)
    await ledger.get_or_init(USER_ID)
    before = await users.find_one({"_id": USER_ID})

    for tampered in (flip_last_character(signature), signature.upper(), "", "deadbeef"):
        with pytest.raises(InvalidPaymentSignature):
            await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, tampered, Plan.MONTHLY)

    assert await users.find_one({"_id": USER_ID}) == before
    assert await payment_service.get_payment_history(USER_ID) == []
    # The order is never looked up for an unsigned confirmation
    assert [request.method for request in razorpay_requests] == ["POST"]


@pytest.mark.asyncio
async def test_signature_for_other_payment_is_rejected(payment_service, ledger):
    order_id, _, _ = await paid_order(payment_service)
    signature = compute_signature(RAZORPAY_SECRET, order_id, "pay_OTHER")

    with pytest.raises(InvalidPaymentSignature):
        await payment_service.verify_and_upgrade(USER_ID, order_id, PAYMENT_ID, signature, Plan.MONTHLY)

    assert await ledger.check_active(USER_ID) is False


@pytest.mark.asyncio
async def test_duplicate_verification_does_not_extend(payment_service, ledger, clock):
    order_id, payment_id, signature = await paid_order(payment_service)
    await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)
    first_end = (await ledger.get_or_init(USER_ID)).subscription_end_date

    clock.advance(days=5)
    assert await payment_service.verify_and_upgrade(USER_ID, order_id, payment_id, signature, Plan.MONTHLY)

    credits = await ledger.get_or_init(USER_ID)
    assert credits.subscription_end_date == first_end
    assert len(await payment_service.get_payment_history(USER_ID)) == 1


@pytest.mark.asyncio
async def test_new_payment_extends_from_now(payment_service, ledger, clock):
    first = await paid_order(payment_service, Plan.MONTHLY)
    await payment_service.verify_and_upgrade(USER_ID, *first, Plan.MONTHLY)

    clock.advance(days=10)
    second = await paid_order(payment_service, Plan.YEARLY, payment_id="pay_NEXT")
    await payment_service.verify_and_upgrade(USER_ID, *second, Plan.YEARLY)

    credits = await ledger.get_or_init(USER_ID)
    assert credits.subscription_end_date.year == clock.now.year + 1
    history = await payment_service.get_payment_history(USER_ID)
    assert [record.payment_id for record in history] == ["pay_NEXT", PAYMENT_ID]


def test_provider_order_accepts_empty_notes_list():
    order = ProviderOrder.model_validate(
        {"id": "order_1", "entity": "order", "amount": 29900, "currency": "INR", "notes": []}
    )

    assert order.notes == {}
