"""Payment order and verification workflow.

An attempt moves ``REQUESTED -> ORDER_CREATED -> (client pays) -> VERIFYING``
and ends ``UPGRADED`` or ``REJECTED``. Only a valid signature over the
provider's ids is trusted as proof of payment, and only the order the provider
recorded decides which plan was bought.
"""

import hashlib
import hmac
import logging
import time
from typing import Dict, List, Optional

from sitfit.schemas.credits import PaymentRecord, Plan
from sitfit.schemas.payments import OrderHandle, ProviderOrder
from sitfit.services.credits import CreditLedger
from sitfit.services.razorpay import RazorpayClient
from sitfit.utils.errors import (DuplicatePaymentVerification,
                                 InvalidPaymentSignature, OrderAmountMismatch,
                                 PaymentOrderMismatch)

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "rcpt"
RECEIPT_MAX_LENGTH = 40
DEFAULT_PLAN_PRICES = {Plan.MONTHLY.value: 299, Plan.YEARLY.value: 2999}


def build_receipt_id(user_id: str, timestamp_ms: Optional[int] = None) -> str:
    """Receipt id for an order, never longer than 40 characters.

    Two orders by the same user within the same ~28 hours can only collide if
    their millisecond timestamps share the last 8 digits.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = str(timestamp_ms)[-8:]
    return f"{RECEIPT_PREFIX}_{user_id[:20]}_{suffix}"[:RECEIPT_MAX_LENGTH]


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id``, as the checkout widget signs it."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class PaymentService:
    """Creates subscription orders and commits verified payments to the ledger."""

    def __init__(
        self,
        ledger: CreditLedger,
        provider: RazorpayClient,
        currency: str = "INR",
        plan_prices: Optional[Dict[str, int]] = None,
    ):
        self.ledger = ledger
        self.provider = provider
        self.currency = currency
        self.plan_prices = plan_prices or DEFAULT_PLAN_PRICES

    def price_for(self, plan: Plan) -> int:
        """Authoritative price of ``plan`` in major currency units."""
        return self.plan_prices[Plan(plan).value]

    async def create_order(self, user_id: str, plan: Plan, amount: int) -> OrderHandle:
        """Create a provider order for ``plan``.

        Raises:
            OrderAmountMismatch: If ``amount`` is not the plan's price
            PaymentProviderError: If the provider fails
        """
        expected = self.price_for(plan)
        if amount != expected:
            raise OrderAmountMismatch(Plan(plan).value, amount, expected)

        receipt = build_receipt_id(user_id)
        order = await self.provider.create_order(
            amount_minor=expected * 100,
            currency=self.currency,
            receipt=receipt,
            notes={"userId": user_id, "plan": Plan(plan).value},
        )
        return OrderHandle(
            order_id=order.id,
            amount=order.amount,
            currency=order.currency,
            key=self.provider.key_id,
        )

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = compute_signature(self.provider.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    async def verify_and_upgrade(
        self,
        user_id: str,
        order_id: str,
        payment_id: str,
        signature: str,
        plan: Plan,
    ) -> bool:
        """Verify a payment confirmation and activate the subscription it paid for.

        The plan is only honoured if the provider's record of the order was
        created for this user and plan at the plan's price. Verifying an
        already recorded payment again succeeds without extending the
        subscription.

        Raises:
            InvalidPaymentSignature: If the signature does not match
            PaymentOrderMismatch: If the order was not created for this user and plan
            PaymentProviderError: If the order cannot be fetched
            LedgerUnavailable: If the ledger cannot be updated
        """
        if not self.verify_signature(order_id, payment_id, signature):
            raise InvalidPaymentSignature(user_id, order_id, payment_id)

        order = await self.provider.fetch_order(order_id)
        self._check_order(user_id, order, plan)

        if await self.ledger.has_payment(user_id, payment_id):
            DuplicatePaymentVerification(user_id, payment_id).log(logging.INFO)
            return True

        record = PaymentRecord(
            order_id=order_id,
            payment_id=payment_id,
            plan=plan,
            amount=self.price_for(plan),
            date=self.ledger.clock(),
        )
        if not await self.ledger.upgrade(user_id, plan, payment=record):
            # Lost a race with a concurrent verification of the same payment
            DuplicatePaymentVerification(user_id, payment_id).log(logging.INFO)
            return True

        logger.info(f"Payment {payment_id} verified for user {user_id} (order {order_id})")
        return True

    def _check_order(self, user_id: str, order: ProviderOrder, plan: Plan) -> None:
        plan = Plan(plan)
        if order.notes.get("userId") != user_id:
            raise PaymentOrderMismatch(user_id, order.id, "order belongs to another user")
        if order.notes.get("plan") != plan.value:
            raise PaymentOrderMismatch(
                user_id, order.id, f"order is for {order.notes.get('plan')} plan, verification claimed {plan.value}"
            )
        if order.amount != self.price_for(plan) * 100 or order.currency != self.currency:
            raise PaymentOrderMismatch(
                user_id, order.id, f"order amount {order.amount} {order.currency} does not match the {plan.value} price"
            )

    async def get_payment_history(self, user_id: str) -> List[PaymentRecord]:
        return await self.ledger.payment_history(user_id)
