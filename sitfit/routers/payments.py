"""API endpoints for premium subscription payments."""

import logging
from typing import List

from fastapi import APIRouter, Depends

from sitfit.dependencies import get_payment_service
from sitfit.schemas.credits import PaymentRecord
from sitfit.schemas.payments import (CreateOrderRequest, OrderHandle,
                                     VerifyPaymentRequest,
                                     VerifyPaymentResponse)
from sitfit.security import Identity, get_current_identity
from sitfit.services.payments import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["payments"])


@router.post("/create-order", response_model=OrderHandle)
async def create_order(
    body: CreateOrderRequest,
    identity: Identity = Depends(get_current_identity),
    payments: PaymentService = Depends(get_payment_service),
) -> OrderHandle:
    """Create a payment order for a premium plan.

    Raises:
        OrderAmountMismatch: If the amount is not the plan's price
        PaymentProviderError: If the provider fails
    """
    return await payments.create_order(identity.user_id, body.plan, body.amount)


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    identity: Identity = Depends(get_current_identity),
    payments: PaymentService = Depends(get_payment_service),
) -> VerifyPaymentResponse:
    """Verify a completed payment and activate the subscription."""
    await payments.verify_and_upgrade(
        identity.user_id,
        body.order_id,
        body.payment_id,
        body.signature,
        body.plan,
    )
    return VerifyPaymentResponse(success=True, message="Payment verified and subscription activated")


@router.get("/history", response_model=List[PaymentRecord])
async def get_payment_history(
    identity: Identity = Depends(get_current_identity),
    payments: PaymentService = Depends(get_payment_service),
) -> List[PaymentRecord]:
    return await payments.get_payment_history(identity.user_id)
