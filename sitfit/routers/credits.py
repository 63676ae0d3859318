"""API endpoints for the caller's credits and subscription."""

import logging

from fastapi import APIRouter, Depends

from sitfit.dependencies import get_ledger
from sitfit.schemas.credits import SubscriptionStatusResponse, UserCredits
from sitfit.security import Identity, get_current_identity
from sitfit.services.credits import CreditLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("", response_model=UserCredits)
async def get_credits(
    identity: Identity = Depends(get_current_identity),
    ledger: CreditLedger = Depends(get_ledger),
) -> UserCredits:
    """Get the caller's credits, starting or resetting the free allotment when due."""
    return await ledger.get_or_init(identity.user_id)


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    identity: Identity = Depends(get_current_identity),
    ledger: CreditLedger = Depends(get_ledger),
) -> SubscriptionStatusResponse:
    """Check whether the caller's premium subscription is active."""
    active = await ledger.check_active(identity.user_id)
    credits = await ledger.get_or_init(identity.user_id)
    return SubscriptionStatusResponse(
        active=active,
        subscription_type=credits.subscription_type,
        subscription_end_date=credits.subscription_end_date,
    )
