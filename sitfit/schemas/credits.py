"""Schemas for the per-user credit ledger."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Premium users get this many credits instead of a real "unlimited" marker
UNLIMITED_CREDITS = 999999


class SubscriptionType(str, Enum):
    """Subscription tier stored on the ledger."""

    FREE = "free"
    PREMIUM = "premium"


class Plan(str, Enum):
    """Billing period of a premium subscription."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


class PaymentStatus(str, Enum):
    """Status of a recorded payment. Failed verifications are never recorded."""

    SUCCESS = "success"


class UserCredits(BaseModel):
    """Credits and subscription state, embedded as ``users/{user_id}.credits``.

    Field names are stored in camelCase to stay compatible with existing
    documents and the web client.
    """

    credits: int = Field(ge=0)
    is_premium: bool = Field(default=False, alias="isPremium")
    subscription_type: SubscriptionType = Field(
        default=SubscriptionType.FREE, alias="subscriptionType", validate_default=True
    )
    subscription_end_date: Optional[datetime] = Field(default=None, alias="subscriptionEndDate")
    last_reset_date: datetime = Field(alias="lastResetDate")
    total_used: int = Field(default=0, ge=0, alias="totalUsed")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def is_unlimited(self) -> bool:
        """Whether the balance is the premium sentinel rather than a real count."""
        return self.credits >= UNLIMITED_CREDITS

    def has_credit(self) -> bool:
        """Whether a paid operation may proceed."""
        return self.is_premium or self.credits > 0


class PaymentRecord(BaseModel):
    """A verified payment, stored as ``users/{user_id}.paymentHistory.{payment_id}``."""

    order_id: str = Field(alias="orderId")
    payment_id: str = Field(alias="paymentId")
    plan: Plan
    amount: int
    date: datetime
    status: PaymentStatus = Field(default=PaymentStatus.SUCCESS, validate_default=True)

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class SubscriptionStatusResponse(BaseModel):
    """Response for the subscription status check."""

    active: bool
    subscription_type: SubscriptionType = Field(alias="subscriptionType")
    subscription_end_date: Optional[datetime] = Field(default=None, alias="subscriptionEndDate")

    model_config = ConfigDict(populate_by_name=True)
