"""Request and response schemas for the payment workflow."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .credits import Plan

# Provider ids are used as document field names, so no dots or dollar signs
PROVIDER_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class CreateOrderRequest(BaseModel):
    """Body of ``POST /api/payment/create-order``."""

    plan: Plan
    amount: int = Field(gt=0, description="Price in major currency units")


class OrderHandle(BaseModel):
    """An order created with the payment provider, ready for the checkout widget."""

    order_id: str = Field(alias="orderId")
    amount: int = Field(description="Amount in minor currency units")
    currency: str
    key: str = Field(description="Public key id for the checkout widget")

    model_config = ConfigDict(populate_by_name=True)


class VerifyPaymentRequest(BaseModel):
    """Body of ``POST /api/payment/verify``, as returned by the checkout widget."""

    order_id: str = Field(alias="orderId", min_length=1, max_length=64, pattern=PROVIDER_ID_PATTERN)
    payment_id: str = Field(alias="paymentId", min_length=1, max_length=64, pattern=PROVIDER_ID_PATTERN)
    signature: str = Field(min_length=1, max_length=256)
    plan: Plan

    model_config = ConfigDict(populate_by_name=True)


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str


class ProviderOrder(BaseModel):
    """Order as reported by the payment provider."""

    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: Optional[str] = None
    notes: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("notes", mode="before")
    @classmethod
    def _empty_notes(cls, value):
        # Razorpay sends an empty list when an order has no notes
        return value or {}
