"""API endpoints for virtual try-on."""

import logging

from fastapi import APIRouter, Depends, Query

from sitfit.dependencies import get_tryon_gate
from sitfit.schemas.tryon import TryOnHistoryResponse, TryOnRequest, TryOnResult
from sitfit.security import Identity, get_current_identity
from sitfit.services.tryon import TryOnGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tryon", tags=["tryon"])


@router.post("", response_model=TryOnResult)
async def generate_tryon(
    body: TryOnRequest,
    identity: Identity = Depends(get_current_identity),
    gate: TryOnGate = Depends(get_tryon_gate),
) -> TryOnResult:
    """Generate a virtual try-on image. Uses one credit unless the caller is premium.

    Raises:
        InsufficientCredits: 402 with ``upgrade_required`` when no credit is left
        ImageGenerationFailed: If the provider fails; the credit is not refunded
    """
    return await gate.generate(identity.user_id, body)


@router.get("/history", response_model=TryOnHistoryResponse)
async def get_tryon_history(
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(get_current_identity),
    gate: TryOnGate = Depends(get_tryon_gate),
) -> TryOnHistoryResponse:
    history = await gate.history(identity.user_id, limit)
    return TryOnHistoryResponse(history=history, count=len(history))
