"""Credit-gated virtual try-on generation."""

import logging
from datetime import datetime
from typing import Callable, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from sitfit.schemas.tryon import (GarmentType, GenerationResult, TryOnRequest,
                                  TryOnResult, TryOnStatus)
from sitfit.services.credits import CreditLedger
from sitfit.services.miragic import MiragicClient
from sitfit.utils.errors import (GENERIC_RETRY_MESSAGE, ImageGenerationFailed,
                                 InsufficientCredits, InvalidImage)
from sitfit.utils.utils import utcnow

logger = logging.getLogger(__name__)


class TryOnResultRepository:
    """Stores try-on attempts. Writes are best effort and never block a generation."""

    def __init__(self, collection: AsyncIOMotorCollection, clock: Callable[[], datetime] = utcnow):
        self.collection = collection
        self.clock = clock

    async def create(self, user_id: str, garment_type: GarmentType) -> TryOnResult:
        now = self.clock()
        result = TryOnResult(user_id=user_id, garment_type=garment_type, created_at=now, updated_at=now)
        try:
            inserted = await self.collection.insert_one(result.model_dump(by_alias=True, exclude={"id"}))
            result.id = str(inserted.inserted_id)
        except PyMongoError as e:
            logger.error(f"Failed to save try-on request for user {user_id}: {e}", exc_info=True)
        return result

    async def mark_completed(self, result: TryOnResult, generation: GenerationResult) -> TryOnResult:
        result.status = TryOnStatus.COMPLETED.value
        result.generated_image_url = generation.image_url
        result.request_id = generation.request_id
        result.message = generation.message
        return await self._save_outcome(result)

    async def mark_failed(self, result: TryOnResult, message: str) -> TryOnResult:
        result.status = TryOnStatus.FAILED.value
        result.message = message
        return await self._save_outcome(result)

    async def list_for_user(self, user_id: str, limit: int = 10) -> List[TryOnResult]:
        """Most recent try-ons of the user, newest first."""
        cursor = self.collection.find({"userId": user_id}).sort("createdAt", -1).limit(limit)
        documents = await cursor.to_list(length=limit)
        for document in documents:
            document["id"] = str(document.pop("_id"))
        return [TryOnResult.model_validate(document) for document in documents]

    async def _save_outcome(self, result: TryOnResult) -> TryOnResult:
        result.updated_at = self.clock()
        if result.id is None:
            return result

        try:
            await self.collection.update_one(
                {"_id": ObjectId(result.id)},
                {
                    "$set": {
                        "status": result.status,
                        "generatedImageUrl": result.generated_image_url,
                        "requestId": result.request_id,
                        "message": result.message,
                        "updatedAt": result.updated_at,
                    }
                },
            )
        except PyMongoError as e:
            logger.error(f"Failed to update try-on result {result.id}: {e}", exc_info=True)
        return result


class TryOnGate:
    """Runs a paid try-on only after a credit has been taken from the ledger."""

    def __init__(self, ledger: CreditLedger, provider: MiragicClient, results: TryOnResultRepository):
        self.ledger = ledger
        self.provider = provider
        self.results = results

    def validate(self, request: TryOnRequest) -> None:
        """Reject malformed uploads before any credit is touched."""
        if not self.provider.validate_image(request.model_image):
            raise InvalidImage("model image")
        if not self.provider.validate_image(request.outfit_image):
            raise InvalidImage("outfit image")
        if request.bottom_cloth_image and not self.provider.validate_image(request.bottom_cloth_image):
            raise InvalidImage("bottom cloth image")

    async def generate(self, user_id: str, request: TryOnRequest) -> TryOnResult:
        """Deduct a credit and generate the try-on.

        The credit is not refunded when generation fails.

        Raises:
            InvalidImage: If an upload is rejected
            InsufficientCredits: If the user has no credit left
            LedgerUnavailable: If the ledger cannot be read or updated
            ImageGenerationFailed: If the provider does not produce an image
        """
        self.validate(request)

        credits = await self.ledger.get_or_init(user_id)
        if not credits.has_credit():
            raise InsufficientCredits(user_id, credits.credits)

        # Another request may have taken the last credit since the check above
        if not await self.ledger.deduct(user_id):
            raise InsufficientCredits(user_id)

        result = await self.results.create(user_id, request.garment_type)
        try:
            generation = await self.provider.generate(
                request.model_image,
                request.outfit_image,
                request.garment_type,
                request.bottom_cloth_image,
            )
        except ImageGenerationFailed as e:
            await self.results.mark_failed(result, e.message)
            raise
        except Exception:
            await self.results.mark_failed(result, GENERIC_RETRY_MESSAGE)
            raise

        logger.info(f"Try-on {result.id} generated for user {user_id}")
        return await self.results.mark_completed(result, generation)

    async def history(self, user_id: str, limit: int = 10) -> List[TryOnResult]:
        return await self.results.list_for_user(user_id, limit)
