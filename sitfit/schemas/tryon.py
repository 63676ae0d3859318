"""Schemas for virtual try-on requests and results."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GarmentType(str, Enum):
    """What the provider should dress the model in."""

    FULL_BODY = "full_body"
    COMBINATION = "comb"


class TryOnStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TryOnRequest(BaseModel):
    """Body of ``POST /api/tryon``. Images are base64 data URLs."""

    model_image: str = Field(alias="modelImage", min_length=1)
    outfit_image: str = Field(alias="outfitImage", min_length=1)
    garment_type: GarmentType = Field(default=GarmentType.FULL_BODY, alias="garmentType")
    bottom_cloth_image: Optional[str] = Field(default=None, alias="bottomClothImage")

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    @model_validator(mode="after")
    def _drop_unused_bottom_image(self) -> "TryOnRequest":
        # Only combination try-ons send a separate bottom garment
        if self.garment_type != GarmentType.COMBINATION:
            self.bottom_cloth_image = None
        return self


class GenerationResult(BaseModel):
    """Successful output of the image-generation provider."""

    image_url: str
    request_id: Optional[str] = None
    message: str = "Virtual try-on generated successfully"


class TryOnResult(BaseModel):
    """A try-on attempt as stored in the ``tryon_results`` collection."""

    id: Optional[str] = None
    user_id: str = Field(alias="userId")
    garment_type: GarmentType = Field(alias="garmentType")
    status: TryOnStatus = Field(default=TryOnStatus.PROCESSING, validate_default=True)
    generated_image_url: Optional[str] = Field(default=None, alias="generatedImageUrl")
    request_id: Optional[str] = Field(default=None, alias="requestId")
    message: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class TryOnHistoryResponse(BaseModel):
    history: list[TryOnResult]
    count: int
