"""Miragic virtual try-on API client."""

import asyncio
import base64
import binascii
import logging
import re
from typing import Any, Dict, Optional

import httpx

from sitfit.schemas.tryon import GarmentType, GenerationResult
from sitfit.utils.errors import ImageGenerationFailed

DATA_URL_PREFIX = re.compile(r"^data:image/[a-z]+;base64,")
ACCEPTED_DATA_URL = re.compile(r"^data:image/(jpeg|jpg|png|gif);base64,")


def decode_data_url(data: str) -> bytes:
    """Decode a base64 image, with or without its ``data:image/...`` prefix."""
    return base64.b64decode(DATA_URL_PREFIX.sub("", data, count=1), validate=True)


class MiragicClient:
    """Submits try-on jobs to Miragic and waits for their results."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://backend.miragic.ai",
        request_timeout: float = 60.0,
        poll_timeout: float = 10.0,
        poll_interval: float = 2.0,
        max_poll_attempts: int = 30,
        max_image_bytes: int = 10 * 1024 * 1024,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.poll_timeout = poll_timeout
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.max_image_bytes = max_image_bytes
        self.client = client

        if not api_key:
            self.logger.warning("Miragic API key not found in environment variables")

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure httpx client exists."""
        if self.client is None:
            self.client = httpx.AsyncClient()
        return self.client

    def validate_image(self, data_url: str) -> bool:
        """Check that an upload is a JPEG/PNG/GIF data URL within the size limit."""
        if not ACCEPTED_DATA_URL.match(data_url):
            return False
        try:
            image = decode_data_url(data_url)
        except (binascii.Error, ValueError):
            return False
        return 0 < len(image) <= self.max_image_bytes

    async def generate(
        self,
        model_image: str,
        outfit_image: str,
        garment_type: GarmentType = GarmentType.FULL_BODY,
        bottom_cloth_image: Optional[str] = None,
    ) -> GenerationResult:
        """Generate a try-on image of the model wearing the outfit.

        Raises:
            ImageGenerationFailed: If the job cannot be submitted, fails, or times out
        """
        if not self.api_key:
            raise ImageGenerationFailed("Image generation is not configured", reason="Miragic API key not configured")

        garment_type = GarmentType(garment_type)
        files = {
            "humanImage": ("human_image.jpg", decode_data_url(model_image), "image/jpeg"),
            "clothImage": ("cloth_image.jpg", decode_data_url(outfit_image), "image/jpeg"),
        }
        if garment_type == GarmentType.COMBINATION and bottom_cloth_image:
            files["bottomClothImage"] = (
                "bottom_cloth_image.jpg",
                decode_data_url(bottom_cloth_image),
                "image/jpeg",
            )

        client = await self._ensure_client()
        try:
            response = await client.post(
                f"{self.base_url}/api/v1/virtual-try-on",
                data={"garmentType": garment_type.value},
                files=files,
                headers={"X-API-Key": self.api_key},
                timeout=self.request_timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response) from e
        except httpx.HTTPError as e:
            raise ImageGenerationFailed(
                "Cannot connect to the try-on service. Please try again later.", reason=str(e)
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise ImageGenerationFailed(
                "The try-on service is having problems. Please try again later.",
                reason=f"Unreadable response from Miragic: {e}",
            ) from e
        if not isinstance(body, dict):
            raise ImageGenerationFailed(reason=f"Unexpected response from Miragic: {body!r}")
        if not body.get("success"):
            raise ImageGenerationFailed(reason=body.get("message") or "API returned unsuccessful response")

        job = body.get("data") or {}
        if job.get("status") == "COMPLETED":
            return self._completed(job, job.get("id"))

        job_id = job.get("jobId") or job.get("id")
        if not job_id:
            raise ImageGenerationFailed(reason="No job ID received from API")

        self.logger.info(f"Job {job_id} is processing, polling for results")
        return await self._poll_for_result(str(job_id))

    async def _poll_for_result(self, job_id: str) -> GenerationResult:
        client = await self._ensure_client()

        for attempt in range(1, self.max_poll_attempts + 1):
            try:
                response = await client.get(
                    f"{self.base_url}/api/v1/virtual-try-on/{job_id}",
                    headers={"X-API-Key": self.api_key},
                    timeout=self.poll_timeout,
                )
                response.raise_for_status()
                job = response.json().get("data") or {}
            except (httpx.HTTPError, ValueError, AttributeError) as e:
                self.logger.warning(f"Error polling job {job_id} (attempt {attempt}): {e}")
            else:
                status = job.get("status")
                self.logger.debug(f"Job {job_id} status: {status} (attempt {attempt})")
                if status == "COMPLETED":
                    return self._completed(job, job_id)
                if status == "FAILED":
                    raise ImageGenerationFailed(reason=job.get("errorMessage") or "Job failed during processing")

            if attempt < self.max_poll_attempts:
                await asyncio.sleep(self.poll_interval)

        raise ImageGenerationFailed(
            "The try-on took too long. Please try again.", reason=f"Timeout waiting for job {job_id}"
        )

    def _completed(self, job: Dict[str, Any], job_id: Optional[str]) -> GenerationResult:
        image_url = job.get("processedUrl") or job.get("resultImagePath")
        if not image_url:
            raise ImageGenerationFailed(reason=f"Job {job_id} completed without an image")
        self.logger.info(f"Job {job_id} completed")
        return GenerationResult(image_url=image_url, request_id=str(job_id) if job_id is not None else None)

    def _status_error(self, response: httpx.Response) -> ImageGenerationFailed:
        status = response.status_code
        if status == 400:
            message = "Invalid request. Please check your images."
        elif status == 402:
            message = "The try-on service is temporarily unavailable. Please try again later."
        elif status == 429:
            message = "Too many try-on requests. Please try again later."
        elif status >= 500:
            message = "The try-on service is having problems. Please try again later."
        else:
            message = "Failed to generate try-on image"
        return ImageGenerationFailed(message, reason=f"Miragic returned {status}: {response.text}")

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
