"""Gemini API client for image generation with error classification."""

import base64
from typing import Any

import httpx
import structlog

from mascotgen.models.job import AspectRatio, ReferenceImage
from mascotgen.services.exceptions import FatalProviderError, RetryableProviderError

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_PROVIDER_STATUSES = frozenset({"RESOURCE_EXHAUSTED", "UNAVAILABLE", "DEADLINE_EXCEEDED"})


def classify_response_error(
    response: httpx.Response,
) -> FatalProviderError | RetryableProviderError:
    """Classify a non-200 Gemini response into a retry category.

    Classification rules:
        - 429, 500, 502, 503, 504 → RetryableProviderError
        - error.status RESOURCE_EXHAUSTED, UNAVAILABLE, DEADLINE_EXCEEDED → retryable
        - 400 / 401 / 403 / 404 and everything else → FatalProviderError
    """
    status_code = response.status_code
    provider_status = ""
    detail = response.text[:500]
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        error = data["error"]
        provider_status = (error.get("status") or "").upper()
        detail = " ".join(
            part for part in (provider_status, (error.get("message") or "").strip()) if part
        )

    message = f"Gemini request failed (status={status_code}): {detail}"
    if status_code in RETRYABLE_STATUS_CODES or provider_status in RETRYABLE_PROVIDER_STATUSES:
        return RetryableProviderError(message, status_code=status_code)
    if status_code in (401, 403):
        return FatalProviderError(
            f"Gemini authentication failed (status={status_code}). Check GEMINI_API_KEY.",
            status_code=status_code,
        )
    return FatalProviderError(message, status_code=status_code)


def extract_image(data: dict[str, Any]) -> bytes:
    """Pull the first inline image out of a generateContent response.

    Raises:
        FatalProviderError: If the response carries no image (e.g. a safety block)
    """
    candidates = data.get("candidates") or []
    for candidate in candidates:
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            inline = part.get("inline_data") or part.get("inlineData")
            if inline and inline.get("data"):
                try:
                    return base64.b64decode(inline["data"])
                except ValueError as e:
                    raise FatalProviderError("Gemini response payload is invalid") from e

    first = candidates[0] if candidates else {}
    finish_message = first.get("finishMessage") or first.get("finish_message")
    finish_reason = first.get("finishReason") or first.get("finish_reason")
    block_reason = (data.get("promptFeedback") or {}).get("blockReason")
    if finish_message:
        raise FatalProviderError(finish_message)
    if finish_reason or block_reason:
        raise FatalProviderError(
            f"No image data found in response (reason={finish_reason or block_reason})"
        )
    raise FatalProviderError("No image data found in response")


class GeminiClient:
    """Generates images through the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-3-pro-image-preview",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        request_timeout: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key (from GEMINI_API_KEY env var)
            model: Image-capable model identifier
            api_base: REST API base URL
            request_timeout: HTTP timeout for one request in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.request_timeout = request_timeout
        self._transport = transport

    def build_request_body(
        self,
        prompt: str,
        reference_images: list[ReferenceImage],
        aspect_ratio: AspectRatio,
    ) -> dict[str, Any]:
        """Reference images go first as inline data, followed by the prompt text."""
        parts: list[dict[str, Any]] = [
            {
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": base64.b64encode(image.data).decode("ascii"),
                }
            }
            for image in reference_images
        ]
        parts.append({"text": prompt})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": aspect_ratio.value},
            },
        }

    async def generate(
        self,
        prompt: str,
        reference_images: list[ReferenceImage],
        aspect_ratio: AspectRatio = AspectRatio.WIDE_LANDSCAPE,
    ) -> bytes:
        """Generate one image.

        Returns:
            Raw image bytes (PNG)

        Raises:
            RetryableProviderError: Timeout, network failure, overload (429/503)
            FatalProviderError: Auth failure, bad request, no image in response
        """
        if not self.api_key:
            raise FatalProviderError("GEMINI_API_KEY not configured")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        body = self.build_request_body(prompt, reference_images, aspect_ratio)

        logger.info(
            "gemini.request.start",
            model=self.model,
            aspect_ratio=aspect_ratio.value,
            reference_images=len(reference_images),
            prompt_len=len(prompt),
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.request_timeout, transport=self._transport
            ) as client:
                response = await client.post(url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            raise RetryableProviderError(
                f"Request timeout after {self.request_timeout:g}s: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise RetryableProviderError(f"Network error: {e}") from e

        if response.status_code != 200:
            error = classify_response_error(response)
            logger.error(
                "gemini.response.error",
                status_code=response.status_code,
                retryable=error.retryable,
                error_message=error.message,
            )
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise FatalProviderError("Gemini response is not valid JSON") from e

        image = extract_image(data)
        logger.info("gemini.request.success", model=self.model, image_bytes=len(image))
        return image
