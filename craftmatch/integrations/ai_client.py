"""LLM / image-generation client.

Talks to an OpenAI-compatible chat completions API (OpenRouter) when a real
key is configured, otherwise returns deterministic mock output for
development and tests.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from craftmatch.config import settings
from craftmatch.integrations.base import BaseIntegration

DEFAULT_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted proportions, cartoon, sketch, text, watermark, "
    "people, cluttered background, unrealistic materials"
)

# 1x1 transparent PNG
_MOCK_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class AIClientError(Exception):
    """Base for all failures of the AI integration."""


class AIValidationError(AIClientError):
    """The model answered, but not in the expected shape."""


class AINetworkError(AIClientError):
    """Timeout, DNS or connection failure."""


class AIHTTPError(AIClientError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class ImagePrompt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    positive_prompt: str = Field(alias="positivePrompt", min_length=1)
    negative_prompt: str = Field(alias="negativePrompt", min_length=1)


IMAGE_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


class GeneratedImageData(BaseModel):
    content: bytes
    content_type: str = "image/png"

    @property
    def extension(self) -> str:
        return IMAGE_EXTENSIONS.get(self.content_type, "png")


class AIClient(BaseIntegration):
    """Prompt enhancement and image generation over HTTP, with mock fallback."""

    def __init__(self) -> None:
        super().__init__("ai", settings.AI_API_KEY)
        self._base_url = settings.AI_BASE_URL.rstrip("/")

    async def health_check(self) -> bool:
        if self.is_mock:
            self.logger.info("AI client health check: OK (mock)")
            return True
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers())
                return resp.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error("AI health check failed: %s", e)
            return False

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": settings.APP_URL,
        }

    async def _completion(self, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(
                    f"{self._base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise AINetworkError(f"AI request timed out after {timeout:.0f}s") from e
        except httpx.HTTPError as e:
            raise AINetworkError(f"AI request failed: {e}") from e

        if resp.status_code >= 400:
            raise AIHTTPError(resp.status_code, f"AI provider returned HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise AIValidationError("AI provider returned a non-JSON body") from e

    @staticmethod
    def _message(data: dict[str, Any]) -> dict[str, Any]:
        try:
            return data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIValidationError("AI response has no message") from e

    # ------------------------------------------------------------------
    # Prompt enhancement
    # ------------------------------------------------------------------

    async def enhance_prompt(self, description: str) -> ImagePrompt:
        self.logger.info("Enhancing prompt (%d chars): %.60s...", len(description), description)

        if self.is_mock:
            return ImagePrompt(
                positive_prompt=f"Professional product photograph of custom furniture: {description}",
                negative_prompt=DEFAULT_NEGATIVE_PROMPT,
            )

        system = (
            "You are a prompt engineer for a furniture image generator. Rewrite the user's "
            "furniture description into a detailed photographic prompt. Return ONLY valid JSON "
            'of the form {"positivePrompt": "...", "negativePrompt": "..."}.'
        )
        data = await self._completion(
            {
                "model": settings.AI_PROMPT_MODEL,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": description},
                ],
                "temperature": 0.5,
                "response_format": {"type": "json_object"},
            },
            timeout=settings.AI_PROMPT_TIMEOUT_SECONDS,
        )

        text = (self._message(data).get("content") or "").strip()
        if text.startswith("```"):
            lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
            text = "\n".join(lines)
        try:
            return ImagePrompt.model_validate(json.loads(text))
        except (ValueError, ValidationError) as e:
            raise AIValidationError("Enhanced prompt did not match the expected schema") from e

    # ------------------------------------------------------------------
    # Image generation
    # ------------------------------------------------------------------

    async def generate_image(self, positive_prompt: str, negative_prompt: str) -> GeneratedImageData:
        """Return the image bytes for the prompt pair, typed from the data URL header."""
        if self.is_mock:
            self.logger.info("Image generated with mock (%d bytes)", len(_MOCK_PNG))
            return GeneratedImageData(content=_MOCK_PNG)

        data = await self._completion(
            {
                "model": settings.AI_IMAGE_MODEL,
                "modalities": ["image", "text"],
                "messages": [
                    {
                        "role": "user",
                        "content": f"{positive_prompt}\n\nAvoid: {negative_prompt}",
                    }
                ],
            },
            timeout=settings.AI_IMAGE_TIMEOUT_SECONDS,
        )

        images = self._message(data).get("images") or []
        try:
            url: str = images[0]["image_url"]["url"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIValidationError("AI response contains no image") from e

        content_type = "image/png"
        encoded = url
        if url.startswith("data:") and "," in url:
            header, encoded = url.split(",", 1)
            declared = header[len("data:"):].split(";", 1)[0].lower()
            if declared in IMAGE_EXTENSIONS:
                content_type = declared
        try:
            image = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AIValidationError("Generated image is not valid base64") from e

        self.logger.info("Image generated via API (%d bytes, %s)", len(image), content_type)
        return GeneratedImageData(content=image, content_type=content_type)


def get_ai_client() -> AIClient:
    return AIClient()
