"""Imagen featured image backend."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from wordposty.config import settings
from wordposty.errors import APIError, translate_error
from wordposty.models.article import GeneratedArticle, ImageResult
from wordposty.models.research import ResearchResult

logger = logging.getLogger(__name__)

GOOGLE_API_URL = "https://generativelanguage.googleapis.com/v1beta"

STYLE_MODIFIERS = (
    ". Modern, clean, professional design. High-quality, visually appealing. "
    "16:9 aspect ratio. Suitable for web blog header. No text overlay needed."
)

STATUS_MESSAGES = {
    403: "API key does not have access to image generation. Check your Google AI Studio permissions.",
    400: "Invalid request format. Please check the prompt and try again.",
    404: "Imagen model not found. Check that the configured model is available.",
}


class ImagenBackend:
    """Featured image generation using Google's Imagen models."""

    name: str = "imagen"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.image_model
        self.transport = transport

    async def generate_image(
        self,
        article: GeneratedArticle,
        analysis: ResearchResult | None = None,
        custom_prompt: str | None = None,
        use_smart_prompt: bool = False,
    ) -> ImageResult:
        """Generate one 16:9 header image and return it as a data URL."""
        if not self.api_key:
            raise APIError("Google AI API key is not configured", 500, self.name)

        prompt = self.build_prompt(article, analysis, custom_prompt, use_smart_prompt)
        logger.info("Imagen: generating image (%d char prompt)", len(prompt))

        try:
            async with httpx.AsyncClient(timeout=120.0, transport=self.transport) as client:
                response = await client.post(
                    f"{GOOGLE_API_URL}/models/{self.model}:predict",
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key,
                    },
                    json={
                        "instances": [{"prompt": prompt}],
                        "parameters": {
                            "outputMimeType": "image/jpeg",
                            "sampleCount": 1,
                            "personGeneration": "ALLOW_ADULT",
                            "aspectRatio": "16:9",
                        },
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in STATUS_MESSAGES:
                raise APIError(STATUS_MESSAGES[status], status, self.name) from exc
            raise translate_error(exc, self.name) from exc
        except httpx.HTTPError as exc:
            raise translate_error(exc, self.name) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise APIError("Invalid JSON response from Imagen API", 502, self.name) from exc

        predictions = data.get("predictions") or []
        if not predictions:
            raise APIError("No predictions in Imagen response", 502, self.name)

        encoded = predictions[0].get("bytesBase64Encoded")
        if not encoded:
            raise APIError("No image data received from Imagen API", 502, self.name)

        return ImageResult(
            image_url=f"data:image/jpeg;base64,{encoded}",
            prompt=prompt,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def build_prompt(
        self,
        article: GeneratedArticle,
        analysis: ResearchResult | None = None,
        custom_prompt: str | None = None,
        use_smart_prompt: bool = False,
    ) -> str:
        if custom_prompt and not use_smart_prompt:
            return self.enhance_custom_prompt(custom_prompt)

        prompt = f'Professional blog header image for: "{article.title}"'
        if analysis and analysis.seo_keywords:
            prompt += f". Visual elements related to: {', '.join(analysis.seo_keywords[:3])}"
        if analysis and analysis.main_themes:
            prompt += f". Themed around: {', '.join(analysis.main_themes[:2])}"
        prompt += STYLE_MODIFIERS
        if analysis and analysis.current_trends:
            prompt += f" Contemporary style reflecting: {analysis.current_trends[0]}"
        return prompt

    def preview_prompt(
        self, article: GeneratedArticle, analysis: ResearchResult | None = None
    ) -> str:
        return self.build_prompt(article, analysis, use_smart_prompt=True)

    @staticmethod
    def enhance_custom_prompt(custom_prompt: str) -> str:
        """Add quality, format and web hints the user left out."""
        enhanced = custom_prompt.strip()
        lowered = enhanced.lower()
        if "high quality" not in lowered and "professional" not in lowered:
            enhanced += ". High-quality, professional"
        if "16:9" not in lowered and "aspect ratio" not in lowered:
            enhanced += ". 16:9 aspect ratio"
        if "web" not in lowered and "blog" not in lowered:
            enhanced += ". Suitable for web blog header"
        return enhanced
