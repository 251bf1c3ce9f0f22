import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ebay_lister.app.core.config import Settings
from ebay_lister.app.core.errors import (
    EmptyInputError,
    MalformedResponseError,
    MissingCredentialsError,
    TransportError,
)
from ebay_lister.app.schemas.listing import AnalysisResult, UploadedImage
from ebay_lister.app.services import response_parser

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Analyze this product image and provide detailed information in JSON format with the following fields:
    - productName: specific product name
    - brand: manufacturer/brand name
    - category: product category
    - condition: estimated condition (new, used, refurbished)
    - specifications: object with key technical specs
    - keyFeatures: array of main selling points
    - suggestedTitle: SEO-optimized eBay title (max 80 chars)
    - description: compelling product description (max 500 chars)
    - estimatedValue: price range if identifiable

    Focus on accuracy and detail for eBay listing purposes. Return only valid JSON."""

GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 32,
    "topP": 1,
    "maxOutputTokens": 2048,
}


def build_request_body(images: Sequence[UploadedImage]) -> Dict[str, Any]:
    parts: List[Dict[str, Any]] = [{"text": PROMPT_TEMPLATE}]
    for img in images:
        parts.append({"inlineData": {"mimeType": img.encoded_mime_type, "data": img.base64_data}})
    return {
        "contents": [{"parts": parts}],
        "generationConfig": dict(GENERATION_CONFIG),
    }


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error_info = data.get("error")
        if isinstance(error_info, dict) and error_info.get("message"):
            return str(error_info["message"])
    return f"API request failed: {resp.status_code}"


def extract_response_text(data: Any) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError("Invalid response from Gemini API") from exc
    if not isinstance(text, str):
        raise MalformedResponseError("Invalid response from Gemini API")
    return text


class GeminiClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        endpoint: str,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "GeminiClient":
        kwargs = {
            "api_key": settings.gemini_api_key,
            "model": settings.gemini_model,
            "endpoint": settings.gemini_endpoint,
            "timeout_seconds": settings.gemini_timeout_seconds,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def url(self) -> str:
        return f"{self.endpoint}{self.model}:generateContent"

    async def analyze(self, images: Sequence[UploadedImage]) -> AnalysisResult:
        if not images:
            raise EmptyInputError("Please upload images before analyzing")
        if not self.api_key or not self.api_key.strip():
            raise MissingCredentialsError("API key required")

        payload = build_request_body(images)
        # None disables the client-side timeout
        timeout = httpx.Timeout(self.timeout_seconds)
        logger.info("Sending %d image(s) to %s", len(images), self.model)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.url,
                    params={"key": self.api_key.strip()},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Gemini request failed: %s", exc.__class__.__name__)
            raise TransportError(f"Network error: {exc.__class__.__name__}") from exc

        if not resp.is_success:
            message = _error_message(resp)
            logger.warning("Gemini returned error: status=%s, message=%s", resp.status_code, message[:500])
            raise TransportError(message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Gemini returned non-JSON body: %s", resp.text[:1000])
            raise MalformedResponseError("Invalid response from Gemini API") from exc

        text = extract_response_text(data)
        logger.debug("Gemini raw content: %s", text)
        return response_parser.extract_analysis(text)
