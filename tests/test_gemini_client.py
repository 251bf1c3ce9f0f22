import json

import httpx
import pytest

from ebay_lister.app.core.errors import (
    EmptyInputError,
    MalformedResponseError,
    MissingCredentialsError,
    TransportError,
)
from ebay_lister.app.schemas.listing import UploadedImage
from ebay_lister.app.services.gemini_client import GENERATION_CONFIG, PROMPT_TEMPLATE, GeminiClient


def _image(image_id: str, mime: str = "image/jpeg", payload: str = "AAAA") -> UploadedImage:
    return UploadedImage(
        id=image_id,
        name=f"{image_id}.jpg",
        original_size_bytes=10,
        mime_type="image/png",
        encoded_content=f"data:{mime};base64,{payload}",
        approx_size_bytes=3,
        width=1,
        height=1,
    )


def _client(settings, fake_gemini, **overrides):
    return GeminiClient.from_settings(settings, transport=fake_gemini.transport, **overrides)


@pytest.mark.asyncio
async def test_empty_input_makes_no_request(settings, fake_gemini):
    with pytest.raises(EmptyInputError):
        await _client(settings, fake_gemini).analyze([])
    assert fake_gemini.requests == []


@pytest.mark.asyncio
async def test_missing_key_makes_no_request(settings, fake_gemini):
    with pytest.raises(MissingCredentialsError):
        await _client(settings, fake_gemini, api_key="  ").analyze([_image("a")])
    assert fake_gemini.requests == []


@pytest.mark.asyncio
async def test_request_shape(settings, fake_gemini):
    fake_gemini.queue_text('{"brand": "Sony"}')
    images = [_image("a", "image/jpeg", "QUFB"), _image("b", "image/webp", "QkJC")]
    result = await _client(settings, fake_gemini).analyze(images)

    assert result.brand == "Sony"
    assert len(fake_gemini.requests) == 1
    request = fake_gemini.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
    assert request.url.params["key"] == "test-key"

    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"text": PROMPT_TEMPLATE}
    assert parts[1] == {"inlineData": {"mimeType": "image/jpeg", "data": "QUFB"}}
    assert parts[2] == {"inlineData": {"mimeType": "image/webp", "data": "QkJC"}}
    assert body["generationConfig"] == GENERATION_CONFIG


@pytest.mark.asyncio
async def test_fenced_response_is_parsed(settings, fake_gemini):
    fake_gemini.queue_text('```json\n{"productName": "Walkman"}\n```')
    result = await _client(settings, fake_gemini).analyze([_image("a")])
    assert result.product_name == "Walkman"


@pytest.mark.asyncio
async def test_error_status_uses_body_message(settings, fake_gemini):
    fake_gemini.queue(httpx.Response(403, json={"error": {"message": "API key not valid"}}))
    with pytest.raises(TransportError) as exc:
        await _client(settings, fake_gemini).analyze([_image("a")])
    assert exc.value.message == "API key not valid"
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_error_status_without_body(settings, fake_gemini):
    fake_gemini.queue(httpx.Response(500, text="oops"))
    with pytest.raises(TransportError) as exc:
        await _client(settings, fake_gemini).analyze([_image("a")])
    assert exc.value.message == "API request failed: 500"


@pytest.mark.asyncio
async def test_network_failure_is_transport_error(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = GeminiClient.from_settings(settings, transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError):
        await client.analyze([_image("a")])


@pytest.mark.asyncio
async def test_missing_candidates_is_malformed(settings, fake_gemini):
    fake_gemini.queue(httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))
    with pytest.raises(MalformedResponseError) as exc:
        await _client(settings, fake_gemini).analyze([_image("a")])
    assert exc.value.message == "Invalid response from Gemini API"


@pytest.mark.asyncio
async def test_prose_only_response_is_malformed(settings, fake_gemini):
    fake_gemini.queue_text("Sorry, I cannot help with that.")
    with pytest.raises(MalformedResponseError):
        await _client(settings, fake_gemini).analyze([_image("a")])


@pytest.mark.asyncio
async def test_redirect_status_is_transport_error(settings, fake_gemini):
    fake_gemini.queue(httpx.Response(302, headers={"location": "https://proxy.example/login"}, text=""))
    with pytest.raises(TransportError) as exc:
        await _client(settings, fake_gemini).analyze([_image("a")])
    assert exc.value.status_code == 302
    assert exc.value.message == "API request failed: 302"
