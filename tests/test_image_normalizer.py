import base64
from io import BytesIO

import pytest
from PIL import Image

from ebay_lister.app.core.errors import NormalizationError, ValidationError
from ebay_lister.app.services.image_normalizer import (
    NormalizeOptions,
    compute_target_size,
    human_size,
    normalize_image,
    validate_upload,
)


def _decode(uploaded):
    return Image.open(BytesIO(base64.b64decode(uploaded.base64_data)))


def test_validate_rejects_unsupported_format(settings):
    with pytest.raises(ValidationError) as exc:
        validate_upload("anim.gif", "image/gif", 100, settings)
    assert exc.value.message == "anim.gif is not a supported format"


def test_validate_rejects_oversize(settings):
    with pytest.raises(ValidationError) as exc:
        validate_upload("huge.jpg", "image/jpeg", 20 * 1024 * 1024 + 1, settings)
    assert exc.value.message == "huge.jpg is too large (max 20 MB)"


def test_validate_accepts_supported(settings):
    for mime in ("image/jpeg", "image/png", "image/webp"):
        validate_upload("ok", mime, 20 * 1024 * 1024, settings)


def test_compute_target_size():
    assert compute_target_size(800, 600, 1600) == (800, 600)
    assert compute_target_size(1600, 900, 1600) == (1600, 900)
    assert compute_target_size(3000, 2000, 1000) == (1000, 667)
    assert compute_target_size(1001, 333, 500) == (500, 166)
    assert compute_target_size(5000, 4000, None) == (5000, 4000)


def test_small_image_keeps_dimensions(make_image):
    data = make_image(size=(200, 100))
    uploaded = normalize_image("small.jpg", "image/jpeg", data, NormalizeOptions(max_dimension=1600))
    assert (uploaded.width, uploaded.height) == (200, 100)
    assert _decode(uploaded).size == (200, 100)


def test_large_image_is_downscaled(make_image):
    data = make_image(size=(1200, 800))
    uploaded = normalize_image("big.jpg", "image/jpeg", data, NormalizeOptions(max_dimension=600))
    assert max(uploaded.width, uploaded.height) == 600
    assert _decode(uploaded).size == (600, 400)
    assert abs(uploaded.width / uploaded.height - 1.5) < 0.01


def test_transparent_png_to_jpeg_is_flattened_on_white(make_image):
    data = make_image(size=(10, 10), mode="RGBA", fmt="PNG", color=(0, 0, 0, 0))
    uploaded = normalize_image("clear.png", "image/png", data, NormalizeOptions(output_format="image/jpeg"))
    decoded = _decode(uploaded).convert("RGB")
    r, g, b = decoded.getpixel((5, 5))
    assert min(r, g, b) > 240


def test_png_output_keeps_alpha(make_image):
    data = make_image(size=(10, 10), mode="RGBA", fmt="PNG", color=(0, 0, 0, 0))
    uploaded = normalize_image("clear.png", "image/png", data, NormalizeOptions(output_format="image/png"))
    assert _decode(uploaded).mode == "RGBA"
    assert uploaded.encoded_mime_type == "image/png"


def test_encoded_content_metadata(make_image):
    data = make_image(size=(40, 40), fmt="PNG")
    uploaded = normalize_image("shoe.png", "image/png", data, NormalizeOptions())
    assert uploaded.encoded_content.startswith("data:image/jpeg;base64,")
    assert uploaded.mime_type == "image/png"
    assert uploaded.encoded_mime_type == "image/jpeg"
    assert uploaded.original_size_bytes == len(data)
    assert uploaded.approx_size_bytes == len(uploaded.base64_data) * 3 // 4
    assert uploaded.id


def test_each_normalization_gets_a_new_id(make_image):
    data = make_image()
    first = normalize_image("a.jpg", "image/jpeg", data, NormalizeOptions())
    second = normalize_image("a.jpg", "image/jpeg", data, NormalizeOptions())
    assert first.id != second.id


def test_undecodable_bytes_raise_normalization_error():
    with pytest.raises(NormalizationError):
        normalize_image("broken.jpg", "image/jpeg", b"definitely not an image", NormalizeOptions())


def test_options_reject_bad_values():
    with pytest.raises(ValueError):
        NormalizeOptions(max_dimension=0)
    with pytest.raises(ValueError):
        NormalizeOptions(quality=1.5)
    with pytest.raises(ValueError):
        NormalizeOptions(output_format="image/gif")


def test_human_size():
    assert human_size(0) == "0 Bytes"
    assert human_size(500) == "500 Bytes"
    assert human_size(1536) == "1.5 KB"
    assert human_size(1024 * 1024) == "1 MB"
