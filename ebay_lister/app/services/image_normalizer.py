import base64
import logging
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ebay_lister.app.core.config import SUPPORTED_FORMATS, Settings
from ebay_lister.app.core.errors import NormalizationError, ValidationError
from ebay_lister.app.schemas.listing import UploadedImage

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}
# Output formats that cannot carry an alpha channel
_OPAQUE_FORMATS = {"image/jpeg"}


@dataclass(frozen=True)
class NormalizeOptions:
    max_dimension: Optional[int] = 1600
    quality: float = 0.85
    output_format: str = "image/jpeg"

    def __post_init__(self):
        if self.max_dimension is not None and self.max_dimension <= 0:
            raise ValueError("max_dimension must be positive")
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError("quality must be within [0, 1]")
        if self.output_format not in _PIL_FORMATS:
            raise ValueError(f"unsupported output format: {self.output_format}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "NormalizeOptions":
        return cls(
            max_dimension=settings.max_dimension,
            quality=settings.image_quality,
            output_format=settings.output_format,
        )


def validate_upload(name: str, mime_type: Optional[str], size_bytes: int, settings: Settings) -> None:
    if mime_type not in SUPPORTED_FORMATS:
        raise ValidationError(f"{name} is not a supported format")
    if size_bytes > settings.max_file_size_bytes:
        raise ValidationError(f"{name} is too large (max {human_size(settings.max_file_size_bytes)})")


def compute_target_size(width: int, height: int, max_dimension: Optional[int]) -> Tuple[int, int]:
    """
    Target size whose longest edge does not exceed ``max_dimension``.

    Images already within the bound keep their size. Each edge is rounded
    on its own, so the aspect ratio can drift by up to one pixel.
    """
    longest = max(width, height)
    if max_dimension is None or longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _flatten_onto_white(img: Image.Image) -> Image.Image:
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def _prepare_for_format(img: Image.Image, output_format: str) -> Image.Image:
    if _has_alpha(img):
        if output_format in _OPAQUE_FORMATS:
            return _flatten_onto_white(img)
        return img.convert("RGBA")
    return img.convert("RGB")


def human_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB"]
    value = float(num_bytes)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    return f"{round(value, 2):g} {units[idx]}"


def normalize_image(name: str, mime_type: str, data: bytes, options: NormalizeOptions) -> UploadedImage:
    try:
        img = Image.open(BytesIO(data))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        logger.warning("Failed to decode %s: %s", name, exc)
        raise NormalizationError(f"{name} could not be read as an image") from exc

    width, height = img.size
    target = compute_target_size(width, height, options.max_dimension)
    if target != (width, height):
        img = img.resize(target, Image.LANCZOS)

    img = _prepare_for_format(img, options.output_format)
    pil_format = _PIL_FORMATS[options.output_format]
    save_kwargs = {}
    if pil_format in ("JPEG", "WEBP"):
        save_kwargs["quality"] = max(1, min(100, round(options.quality * 100)))

    out = BytesIO()
    try:
        img.save(out, format=pil_format, **save_kwargs)
    except (OSError, ValueError, KeyError) as exc:
        logger.warning("Failed to encode %s as %s: %s", name, pil_format, exc)
        raise NormalizationError(f"{name} could not be converted to {options.output_format}") from exc

    payload = base64.b64encode(out.getvalue()).decode("ascii")
    logger.debug(
        "Normalized %s: %dx%d -> %dx%d, %d bytes -> ~%d bytes",
        name,
        width,
        height,
        img.width,
        img.height,
        len(data),
        len(payload) * 3 // 4,
    )
    return UploadedImage(
        id=uuid.uuid4().hex,
        name=name,
        original_size_bytes=len(data),
        mime_type=mime_type,
        encoded_content=f"data:{options.output_format};base64,{payload}",
        approx_size_bytes=len(payload) * 3 // 4,
        width=img.width,
        height=img.height,
    )
