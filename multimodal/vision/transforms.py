"""Pixel transforms used by the image processor.

All functions are pure: they return a new image and never mutate the input.
"""

from io import BytesIO

import numpy as np
from PIL import Image, ImageEnhance, ImageOps, UnidentifiedImageError

from multimodal.processor.exceptions import DecodeError

BACKGROUND_TOLERANCE = 30
SHARPNESS_FACTOR = 1.5


def decode(raw: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    return image


def enhance(image: Image.Image) -> Image.Image:
    """Stretch contrast and sharpen."""
    rgb = image.convert("RGB")
    stretched = ImageOps.autocontrast(rgb, cutoff=1)
    return ImageEnhance.Sharpness(stretched).enhance(SHARPNESS_FACTOR)


def remove_background(image: Image.Image, tolerance: int = BACKGROUND_TOLERANCE) -> Image.Image:
    """Make pixels close to the border colour transparent.

    The background colour is the median of the outermost pixel ring, which
    works for product shots and scans on a roughly uniform backdrop.
    """
    rgba = np.array(image.convert("RGBA"))
    border = np.concatenate(
        [rgba[0, :, :3], rgba[-1, :, :3], rgba[:, 0, :3], rgba[:, -1, :3]]
    ).astype(np.int16)
    background = np.median(border, axis=0)

    distance = np.abs(rgba[..., :3].astype(np.int16) - background).max(axis=-1)
    rgba[..., 3] = np.where(distance <= tolerance, 0, rgba[..., 3])
    return Image.fromarray(rgba)


def target_size(image: Image.Image, width: int | None, height: int | None) -> tuple[int, int]:
    """Resolve the output size; a single given dimension keeps the aspect ratio."""
    if width and height:
        return width, height
    if width:
        return width, max(1, round(image.height * width / image.width))
    if height:
        return max(1, round(image.width * height / image.height)), height
    return image.width, image.height


def resize(image: Image.Image, width: int | None, height: int | None) -> Image.Image:
    return image.resize(target_size(image, width, height), Image.Resampling.LANCZOS)


def encode(image: Image.Image, quality: float | None = None) -> tuple[bytes, str]:
    """Encode to PNG, or to JPEG when a quality in [0, 1] is requested.

    Images with an alpha channel are always written as PNG.
    """
    buffer = BytesIO()
    if quality is None or image.mode in ("RGBA", "LA", "P"):
        image.save(buffer, format="PNG")
        return buffer.getvalue(), "png"
    image.convert("RGB").save(buffer, format="JPEG", quality=max(1, round(quality * 100)))
    return buffer.getvalue(), "jpeg"
