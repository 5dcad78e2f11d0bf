import io
import logging
from typing import Dict, List, Optional

import numpy as np
from PIL import Image, ImageOps
import pillow_heif
from pdf2image import convert_from_bytes

from config import settings

pillow_heif.register_heif_opener()

MAX_DECODE_PIXELS = int(settings.MAX_DECODE_MEGAPIXELS * 1_000_000)
Image.MAX_IMAGE_PIXELS = MAX_DECODE_PIXELS

PDF_MAGIC = b"%PDF-"

# Pillow modes carrying more than 8 bits per sample
HIGH_BIT_DEPTH_MODES = {"I", "F", "I;16", "I;16L", "I;16B", "I;16N"}

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """Raised when an upload cannot be interpreted as pixel data"""


class UploadLimitError(ValueError):
    """
    Raised when uploads fall outside the configured byte-size or
    dimension limits. `code` and `details` are returned to the client.
    """

    def __init__(self, message: str, code: str, details: Dict[str, object]):
        super().__init__(message)
        self.code = code
        self.details = details


def size_limits() -> Dict[str, int]:
    return {
        "min_bytes": settings.KYC_FILE_MIN_SIZE_BYTES,
        "max_bytes": settings.KYC_FILE_MAX_SIZE_BYTES,
    }


def dimension_limits() -> Dict[str, int]:
    return {
        "min_width": settings.KYC_IMG_MIN_WIDTH,
        "min_height": settings.KYC_IMG_MIN_HEIGHT,
        "max_width": settings.KYC_IMG_MAX_WIDTH,
        "max_height": settings.KYC_IMG_MAX_HEIGHT,
    }


def check_upload_sizes(uploads: Dict[str, Optional[bytes]]) -> None:
    """Reject uploads smaller or larger than the byte-size limits"""
    limits = size_limits()
    invalid: List[str] = [
        f"{field}:{len(data)}B"
        for field, data in uploads.items()
        if data is not None and not limits["min_bytes"] <= len(data) <= limits["max_bytes"]
    ]
    if invalid:
        raise UploadLimitError(
            "File size out of bounds", "INVALID_SIZE", {**limits, "invalid": invalid}
        )


def check_image_dimensions(images: Dict[str, Optional[Image.Image]]) -> None:
    """Reject decoded images whose sides fall outside the dimension limits"""
    limits = dimension_limits()
    invalid: List[str] = []
    for field, img in images.items():
        if img is None:
            continue
        w, h = img.size
        too_small = w < limits["min_width"] or h < limits["min_height"]
        too_large = w > limits["max_width"] or h > limits["max_height"]
        if too_small or too_large:
            invalid.append(f"{field}:{w}x{h}")
    if invalid:
        raise UploadLimitError(
            "Image dimensions out of bounds", "INVALID_DIMENSIONS", {**limits, "invalid": invalid}
        )


def reduce_bit_depth(img: Image.Image) -> Image.Image:
    """
    Scale 16-bit and 32-bit grayscale images down to 8-bit "L".
    Pillow's convert("L") clips such samples at 255 instead of scaling them.
    """
    if img.mode not in HIGH_BIT_DEPTH_MODES:
        return img
    pixels = np.asarray(img)
    if img.mode != "F" and (img.mode.startswith("I;16") or pixels.max(initial=0) > 255):
        pixels = np.clip(pixels, 0, 65535).astype(np.uint32) >> 8
    return Image.fromarray(np.clip(pixels, 0, 255).astype(np.uint8))


def decode_image(data: bytes) -> Image.Image:
    """
    Decode an upload (JPEG / PNG / HEIC / first page of a PDF) into a Pillow image.
    EXIF orientation is applied so width/height match what the user sees,
    and high bit-depth grayscale is scaled to 8 bits.
    """
    if not data:
        raise DecodeError("Empty upload")

    # -------- Case 1: PDF, first page only --------
    if data.startswith(PDF_MAGIC):
        try:
            pages = convert_from_bytes(
                data, dpi=settings.PDF_DPI, first_page=1, last_page=1
            )
        except Exception as e:
            raise DecodeError(f"Unable to render PDF: {e}") from e
        if not pages:
            raise DecodeError("PDF contains no pages")
        return pages[0]

    # -------- Case 2: Normal image or HEIC --------
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Image.DecompressionBombError as e:
        raise DecodeError(
            f"Image exceeds the {settings.MAX_DECODE_MEGAPIXELS:.0f} megapixel decode limit"
        ) from e
    except (OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Unable to decode image: {e}") from e

    if img.mode in HIGH_BIT_DEPTH_MODES:
        logger.debug("Reducing %s image to 8-bit grayscale", img.mode)
    return reduce_bit_depth(ImageOps.exif_transpose(img))


def image_to_bytes(img: Image.Image, fmt: str = "PNG") -> bytes:
    """Re-encode a Pillow image, dropping alpha for JPEG"""
    if fmt.upper() == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    buffer = io.BytesIO()
    img.save(buffer, fmt)
    return buffer.getvalue()
