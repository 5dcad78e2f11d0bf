import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageChops, ImageFilter, ImageOps

OCR_MIN_SIDE = 500
OCR_TARGET_SIDE = 1000


@dataclass(frozen=True)
class Reshaped:
    """Outcome of a normalisation step: the (possibly) new image and whether it changed"""
    image: Image.Image
    changed: bool
    original_size: Tuple[int, int]
    reason: Optional[str] = None


def normalize_square(img: Image.Image, target_size: int = 500) -> Reshaped:
    """Center-crop to the largest square, then resize to target_size x target_size"""
    w, h = img.size
    side = min(w, h)
    if side == 0:
        return Reshaped(img, False, (w, h), "empty image")

    left = (w - side) // 2
    top = (h - side) // 2
    square = img.crop((left, top, left + side, top + side))
    return Reshaped(square.resize((target_size, target_size), Image.LANCZOS), True, (w, h))


def auto_crop_borders(img: Image.Image, tolerance: int = 10) -> Reshaped:
    """
    Trim uniform margins, using the top-left pixel as the margin color.
    A pixel belongs to the margin when no channel differs by more than tolerance.
    """
    w, h = img.size
    if w == 0 or h == 0:
        return Reshaped(img, False, (w, h), "empty image")

    base = img.convert("RGB")
    background = Image.new("RGB", base.size, base.getpixel((0, 0)))
    r, g, b = ImageChops.difference(base, background).split()
    spread = ImageChops.lighter(ImageChops.lighter(r, g), b)
    mask = spread.point(lambda v: 255 if v > tolerance else 0)

    bbox = mask.getbbox()
    if bbox is None:
        return Reshaped(img, False, (w, h), "uniform image")
    if bbox == (0, 0, w, h):
        return Reshaped(img, False, (w, h), "no uniform margin")
    return Reshaped(img.crop(bbox), True, (w, h))


def enhance_for_ocr(img: Image.Image) -> Image.Image:
    """Grayscale, stretch contrast and denoise; upscale small scans"""
    gray = ImageOps.autocontrast(ImageOps.grayscale(img))
    gray = gray.point(lambda v: round(255 * (v / 255) ** (1 / 1.1)))
    gray = gray.point(lambda v: max(0, min(255, round(v * 1.2 - 10))))
    gray = gray.filter(ImageFilter.MedianFilter(3))

    w, h = gray.size
    min_side = min(w, h)
    if 0 < min_side < OCR_MIN_SIDE:
        scale = math.ceil(OCR_TARGET_SIDE / min_side)
        gray = gray.resize((max(1, w * scale), max(1, h * scale)), Image.LANCZOS)
    return gray
