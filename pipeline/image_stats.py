from dataclasses import asdict, dataclass
from typing import Dict

import cv2
import numpy as np
from PIL import Image

from .file_converter import decode_image, reduce_bit_depth

# Pillow modes that decode to a single color channel
SINGLE_CHANNEL_MODES = {"1", "L", "LA"}


@dataclass(frozen=True)
class ImageSample:
    """
    Decoded image in two forms: single-channel luminance (H x W)
    and multi-channel color (H x W x C, C >= 1), both uint8
    """
    luminance: np.ndarray
    color: np.ndarray

    @property
    def width(self) -> int:
        return int(self.luminance.shape[1]) if self.luminance.ndim == 2 else 0

    @property
    def height(self) -> int:
        return int(self.luminance.shape[0]) if self.luminance.ndim == 2 else 0

    @property
    def channels(self) -> int:
        return int(self.color.shape[2]) if self.color.ndim == 3 else 1

    @classmethod
    def from_image(cls, img: Image.Image) -> "ImageSample":
        """Build a sample from a Pillow image, alpha removed"""
        img = reduce_bit_depth(img)
        if img.mode in SINGLE_CHANNEL_MODES:
            gray = img.convert("L")
            luminance = np.asarray(gray, dtype=np.uint8)
            return cls(luminance=luminance, color=luminance[:, :, np.newaxis])
        rgb = img.convert("RGB")
        return cls(
            luminance=np.asarray(rgb.convert("L"), dtype=np.uint8),
            color=np.asarray(rgb, dtype=np.uint8),
        )

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "ImageSample":
        """Build a sample from a raw H x W or H x W x C array (RGB channel order)"""
        pixels = np.asarray(pixels, dtype=np.uint8)
        if pixels.ndim == 2:
            return cls(luminance=pixels, color=pixels[:, :, np.newaxis])
        if pixels.shape[2] >= 3:
            luminance = cv2.cvtColor(np.ascontiguousarray(pixels[:, :, :3]), cv2.COLOR_RGB2GRAY)
        else:
            luminance = np.ascontiguousarray(pixels[:, :, 0])
        return cls(luminance=luminance, color=pixels)


@dataclass(frozen=True)
class ImageStats:
    width: int
    height: int
    brightness: float
    contrast: float
    blur: float
    background_std_dev: float
    r_mean: float
    g_mean: float
    b_mean: float
    rgb_balance_delta: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_image_stats(data: bytes) -> ImageStats:
    """Decode raw upload bytes and compute their pixel statistics"""
    return image_stats_from_sample(ImageSample.from_image(decode_image(data)))


def image_stats_from_sample(sample: ImageSample) -> ImageStats:
    width, height = sample.width, sample.height
    if width == 0 or height == 0:
        return ImageStats(width, height, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    gray = sample.luminance.astype(np.float64)
    brightness = float(gray.mean())
    contrast = float(np.sqrt(np.mean((gray - brightness) ** 2)))

    r_mean, g_mean, b_mean = channel_means(sample, brightness)
    rgb_balance_delta = max(abs(r_mean - g_mean), abs(g_mean - b_mean), abs(r_mean - b_mean))

    return ImageStats(
        width=width,
        height=height,
        brightness=brightness,
        contrast=contrast,
        blur=laplacian_variance(sample.luminance),
        background_std_dev=border_std_dev(sample.luminance),
        r_mean=r_mean,
        g_mean=g_mean,
        b_mean=b_mean,
        rgb_balance_delta=rgb_balance_delta,
    )


def laplacian_variance(luminance: np.ndarray) -> float:
    """
    Variance of the 3x3 Laplacian [0,1,0; 1,-4,1; 0,1,0] over interior pixels.
    Higher means sharper; zero for flat images and images without an interior.
    """
    h, w = luminance.shape[:2]
    if h < 3 or w < 3:
        return 0.0
    # ksize=1 is exactly the 4-neighbour kernel above
    response = cv2.Laplacian(np.ascontiguousarray(luminance), cv2.CV_64F, ksize=1)
    return float(response[1:-1, 1:-1].var())


def border_std_dev(luminance: np.ndarray) -> float:
    """Standard deviation of the 1-pixel border ring (corners counted twice)"""
    ring = np.concatenate([
        luminance[0, :],
        luminance[-1, :],
        luminance[:, 0],
        luminance[:, -1],
    ]).astype(np.float64)
    return float(ring.std())


def channel_means(sample: ImageSample, brightness: float):
    if sample.channels < 3:
        return brightness, brightness, brightness
    flat = sample.color.reshape(-1, sample.channels)[:, :3].astype(np.float64)
    r, g, b = flat.mean(axis=0)
    return float(r), float(g), float(b)


def white_pixel_ratio(sample: ImageSample, threshold: int = 232) -> float:
    if sample.luminance.size == 0:
        return 0.0
    return float(np.count_nonzero(sample.luminance > threshold)) / sample.luminance.size


def dark_pixel_ratio(sample: ImageSample, threshold: int = 80) -> float:
    if sample.luminance.size == 0:
        return 0.0
    return float(np.count_nonzero(sample.luminance < threshold)) / sample.luminance.size


def blue_ink_ratio(sample: ImageSample) -> float:
    """Share of non-white pixels where blue clearly dominates red and green"""
    if sample.channels < 3 or sample.luminance.size == 0:
        return 0.0
    rgb = sample.color[:, :, :3].astype(np.int16)
    r, g, b = rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]
    whiteish = (r > 232) & (g > 232) & (b > 232)
    blue = ~whiteish & (b > r + 25) & (b > g + 25) & (b > 80)
    return float(np.count_nonzero(blue)) / sample.luminance.size
