import os

import cv2
import numpy as np

from .image_stats import ImageSample

UPLOAD_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.heic', '.heif', '.webp', '.bmp', '.tiff', '.pdf'}


def average_hash(sample: ImageSample, size: int = 32) -> str:
    """
    Perceptual average hash: downscale luminance to size x size and
    emit one bit per pixel, set when the pixel is above the mean
    """
    if sample.width == 0 or sample.height == 0:
        return ""
    small = cv2.resize(sample.luminance, (size, size), interpolation=cv2.INTER_AREA)
    bits = small.astype(np.float64) > small.mean()
    return "".join("1" if bit else "0" for bit in bits.ravel())


def hamming(a: str, b: str) -> int:
    """Count differing positions; length difference counts as extra mismatches"""
    n = min(len(a), len(b))
    distance = sum(1 for i in range(n) if a[i] != b[i])
    return distance + abs(len(a) - len(b))


def get_file_extension(filename: str) -> str:
    """Get file extension from filename"""
    return os.path.splitext(filename)[1].lower()


def is_supported_upload(filename: str) -> bool:
    """Check if file has an extension the decoder accepts"""
    return get_file_extension(filename) in UPLOAD_EXTENSIONS
