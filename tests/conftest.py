"""
Shared fixtures: synthetic images and fake collaborators.
"""
import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pipeline.face_detect import FaceBox, FaceDetection


def png_bytes(pixels: np.ndarray) -> bytes:
    """Encode an H x W or H x W x 3 uint8 array as PNG"""
    buffer = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buffer, "PNG")
    return buffer.getvalue()


def checkerboard(size: int) -> np.ndarray:
    yy, xx = np.mgrid[0:size, 0:size]
    return np.where((xx + yy) % 2 == 0, 0, 255).astype(np.uint8)


def id_photo(width: int = 600, height: int = 800) -> np.ndarray:
    """White RGB canvas with a sharp textured block in the middle"""
    pixels = np.full((height, width, 3), 255, dtype=np.uint8)
    side = min(100, width // 4, height // 4)
    top = (height - side) // 2
    left = (width - side) // 2
    pixels[top:top + side, left:left + side] = checkerboard(side)[:, :, np.newaxis]
    return pixels


def noise_card(width: int = 600, height: int = 400, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class FakeFaceDetector:
    def __init__(self, detection: FaceDetection):
        self.detection = detection
        self.calls = 0

    def detect(self, image_bytes: bytes) -> FaceDetection:
        self.calls += 1
        return self.detection


class FakeTextReader:
    """Returns the queued texts in order, then None"""

    def __init__(self, texts=None):
        self.texts = list(texts or [])
        self.calls = 0

    def read(self, image_bytes: bytes):
        self.calls += 1
        return self.texts.pop(0) if self.texts else None


ONE_FACE = FaceDetection(available=True, face_count=1, confidence=0.97, box=FaceBox(200, 250, 200, 300))

LICENCE_BACK_TEXT = (
    "PERMIS\n"
    "CAT: B1 B C\n"
    "09.09.2025 | 08.09.2030\n"
    "12.05.88"
)


@pytest.fixture(autouse=True)
def photo_log(monkeypatch):
    """Capture calibration log entries instead of writing to disk"""
    entries = []
    monkeypatch.setattr("pipeline.run_pipeline.append_photo_log", entries.append)
    return entries
