import logging
import sys
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # OpenAI Configuration (face detection and OCR collaborators)
    OPENAI_API_KEY: Optional[str] = None
    FACE_MODEL: str = "gpt-4.1-mini"
    OCR_MODEL: str = "gpt-4.1-mini"

    # Decoding
    MAX_DECODE_MEGAPIXELS: float = 36.0
    PDF_DPI: int = 300

    # Upload limits, checked before analysis
    KYC_FILE_MIN_SIZE_BYTES: int = 30 * 1024
    KYC_FILE_MAX_SIZE_BYTES: int = 10 * 1024 * 1024
    KYC_IMG_MIN_WIDTH: int = 200
    KYC_IMG_MIN_HEIGHT: int = 200
    KYC_IMG_MAX_WIDTH: int = 8000
    KYC_IMG_MAX_HEIGHT: int = 8000

    # Photo thresholds
    PHOTO_BLUR_MIN: float = 12
    PHOTO_CONTRAST_MIN: float = 4
    PHOTO_BG_STD_MAX_PROFILE: float = 20
    PHOTO_BG_STD_MAX_PASSPORT: float = 25
    PHOTO_BG_STD_MAX_TOLERANT: float = 35
    PHOTO_RGB_DELTA_MAX_PROFILE: float = 35
    PHOTO_RGB_DELTA_MAX_PASSPORT: float = 50
    PHOTO_WHITE_RATIO_MIN: float = 0.65
    PHOTO_WHITE_RATIO_MIN_TOLERANT: float = 0.4
    PHOTO_BRIGHTNESS_MIN: float = 160
    PHOTO_BRIGHTNESS_MIN_TOLERANT: float = 120
    PASSPORT_MIN_DIMENSION: int = 500
    PROFILE_MIN_DIMENSION: int = 200
    PHOTO_NORMALIZED_SIZE: int = 500

    # Face thresholds
    FACE_MIN_CONFIDENCE_PASSPORT: float = 0.85
    FACE_MIN_CONFIDENCE_PROFILE: float = 0.90

    # Signature thresholds
    SIGNATURE_BLUR_MIN: float = 8
    SIGNATURE_INK_MIN: float = 0.001
    SIGNATURE_RGB_DELTA_MAX: float = 65
    SIGNATURE_WHITE_RATIO_MIN: float = 0.55
    SIGNATURE_BRIGHTNESS_MIN: float = 165
    SIGNATURE_ACCEPT_MIN_SIDE: int = 250

    # Card thresholds
    CARD_MIN_SIDE: int = 400
    CARD_SIZE_MISMATCH_MAX: float = 0.2
    CARD_IDENTICAL_HASH_DISTANCE: int = 10
    CARD_CROP_TOLERANCE: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    KYC_LOG_DIR: str = "logs"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()

# Scoring weights per check slot; must sum to 1.0
CHECK_WEIGHTS = {
    "photo": 0.20,
    "face": 0.30,
    "signature": 0.10,
    "front": 0.15,
    "back": 0.15,
    "ocr": 0.10,
}

# Share of the face weight credited when the detector could not run
FACE_UNAVAILABLE_CREDIT = 0.7

# Report status thresholds on the 0-100 score
STATUS_OK_MIN = 85
STATUS_FLAGGED_MIN = 60

# Message emitted by the face check when detection is structurally impossible
FACE_UNAVAILABLE_MARKER = "Détection faciale temporairement indisponible"

# Driver licence category vocabulary, in display order
LICENCE_CATEGORIES = ["A1", "A", "B1", "B", "C1", "C", "D1", "D", "BE", "CE", "DE"]

PHOTO_TYPES = ("passport", "profile", "driver_license")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the service"""
    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
