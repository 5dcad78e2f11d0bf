import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config import settings

PHOTO_LOG_FILE = "kyc-photo.log"

photo_logger = logging.getLogger("kyc.photo")
photo_logger.propagate = False

logger = logging.getLogger(__name__)

_handler_lock = threading.Lock()


def _ensure_photo_handler() -> None:
    """Attach the JSON-lines file handler on first use"""
    if photo_logger.handlers:
        return
    with _handler_lock:
        # Another thread may have attached it while we waited
        if photo_logger.handlers:
            return
        os.makedirs(settings.KYC_LOG_DIR, exist_ok=True)
        handler = logging.FileHandler(os.path.join(settings.KYC_LOG_DIR, PHOTO_LOG_FILE), encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        photo_logger.addHandler(handler)
        photo_logger.setLevel(logging.INFO)


def build_photo_entry(photo_stats: Dict[str, Any],
                      face_stats: Optional[Dict[str, Any]],
                      decision: str,
                      file_size: int,
                      suggestions: Optional[list] = None) -> Dict[str, Any]:
    """Calibration record for one analysed photo"""
    face_stats = face_stats or {}
    position = None
    if "face_x" in face_stats:
        position = {
            "cx": face_stats["face_x"] + face_stats["face_width"] / 2,
            "cy": face_stats["face_y"] + face_stats["face_height"] / 2,
        }
    codes = [c for c in str(photo_stats.get("codes", "")).split(",") if c]
    codes += [c for c in str(face_stats.get("codes", "")).split(",") if c]
    return {
        "ts": datetime.now(timezone.utc).isoformat(),
        "file_size": file_size,
        "face_count": face_stats.get("face_count"),
        "face_position": position,
        "sharpness_score": photo_stats.get("blur"),
        "brightness_score": photo_stats.get("brightness"),
        "background_variance": photo_stats.get("background_std_dev"),
        "rgb_balance_delta": photo_stats.get("rgb_balance_delta"),
        "decision": decision,
        "codes": codes,
        "suggestions": suggestions or [],
    }


def append_photo_log(entry: Dict[str, Any]) -> None:
    try:
        _ensure_photo_handler()
    except OSError as e:
        logger.warning("Photo calibration log unavailable: %s", e)
        return
    photo_logger.info(json.dumps(entry, ensure_ascii=False))
