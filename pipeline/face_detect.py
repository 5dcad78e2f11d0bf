import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from openai import OpenAI
from config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceBox:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class FaceDetection:
    """
    Result of a face detector call. available=False means detection could
    not run at all (missing model, unreachable service), which is distinct
    from running and finding no face.
    """
    available: bool
    face_count: int = 0
    confidence: float = 0.0
    box: Optional[FaceBox] = None
    reason: Optional[str] = None

    @property
    def face_detected(self) -> bool:
        return self.available and self.face_count > 0

    @classmethod
    def unavailable(cls, reason: str) -> "FaceDetection":
        return cls(available=False, reason=reason)


def encode_image(image_bytes: bytes) -> str:
    return f"data:image/jpeg;base64,{base64.b64encode(image_bytes).decode()}"


def safe_json_parse(text: str) -> Dict[str, Any]:
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        raise ValueError("No JSON found in model output")
    return json.loads(match.group())


def _to_conf(val) -> float:
    if val is None:
        return 0.0
    try:
        v = float(str(val).strip().replace('%', ''))
    except ValueError:
        return 0.0
    # Percentages like 95 become 0.95
    if v > 1:
        v = v / 100.0
    return max(0.0, min(1.0, v))


def _to_box(val) -> Optional[FaceBox]:
    if not isinstance(val, dict):
        return None
    try:
        box = FaceBox(
            x=float(val["x"]),
            y=float(val["y"]),
            width=float(val["width"]),
            height=float(val["height"]),
        )
    except (KeyError, TypeError, ValueError):
        return None
    return box if box.width > 0 and box.height > 0 else None


def parse_face_output(text: str) -> FaceDetection:
    """Normalise the model's JSON answer into a FaceDetection"""
    parsed = safe_json_parse(text)
    try:
        face_count = max(0, int(parsed.get("face_count") or 0))
    except (TypeError, ValueError):
        face_count = 0
    return FaceDetection(
        available=True,
        face_count=face_count,
        confidence=_to_conf(parsed.get("confidence")) if face_count else 0.0,
        box=_to_box(parsed.get("box")) if face_count else None,
    )


class OpenAIFaceDetector:
    """
    Face presence detector backed by an OpenAI vision model.
    Never raises: any missing key or API/parse failure is reported as unavailable.
    """

    PROMPT = """
You are a face detection system for identity photos.

Count the human faces visible in this image and locate the most prominent one.

Return STRICT JSON ONLY.

Format:
{
  "face_count": 0,
  "confidence": 0.0-1.0,
  "box": {"x": 0, "y": 0, "width": 0, "height": 0}
}

Rules:
- Box coordinates are in pixels, top-left origin
- Animals, drawings and logos are not human faces
- If no face is visible, return face_count 0 and box null
"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.FACE_MODEL

    def detect(self, image_bytes: bytes) -> FaceDetection:
        if not self.api_key:
            return FaceDetection.unavailable("OPENAI_API_KEY not configured")

        try:
            client = OpenAI(api_key=self.api_key)
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": self.PROMPT},
                            {"type": "image_url", "image_url": {"url": encode_image(image_bytes)}}
                        ]
                    }
                ],
                max_tokens=200,
                temperature=0
            )
            return parse_face_output(response.choices[0].message.content or "")
        except Exception as e:
            logger.warning("Face detection unavailable: %s", e)
            return FaceDetection.unavailable(str(e))
