import base64
import logging
from typing import Optional

from openai import OpenAI
from config import settings

logger = logging.getLogger(__name__)


class DocumentTextReader:
    """
    Reads the printed text of a document image using OpenAI Vision.
    Returns None when no reading could be produced, so callers can leave
    the OCR sections of a report absent instead of failing them.
    """

    PROMPT = """
You are an OCR engine for identity documents.

Transcribe ALL text visible in this document image, exactly as printed.

Rules:
- Keep the original line breaks
- Keep dates, codes and machine-readable zones character for character
- Do not translate, summarise or correct anything
- Return the transcription only, with no commentary
"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OCR_MODEL

    def encode_image(self, image_bytes: bytes) -> str:
        """Encode image as base64 data URL"""
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        return f"data:image/png;base64,{b64}"

    def read(self, image_bytes: bytes) -> Optional[str]:
        """Transcribe document text from image bytes"""
        if not self.api_key:
            logger.info("OCR reader disabled: OPENAI_API_KEY not configured")
            return None

        try:
            client = OpenAI(api_key=self.api_key)
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": self.PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": self.encode_image(image_bytes)
                                }
                            }
                        ]
                    }
                ],
                max_tokens=1200,
                temperature=0
            )
        except Exception as e:
            logger.warning("OCR reading failed: %s", e)
            return None

        return response.choices[0].message.content or ""
