import logging
import time
from typing import Dict, List, Optional

from PIL import Image

from config import settings
from .checks import DocumentChecks
from .decision import DecisionEngine
from .extractor import DocumentTextReader
from .face_detect import OpenAIFaceDetector
from .file_converter import check_image_dimensions, decode_image, image_to_bytes
from .image_stats import ImageSample, image_stats_from_sample
from .logs import append_photo_log, build_photo_entry
from .normalizer import auto_crop_borders, enhance_for_ocr, normalize_square
from .quality import ImageQualityGate, codes_from, suggestions_for
from .schemas import StageTimers, ValidationReport

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _decode(data: Optional[bytes]) -> Optional[Image.Image]:
    return decode_image(data) if data else None


def run_validation(photo: Optional[bytes] = None,
                   signature: Optional[bytes] = None,
                   front: Optional[bytes] = None,
                   back: Optional[bytes] = None,
                   photo_type: str = "passport",
                   back_text: Optional[str] = None,
                   face_detector=None,
                   text_reader=None,
                   engine: Optional[DecisionEngine] = None) -> ValidationReport:
    """
    Main pipeline function that validates one KYC submission

    Args:
        photo, signature, front, back: raw upload bytes, each optional
        photo_type: passport, profile or driver_license
        back_text: OCR text of the licence back, when already transcribed
        face_detector: object with detect(bytes) -> FaceDetection
        text_reader: object with read(bytes) -> Optional[str]
        engine: DecisionEngine carrying the scoring policy

    Returns:
        Finalised ValidationReport. Checks for inputs that were not
        submitted are left absent and do not weigh on the score.

    Raises:
        DecodeError: an upload could not be decoded
        UploadLimitError: a decoded image is outside the dimension limits
    """
    t0 = time.perf_counter()

    # Initialize components
    quality_gate = ImageQualityGate()
    checker = DocumentChecks()
    engine = engine or DecisionEngine()
    face_detector = face_detector or OpenAIFaceDetector()
    text_reader = text_reader or DocumentTextReader()

    report = ValidationReport()
    timers: Dict[str, float] = {}
    suggestions: List[str] = []

    photo_img = _decode(photo)
    signature_img = _decode(signature)
    front_img = _decode(front)
    back_img = _decode(back)
    check_image_dimensions({
        "photo": photo_img,
        "signature": signature_img,
        "front": front_img,
        "back": back_img,
    })

    # Step 1: Trim scanner margins around card sides
    if front_img is not None:
        crop = auto_crop_borders(front_img, settings.CARD_CROP_TOLERANCE)
        front_img = crop.image
        report.preprocess["front"] = {"cropped": crop.changed}
    if back_img is not None:
        crop = auto_crop_borders(back_img, settings.CARD_CROP_TOLERANCE)
        back_img = crop.image
        report.preprocess["back"] = {"cropped": crop.changed}

    # Step 2: Portrait photo and face presence
    if photo_img is not None:
        tp = time.perf_counter()
        sample = ImageSample.from_image(photo_img)
        stats = image_stats_from_sample(sample)
        detection = face_detector.detect(image_to_bytes(photo_img, "JPEG"))

        report.photo = quality_gate.evaluate_photo(
            sample, photo_type, face_available=detection.available, stats=stats
        )
        report.face = checker.evaluate_face(detection, photo_type)
        codes = codes_from(report.photo) + codes_from(report.face)

        # Normalise after analysis so an undersized original is still reported
        if photo_type in ("passport", "profile"):
            norm = normalize_square(photo_img, settings.PHOTO_NORMALIZED_SIZE)
            original_w, original_h = norm.original_size
            report.preprocess["photo"] = {
                "normalized": norm.changed,
                "original_width": original_w,
                "original_height": original_h,
            }
            if norm.changed and min(original_w, original_h) < settings.PHOTO_NORMALIZED_SIZE:
                report.photo = report.photo.model_copy(update={
                    "ok": False,
                    "messages": report.photo.messages + ["Dimensions originales insuffisantes (<500 px)"],
                })
                codes.append("ORIGINAL_TOO_SMALL")

        photo_suggestions = suggestions_for(codes)
        suggestions.extend(s for s in photo_suggestions if s not in suggestions)

        if not report.photo.ok and detection.available:
            logger.warning("Photo rejected - codes: %s", ", ".join(codes))
        elif not detection.available:
            logger.info("Face detection unavailable, photo kept for manual review")

        append_photo_log(build_photo_entry(
            report.photo.stats,
            report.face.stats,
            decision="accepted" if report.photo.ok and report.face.ok else "rejected",
            file_size=len(photo),
            suggestions=photo_suggestions,
        ))
        timers["photo_ms"] = _elapsed_ms(tp)

    # Step 3: Signature
    if signature_img is not None:
        ts = time.perf_counter()
        report.signature = quality_gate.evaluate_signature(ImageSample.from_image(signature_img))
        timers["signature_ms"] = _elapsed_ms(ts)

    # Step 4: Card sides consistency
    if front_img is not None and back_img is not None:
        tc = time.perf_counter()
        report.front, report.back = quality_gate.evaluate_card_sides(
            ImageSample.from_image(front_img), ImageSample.from_image(back_img)
        )
        timers["card_ms"] = _elapsed_ms(tc)

    # Step 5: Front side OCR
    if front_img is not None:
        tocr = time.perf_counter()
        text = text_reader.read(image_to_bytes(enhance_for_ocr(front_img)))
        if text is not None:
            report.ocr = checker.evaluate_front_ocr(text)
        timers["ocr_ms"] = _elapsed_ms(tocr)

    # Step 6: Licence back OCR, trying both orientations of the scan
    if back_text is not None or back_img is not None:
        tocr_back = time.perf_counter()
        readings = []
        if back_text is not None:
            readings.append(("fournie", back_text))
        else:
            enhanced = enhance_for_ocr(back_img)
            for label, candidate in (("originale", enhanced), ("rotation 90°", enhanced.rotate(-90, expand=True))):
                text = text_reader.read(image_to_bytes(candidate))
                if text is not None:
                    readings.append((label, text))

        if readings:
            index, text, extract = checker.pick_back_reading([t for _, t in readings])
            report.back = checker.evaluate_licence_back(
                report.back, text, extract, orientation=readings[index][0]
            )
            logger.info("Licence back parsed: %s", extract.to_dict())
        timers["ocr_ms"] = timers.get("ocr_ms", 0.0) + _elapsed_ms(tocr_back)

    report.suggestions = suggestions

    tscore = time.perf_counter()
    final = engine.decide(report)
    timers["score_ms"] = _elapsed_ms(tscore)
    timers["total_ms"] = _elapsed_ms(t0)

    logger.info("Validation finished: score=%s status=%s", final.score, final.status)
    return final.model_copy(update={"timers": StageTimers(**timers)})
