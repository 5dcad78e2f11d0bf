from typing import Optional, Tuple

from config import FACE_UNAVAILABLE_MARKER, settings
from .document_text import classify_document_type, compute_keywords, detect_mrz, normalize_text
from .face_detect import FaceDetection
from .licence_ocr import LicenceBackExtract, parse_licence_back_from_ocr
from .schemas import CheckResult, OcrCheckResult


class DocumentChecks:
    """
    Builds the face and OCR CheckResults of a validation report
    from collaborator outputs (face detector, OCR text)
    """

    def __init__(self):
        self.face_min_confidence = {
            "passport": settings.FACE_MIN_CONFIDENCE_PASSPORT,
            "profile": settings.FACE_MIN_CONFIDENCE_PROFILE,
        }

    def evaluate_face(self, detection: FaceDetection, photo_type: str = "passport") -> CheckResult:
        """
        Face presence check. An unavailable detector yields ok=False with
        FACE_UNAVAILABLE_MARKER so the scorer can tell it apart from a missing face.
        """
        if not detection.available:
            return CheckResult(
                ok=False,
                messages=[FACE_UNAVAILABLE_MARKER],
                stats={
                    "face_detected": False,
                    "face_count": 0,
                    "codes": "FACE_DETECTION_UNAVAILABLE",
                },
            )

        messages = []
        codes = []
        if not detection.face_detected:
            messages.append("Visage absent ou non centré")
            codes.append("INVALID_FACE")
        else:
            if detection.face_count > 1:
                messages.append("Plusieurs visages détectés")
                codes.append("MULTIPLE_FACES")
            min_conf = self.face_min_confidence.get(photo_type)
            if min_conf is not None and detection.confidence < min_conf:
                messages.append(f"Détection visage incertaine (score < {min_conf:.2f})")
                codes.append("FACE_CONFIDENCE_LOW")

        stats = {
            "face_detected": detection.face_detected,
            "face_count": detection.face_count,
            "face_confidence": round(detection.confidence, 3),
            "codes": ",".join(codes),
        }
        if detection.box is not None:
            stats.update({
                "face_x": detection.box.x,
                "face_y": detection.box.y,
                "face_width": detection.box.width,
                "face_height": detection.box.height,
            })
        return CheckResult(ok=not codes, messages=messages, stats=stats)

    def evaluate_front_ocr(self, raw_text: str) -> OcrCheckResult:
        """Document-type and MRZ check on the front side text"""
        text = normalize_text(raw_text)
        doc_type = classify_document_type(text)
        mrz_valid = detect_mrz(raw_text)
        return OcrCheckResult(
            ok=doc_type != "unknown",
            messages=[] if doc_type != "unknown" else ["Type de document non reconnu"],
            stats={
                "doc_type_detected": doc_type,
                "mrz_valid": mrz_valid,
                "keywords_csv": ",".join(compute_keywords(text)),
            },
            doc_type_detected=doc_type,
            mrz_valid=mrz_valid,
        )

    def score_back_reading(self, raw_text: str, extract: LicenceBackExtract) -> int:
        """Rank an OCR reading of a licence back; higher means more licence-like"""
        text = normalize_text(raw_text)
        score = 0
        if classify_document_type(text) == "driver_license":
            score += 3
        if extract.categories:
            score += 2
        if extract.issue_date and extract.expiry_date:
            score += 2
        if extract.birth_date:
            score += 1
        score += min(len(compute_keywords(text)), 3)
        return score

    def pick_back_reading(self, readings) -> Tuple[int, str, LicenceBackExtract]:
        """
        Choose the best of several OCR readings of the same licence back.
        Returns (index, text, extract); earlier readings win ties.
        """
        best = None
        for index, text in enumerate(readings):
            extract = parse_licence_back_from_ocr(text)
            score = self.score_back_reading(text, extract)
            if best is None or score > best[0]:
                best = (score, index, text, extract)
        _, index, text, extract = best
        return index, text, extract

    def evaluate_licence_back(self,
                              back: Optional[CheckResult],
                              raw_text: str,
                              extract: Optional[LicenceBackExtract] = None,
                              orientation: str = "originale") -> CheckResult:
        """
        Fold the back-of-licence OCR findings into the back CheckResult.
        Missing fields add messages; the verdict of the image check is kept.
        """
        extract = extract or parse_licence_back_from_ocr(raw_text)
        doc_type = classify_document_type(normalize_text(raw_text))
        base = back or CheckResult(ok=True)
        messages = list(base.messages)

        messages.append("Analyse OCR du verso effectuée")
        if doc_type != "driver_license":
            messages.append("Verso: type de document non reconnu comme permis de conduire")
        messages.append(f"OCR verso orientation: {orientation}")
        if not extract.categories:
            messages.append("Catégories non détectées sur le verso")
        if not extract.issue_date or not extract.expiry_date:
            messages.append("Dates de délivrance/expiration non détectées sur le verso")
        if not extract.birth_date:
            messages.append("Date de naissance non détectée sur le verso")

        likely_licence_back = (
            doc_type == "driver_license"
            or bool(extract.categories)
            or bool(extract.issue_date and extract.expiry_date)
            or bool(extract.birth_date)
        )
        if not likely_licence_back:
            messages.append("Verso: éléments caractéristiques du permis manquants (catégories/dates)")

        # Without an image check, the text alone decides the verdict
        ok = base.ok if back is not None else likely_licence_back
        return CheckResult(
            ok=ok,
            messages=messages,
            stats={
                **base.stats,
                "doc_type_detected": doc_type,
                "ocr_extract_categories": ",".join(extract.categories),
                "ocr_extract_issue_date": extract.issue_date or "",
                "ocr_extract_expiry_date": extract.expiry_date or "",
                "ocr_extract_birth_date": extract.birth_date or "",
                "is_likely_license_back": likely_licence_back,
            },
        )
