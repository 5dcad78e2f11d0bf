from typing import List, Optional, Tuple

from config import settings
from .image_stats import (
    ImageSample,
    ImageStats,
    blue_ink_ratio,
    dark_pixel_ratio,
    image_stats_from_sample,
    white_pixel_ratio,
)
from .schemas import CheckResult
from .utils import average_hash, hamming

PHOTO_MESSAGES = {
    "BACKGROUND_NOT_UNIFORM": "Fond non uniforme",
    "PHOTO_TOO_BLURRY": "Photo trop floue",
    "LOW_CONTRAST": "Contraste insuffisant",
    "COLOR_CAST_DETECTED": "Dominante couleur détectée: privilégiez un fond blanc neutre",
    "BACKGROUND_NOT_WHITE": "Fond blanc requis: utilisez un fond blanc, uniforme",
    "PROFILE_DIM_TOO_SMALL_OR_NOT_SQUARE": "Photo non conforme: utiliser un format carré ≥ 200x200",
    "DIM_TOO_SMALL": "Dimensions minimales 500x500 requises pour photo passeport",
    "NOT_PORTRAIT": "Photo non portrait (format paysage)",
    "SHADOWS_REFLECTIONS": "Ombres ou reflets gênants",
}

SUGGESTIONS = {
    "BACKGROUND_NOT_UNIFORM": "Utilisez un fond blanc uniforme sans motifs",
    "PHOTO_TOO_BLURRY": "Stabilisez l’appareil et améliorez la mise au point",
    "LOW_CONTRAST": "Augmentez la luminosité et le contraste",
    "COLOR_CAST_DETECTED": "Évitez les dominantes de couleur, lumière neutre",
    "BACKGROUND_NOT_WHITE": "Placez-vous devant un fond blanc",
    "PROFILE_DIM_TOO_SMALL_OR_NOT_SQUARE": "Utilisez une photo carrée d'au moins 200x200 pixels",
    "DIM_TOO_SMALL": "Utilisez une image d'au moins 600x600 pixels pour photo passeport",
    "NOT_PORTRAIT": "Utilisez une photo en orientation portrait ou carré (600x600 recommandé)",
    "SHADOWS_REFLECTIONS": "Éclairez uniformément pour éviter ombres/reflets",
    "INVALID_FACE": "Cadrez votre visage en face caméra, bien éclairé",
    "MULTIPLE_FACES": "Un seul visage doit être visible",
    "FACE_CONFIDENCE_LOW": "Reprenez la photo avec visage net et bien éclairé",
    "FACE_DETECTION_UNAVAILABLE": "Validation manuelle requise - Détection faciale temporairement indisponible",
    "ORIGINAL_TOO_SMALL": "Utilisez une image d’au moins 600x600",
}

# Signature messages dropped when the scan is large and carries some ink
SIGNATURE_OVERRIDABLE_PREFIXES = (
    "Fond blanc requis",
    "Dominante couleur détectée",
    "Signature absente ou très faible",
    "Signature non visible",
)


def suggestions_for(codes: List[str]) -> List[str]:
    """Map check codes to user-facing suggestions, without duplicates"""
    suggestions: List[str] = []
    for code in codes:
        suggestion = SUGGESTIONS.get(code)
        if suggestion and suggestion not in suggestions:
            suggestions.append(suggestion)
    return suggestions


def codes_from(result: Optional[CheckResult]) -> List[str]:
    if result is None or not result.stats.get("codes"):
        return []
    return str(result.stats["codes"]).split(",")


class ImageQualityGate:
    """
    Evaluates photo, signature and card-side images from their pixel statistics.
    Returns CheckResults whose messages are user-facing and whose stats keep
    the raw measurements for calibration.
    """

    def __init__(self):
        self.blur_min = settings.PHOTO_BLUR_MIN
        self.contrast_min = settings.PHOTO_CONTRAST_MIN
        self.bg_std_max_profile = settings.PHOTO_BG_STD_MAX_PROFILE
        self.bg_std_max_passport = settings.PHOTO_BG_STD_MAX_PASSPORT
        self.bg_std_max_tolerant = settings.PHOTO_BG_STD_MAX_TOLERANT
        self.rgb_delta_max_profile = settings.PHOTO_RGB_DELTA_MAX_PROFILE
        self.rgb_delta_max_passport = settings.PHOTO_RGB_DELTA_MAX_PASSPORT
        self.white_ratio_min = settings.PHOTO_WHITE_RATIO_MIN
        self.white_ratio_min_tolerant = settings.PHOTO_WHITE_RATIO_MIN_TOLERANT
        self.brightness_min = settings.PHOTO_BRIGHTNESS_MIN
        self.brightness_min_tolerant = settings.PHOTO_BRIGHTNESS_MIN_TOLERANT
        self.passport_min_dimension = settings.PASSPORT_MIN_DIMENSION
        self.profile_min_dimension = settings.PROFILE_MIN_DIMENSION

    def photo_codes(self,
                    stats: ImageStats,
                    white_ratio: float,
                    photo_type: str,
                    face_available: bool) -> List[str]:
        """Return the quality codes raised by a portrait photo"""
        codes = []
        id_photo = photo_type in ("passport", "profile")
        # Looser background/white thresholds when no face detector backs the decision
        tolerant = id_photo and not face_available

        if tolerant:
            bg_std_max = self.bg_std_max_tolerant
        elif photo_type == "profile":
            bg_std_max = self.bg_std_max_profile
        else:
            bg_std_max = self.bg_std_max_passport
        rgb_delta_max = self.rgb_delta_max_profile if photo_type == "profile" else self.rgb_delta_max_passport

        if stats.background_std_dev > bg_std_max:
            codes.append("BACKGROUND_NOT_UNIFORM")
        if stats.blur < self.blur_min:
            codes.append("PHOTO_TOO_BLURRY")
        if stats.contrast < self.contrast_min:
            codes.append("LOW_CONTRAST")
        if stats.rgb_balance_delta > rgb_delta_max:
            codes.append("COLOR_CAST_DETECTED")

        if id_photo:
            white_min = self.white_ratio_min_tolerant if tolerant else self.white_ratio_min
            brightness_min = self.brightness_min_tolerant if tolerant else self.brightness_min
            if white_ratio < white_min or stats.brightness < brightness_min:
                codes.append("BACKGROUND_NOT_WHITE")

        if photo_type == "profile":
            square = stats.width == stats.height
            if not (square and stats.width >= self.profile_min_dimension):
                codes.append("PROFILE_DIM_TOO_SMALL_OR_NOT_SQUARE")
        if photo_type == "passport":
            if min(stats.width, stats.height) < self.passport_min_dimension:
                codes.append("DIM_TOO_SMALL")

        if stats.width > stats.height:
            codes.append("NOT_PORTRAIT")
        if stats.background_std_dev > 22 and stats.contrast > 35:
            codes.append("SHADOWS_REFLECTIONS")
        return codes

    def evaluate_photo(self,
                       sample: ImageSample,
                       photo_type: str = "passport",
                       face_available: bool = True,
                       stats: Optional[ImageStats] = None) -> CheckResult:
        """Evaluate a portrait photo; ok when no quality code is raised"""
        stats = stats or image_stats_from_sample(sample)
        white_ratio = white_pixel_ratio(sample)
        codes = self.photo_codes(stats, white_ratio, photo_type, face_available)

        return CheckResult(
            ok=not codes,
            messages=[PHOTO_MESSAGES[code] for code in codes],
            stats={
                **stats.as_dict(),
                "white_pixel_ratio": round(white_ratio, 4),
                "photo_type": photo_type,
                "codes": ",".join(codes),
            },
        )

    def evaluate_signature(self, sample: ImageSample, stats: Optional[ImageStats] = None) -> CheckResult:
        """Evaluate a scanned handwritten signature"""
        stats = stats or image_stats_from_sample(sample)
        messages = []

        if stats.brightness > 252 and stats.contrast < 6:
            messages.append("Signature non visible (fond trop clair, contraste faible)")
        if stats.blur < settings.SIGNATURE_BLUR_MIN:
            messages.append("Signature trop floue")

        ink_coverage = dark_pixel_ratio(sample)
        white_ratio = white_pixel_ratio(sample)
        if ink_coverage < settings.SIGNATURE_INK_MIN:
            messages.append("Signature absente ou très faible")
        if stats.background_std_dev < 1.2 and ink_coverage < 0.01 and stats.contrast < 4.5:
            messages.append("Fond trop uniforme, signature peu marquée")
        if white_ratio < settings.SIGNATURE_WHITE_RATIO_MIN or stats.brightness < settings.SIGNATURE_BRIGHTNESS_MIN:
            messages.append("Fond blanc requis: utilisez une feuille blanche, uniforme")
        if stats.rgb_balance_delta > settings.SIGNATURE_RGB_DELTA_MAX:
            messages.append("Dominante couleur détectée: privilégiez un fond blanc neutre")

        # Blue ballpoint ink is not dark enough to count as ink on luminance alone
        blue_coverage = blue_ink_ratio(sample)
        if blue_coverage > 0:
            ink_coverage = max(ink_coverage, blue_coverage * 0.8)

        ok = not messages
        min_side = min(stats.width, stats.height)
        accept_override = min_side >= settings.SIGNATURE_ACCEPT_MIN_SIDE and (
            ink_coverage >= 0.0002 or stats.contrast >= 2.8
        )
        if accept_override:
            ok = True
            messages = [m for m in messages if not m.startswith(SIGNATURE_OVERRIDABLE_PREFIXES)]

        return CheckResult(
            ok=ok,
            messages=messages,
            stats={
                **stats.as_dict(),
                "ink_coverage": round(ink_coverage, 5),
                "white_pixel_ratio": round(white_ratio, 4),
            },
        )

    def evaluate_card_sides(self, front: ImageSample, back: ImageSample) -> Tuple[CheckResult, CheckResult]:
        """Compare document front and back; both results share the same verdict"""
        f_stats = image_stats_from_sample(front)
        b_stats = image_stats_from_sample(back)
        distance = hamming(average_hash(front), average_hash(back))
        messages = []

        widest = max(f_stats.width, b_stats.width)
        if widest and abs(f_stats.width - b_stats.width) / widest > settings.CARD_SIZE_MISMATCH_MAX:
            messages.append("Recto et verso n’ont pas la même taille")
        if distance < settings.CARD_IDENTICAL_HASH_DISTANCE:
            messages.append("Le recto et le verso semblent identiques")
        if min(f_stats.width, f_stats.height) < settings.CARD_MIN_SIDE or \
                min(b_stats.width, b_stats.height) < settings.CARD_MIN_SIDE:
            messages.append("Image trop petite pour recto/verso")

        ok = not messages
        if b_stats.width > b_stats.height:
            # Informational only: most cards are scanned landscape
            messages.append("Format inhabituel: carte en paysage (plus large que haute)")

        front_result = CheckResult(
            ok=ok, messages=list(messages), stats={**f_stats.as_dict(), "hash_distance": distance}
        )
        back_result = CheckResult(
            ok=ok, messages=list(messages), stats={**b_stats.as_dict(), "hash_distance": distance}
        )
        return front_result, back_result
