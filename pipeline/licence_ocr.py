"""
Back-of-licence OCR parsing.

Extracts the authorised vehicle categories and the issue, expiry and birth
dates from raw OCR text of a driver licence reverse side. Extraction runs
as a chain of pure stages; each stage only fills fields still unset, so an
earlier stage always wins. The pipe-pair stage runs first and therefore
overrides every later stage for issue/expiry.

The birth-date positional stage (third distinct date in scan order) is an
empirical layout assumption, not a structural rule.
"""
import re
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import LICENCE_CATEGORIES

LABEL_WINDOW = 80

_CATEGORY_RE = re.compile(
    r"\b(" + "|".join(sorted(LICENCE_CATEGORIES, key=len, reverse=True)) + r")\b"
)
_DATE_RE = re.compile(r"\b(\d{2})[./-](\d{2})[./-](\d{2,4})\b")
_DATE_TOKEN = r"\d{2}[./-]\d{2}[./-]\d{2,4}"
_PIPE_PAIR_RE = re.compile(r"\b(" + _DATE_TOKEN + r")\s*\|\s*(" + _DATE_TOKEN + r")\b")

_ISSUE_LABEL_RE = re.compile(r"(DELIV|DÉLIV|DELIVRE|DÉLIVRÉ|EMIS|ÉMIS|DATE\s+DE\s+DÉLIV)")
_EXPIRY_LABEL_RE = re.compile(
    r"(EXPIR|EXPIRATION|VALABLE\s+JUSQU|DATE\s+D'EXPIRATION|DATE\s+DE\s+VALIDITÉ)"
)
_BIRTH_LABEL_RE = re.compile(r"(NAISSANCE|NÉ\s+LE|NE\s+LE|DATE\s+DE\s+NAISSANCE)")


@dataclass(frozen=True)
class LicenceBackExtract:
    categories: Tuple[str, ...] = ()
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    birth_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["categories"] = list(self.categories)
        return data


Stage = Callable[[LicenceBackExtract, str, int], LicenceBackExtract]


def normalize_ocr_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).upper()


def current_year_cutoff() -> int:
    return date.today().year % 100


def to_iso_date(dd: str, mm: str, yy: str, cutoff: Optional[int] = None) -> str:
    """
    Build YYYY-MM-DD from day/month/year tokens. Two-digit years fold to
    20xx when <= cutoff (the current two-digit year by default), else 19xx.
    """
    year = int(yy)
    if len(yy) == 2:
        if cutoff is None:
            cutoff = current_year_cutoff()
        year = 2000 + year if year <= cutoff else 1900 + year
    return f"{year:04d}-{int(mm):02d}-{int(dd):02d}"


def _date_from_token(token: str, cutoff: int) -> Optional[str]:
    match = _DATE_RE.search(token)
    if not match:
        return None
    return to_iso_date(*match.groups(), cutoff=cutoff)


def _distinct_dates(text: str, cutoff: int) -> List[str]:
    dates: List[str] = []
    for match in _DATE_RE.finditer(text):
        iso = to_iso_date(*match.groups(), cutoff=cutoff)
        if iso not in dates:
            dates.append(iso)
    return dates


def _fill(extract: LicenceBackExtract, **candidates: Optional[str]) -> LicenceBackExtract:
    """Set only the fields that are still None"""
    updates = {
        field: value
        for field, value in candidates.items()
        if value is not None and getattr(extract, field) is None
    }
    return replace(extract, **updates) if updates else extract


def _date_near(label_re: "re.Pattern[str]", text: str, cutoff: int) -> Optional[str]:
    label = label_re.search(text)
    if not label:
        return None
    window = text[label.start():label.start() + LABEL_WINDOW]
    return _date_from_token(window, cutoff)


def extract_categories(extract: LicenceBackExtract, text: str, cutoff: int) -> LicenceBackExtract:
    seen = {match.group(1) for match in _CATEGORY_RE.finditer(text)}
    if not seen or extract.categories:
        return extract
    return replace(extract, categories=tuple(c for c in LICENCE_CATEGORIES if c in seen))


def extract_pipe_pair(extract: LicenceBackExtract, text: str, cutoff: int) -> LicenceBackExtract:
    match = _PIPE_PAIR_RE.search(text)
    if not match:
        return extract
    return _fill(
        extract,
        issue_date=_date_from_token(match.group(1), cutoff),
        expiry_date=_date_from_token(match.group(2), cutoff),
    )


def extract_labelled_dates(extract: LicenceBackExtract, text: str, cutoff: int) -> LicenceBackExtract:
    return _fill(
        extract,
        issue_date=_date_near(_ISSUE_LABEL_RE, text, cutoff),
        expiry_date=_date_near(_EXPIRY_LABEL_RE, text, cutoff),
        birth_date=_date_near(_BIRTH_LABEL_RE, text, cutoff),
    )


def extract_positional_birth(extract: LicenceBackExtract, text: str, cutoff: int) -> LicenceBackExtract:
    if extract.birth_date is not None:
        return extract
    dates = _distinct_dates(text, cutoff)
    return _fill(extract, birth_date=dates[2] if len(dates) >= 3 else None)


def extract_positional_validity(extract: LicenceBackExtract, text: str, cutoff: int) -> LicenceBackExtract:
    if extract.issue_date is not None and extract.expiry_date is not None:
        return extract
    dates = _distinct_dates(text, cutoff)
    return _fill(
        extract,
        issue_date=dates[0] if len(dates) > 0 else None,
        expiry_date=dates[1] if len(dates) > 1 else None,
    )


STAGES: Tuple[Stage, ...] = (
    extract_categories,
    extract_pipe_pair,
    extract_labelled_dates,
    extract_positional_birth,
    extract_positional_validity,
)


def parse_licence_back_from_ocr(text: Any, cutoff: Optional[int] = None) -> LicenceBackExtract:
    """Parse licence back OCR text; never raises, returns an empty extract for unusable input"""
    extract = LicenceBackExtract()
    if not text or not isinstance(text, str):
        return extract

    normalized = normalize_ocr_text(text)
    if cutoff is None:
        cutoff = current_year_cutoff()
    for stage in STAGES:
        extract = stage(extract, normalized, cutoff)
    return extract
