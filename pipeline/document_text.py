import re
import unicodedata
from typing import List

PASSPORT_KEYWORDS = [
    "republique democratique du congo",
    "democratic republic of the congo",
    "passeport",
    "passport",
    "n passeport",
    "number of passport",
    "nationality",
    "nationalite",
    "place of birth",
    "lieu de naissance",
    "date of birth",
    "authority",
    "autorite",
    "ministere",
    "ministry",
]

VOTER_KEYWORDS = [
    "commission electorale nationale independante",
    "commission electorale",
    "ceni",
    "carte d electeur",
    "carte electeur",
    "code cielect",
    "numero electeur",
    "n bre d electeur",
    "n de votant",
    "bureau de vote",
    "voter",
    "lieu de delivrance",
    "voter est un droit",
    "enrolement",
]

DRIVER_KEYWORDS = [
    "permis de conduire",
    "driving license",
    "permit",
    "conduite",
    "permis",
    "ministere des transports",
    "ministry of transports",
    "categories",
    "category",
    "categorie",
    "date de delivrance",
    "date of issue",
    "delivre le",
    "date d expiration",
    "expiry date",
    "expire le",
    "expiration",
    "valable jusqu",
    "numero de permis",
    "n permis",
    "cgo",
]

POLICE_KEYWORDS = [
    "police nationale congolaise",
    "pnc",
    "police",
    "carte de service",
    "carte professionnelle",
    "ministere de l interieur",
    "agent de police",
    "numero matricule",
    "matricule",
    "carte d agent",
    "carte de police",
    "identite professionnelle",
    "grade",
    "brigadier",
    "inspecteur",
    "commissariat",
    "direction generale de la police",
    "police congolaise",
]

FIELD_KEYWORDS = [
    "nom",
    "prenom",
    "date naissance",
    "numero",
    "expire",
    "delivre",
    "province",
    "commune",
    "matricule",
    "fonction",
    "grade",
    "unite",
    "commissariat",
]

_CATEGORY_RE = re.compile(r"\b(a1|a|b1|b|c1|c|d1|d|be|ce|de)\b")
_DATE_PAIR_RE = re.compile(r"\b\d{2}[./-]\d{2}[./-]\d{2,4}\b.*\b\d{2}[./-]\d{2}[./-]\d{2,4}\b")
_MRZ_LINE_RE = re.compile(r"^[A-Z0-9<]{44}$")


def normalize_text(text: str) -> str:
    """Lower-case, strip accents and apostrophes, collapse whitespace"""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = re.sub(r"['’]", "", stripped)
    return re.sub(r"\s+", " ", stripped).strip()


def detect_mrz(raw_text: str) -> bool:
    """True when two consecutive lines form a 2 x 44 passport MRZ"""
    lines = [line.strip().replace(" ", "").upper() for line in raw_text.splitlines()]
    for first, second in zip(lines, lines[1:]):
        if _MRZ_LINE_RE.match(first) and _MRZ_LINE_RE.match(second):
            return True
    return False


def _has_any(text: str, keywords: List[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def classify_document_type(text: str) -> str:
    """Classify normalised OCR text into a document type, or 'unknown'"""
    if _has_any(text, PASSPORT_KEYWORDS):
        return "passport"
    if _has_any(text, VOTER_KEYWORDS):
        return "voter_card"
    if _has_any(text, DRIVER_KEYWORDS) or _CATEGORY_RE.search(text) or _DATE_PAIR_RE.search(text):
        return "driver_license"
    if _has_any(text, POLICE_KEYWORDS):
        return "police_card"
    return "unknown"


def compute_keywords(text: str) -> List[str]:
    return [field for field in FIELD_KEYWORDS if field in text]
