from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

StatValue = Union[bool, int, float, str]
ReportStatus = Literal["ok", "flagged", "failed"]


class CheckResult(BaseModel):
    ok: bool
    messages: List[str] = Field(default_factory=list)
    stats: Dict[str, StatValue] = Field(default_factory=dict)


class OcrCheckResult(CheckResult):
    doc_type_detected: Optional[str] = None
    mrz_valid: Optional[bool] = None


class StageTimers(BaseModel):
    photo_ms: Optional[float] = None
    signature_ms: Optional[float] = None
    card_ms: Optional[float] = None
    ocr_ms: Optional[float] = None
    score_ms: Optional[float] = None
    total_ms: Optional[float] = None


class ValidationReport(BaseModel):
    photo: Optional[CheckResult] = None
    face: Optional[CheckResult] = None
    signature: Optional[CheckResult] = None
    front: Optional[CheckResult] = None
    back: Optional[CheckResult] = None
    ocr: Optional[OcrCheckResult] = None
    score: int = 0
    status: ReportStatus = "failed"
    suggestions: List[str] = Field(default_factory=list)
    timers: StageTimers = Field(default_factory=StageTimers)
    preprocess: Dict[str, Dict[str, StatValue]] = Field(default_factory=dict)
