import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from config import (
    CHECK_WEIGHTS,
    FACE_UNAVAILABLE_CREDIT,
    FACE_UNAVAILABLE_MARKER,
    STATUS_FLAGGED_MIN,
    STATUS_OK_MIN,
)
from .schemas import CheckResult, ReportStatus, ValidationReport


@dataclass(frozen=True)
class ScoringPolicy:
    """Check weights and the partial credit for an unavailable face detector"""
    weights: Mapping[str, float] = field(default_factory=lambda: MappingProxyType(dict(CHECK_WEIGHTS)))
    face_unavailable_credit: float = FACE_UNAVAILABLE_CREDIT

    def __post_init__(self):
        if not math.isclose(sum(self.weights.values()), 1.0, abs_tol=1e-9):
            raise ValueError(f"Check weights must sum to 1.0, got {sum(self.weights.values())}")
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))


DEFAULT_POLICY = ScoringPolicy()


def is_face_unavailable(result: Optional[CheckResult]) -> bool:
    """True when the face check failed because detection could not run"""
    return (
        result is not None
        and not result.ok
        and any(FACE_UNAVAILABLE_MARKER in message for message in result.messages)
    )


def compute_score(report: ValidationReport, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """
    Weighted share of passed checks, 0-100. Only checks present in the
    report count towards the denominator; an unavailable face detector
    earns partial credit instead of a failure.
    """
    score = 0.0
    total_weight = 0.0
    for name, weight in policy.weights.items():
        result = getattr(report, name, None)
        if result is None:
            continue
        total_weight += weight
        if name == "face" and is_face_unavailable(result):
            score += weight * policy.face_unavailable_credit
        else:
            score += weight * (1 if result.ok else 0)

    if total_weight <= 0:
        return 0
    # Half-up rounding; the small epsilon absorbs float error such as 0.7 * 100 = 69.999...
    return int(math.floor(100 * score / total_weight + 0.5 + 1e-9))


def finalize_status(report: ValidationReport) -> ReportStatus:
    if report.score >= STATUS_OK_MIN:
        return "ok"
    if report.score >= STATUS_FLAGGED_MIN:
        return "flagged"
    return "failed"


class DecisionEngine:
    """
    Scores a validation report and assigns its final status.
    The report passed in is left untouched; a finalised copy is returned.
    """

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY):
        self.policy = policy

    def decide(self, report: ValidationReport) -> ValidationReport:
        scored = report.model_copy(update={"score": compute_score(report, self.policy)})
        return scored.model_copy(update={"status": finalize_status(scored)})
