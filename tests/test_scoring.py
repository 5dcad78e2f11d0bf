"""
Scoring and status tests.

Run with: pytest tests/test_scoring.py -v
"""
import pytest

from config import FACE_UNAVAILABLE_MARKER
from pipeline.decision import (
    DecisionEngine,
    ScoringPolicy,
    compute_score,
    finalize_status,
    is_face_unavailable,
)
from pipeline.schemas import CheckResult, ValidationReport


def ok():
    return CheckResult(ok=True)


def bad(*messages):
    return CheckResult(ok=False, messages=list(messages))


class TestComputeScore:
    """Weighted score over the checks present in a report"""

    def test_photo_only_is_not_penalised_for_missing_checks(self):
        assert compute_score(ValidationReport(photo=ok())) == 100

    def test_present_weights_form_the_denominator(self):
        report = ValidationReport(photo=ok(), face=ok(), signature=bad("Signature floue"))
        # 100 * 0.5 / 0.6
        assert compute_score(report) == 83

    def test_unavailable_face_earns_partial_credit(self):
        report = ValidationReport(face=bad(f"{FACE_UNAVAILABLE_MARKER} (service injoignable)"))
        assert compute_score(report) == 70

    def test_missing_face_is_a_full_failure(self):
        assert compute_score(ValidationReport(face=bad("Visage absent ou non centré"))) == 0

    def test_marker_on_other_checks_is_ignored(self):
        report = ValidationReport(photo=bad(FACE_UNAVAILABLE_MARKER))
        assert compute_score(report) == 0

    def test_empty_report_scores_zero(self):
        assert compute_score(ValidationReport()) == 0

    def test_full_report_with_unavailable_face(self):
        report = ValidationReport(
            photo=ok(),
            face=bad(FACE_UNAVAILABLE_MARKER),
            signature=ok(),
            front=ok(),
            back=ok(),
            ocr=ok(),
        )
        # 0.20 + 0.21 + 0.10 + 0.15 + 0.15 + 0.10 = 0.91
        assert compute_score(report) == 91

    def test_all_failing_scores_zero(self):
        report = ValidationReport(photo=bad(), face=bad(), front=bad(), back=bad())
        assert compute_score(report) == 0

    def test_score_is_bounded(self):
        report = ValidationReport(photo=ok(), face=ok(), signature=ok(), front=ok(), back=ok(), ocr=ok())
        assert compute_score(report) == 100


class TestScoringPolicy:

    def test_alternate_weights(self):
        policy = ScoringPolicy(weights={"photo": 0.5, "face": 0.5})
        report = ValidationReport(photo=ok(), face=bad(), signature=bad())
        # signature carries no weight under this policy
        assert compute_score(report, policy) == 50

    def test_alternate_unavailable_credit(self):
        policy = ScoringPolicy(face_unavailable_credit=0.5)
        report = ValidationReport(face=bad(FACE_UNAVAILABLE_MARKER))
        assert compute_score(report, policy) == 50

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoringPolicy(weights={"photo": 0.5, "face": 0.4})

    def test_weights_are_read_only(self):
        policy = ScoringPolicy()
        with pytest.raises(TypeError):
            policy.weights["photo"] = 1.0

    def test_source_mapping_changes_do_not_leak(self):
        weights = {"photo": 0.5, "face": 0.5}
        policy = ScoringPolicy(weights=weights)
        weights["photo"] = 0.9
        assert policy.weights["photo"] == 0.5


class TestFinalizeStatus:

    @pytest.mark.parametrize("score,status", [
        (100, "ok"),
        (85, "ok"),
        (84, "flagged"),
        (60, "flagged"),
        (59, "failed"),
        (0, "failed"),
    ])
    def test_thresholds(self, score, status):
        assert finalize_status(ValidationReport(score=score)) == status


class TestDecisionEngine:

    def test_decide_sets_score_and_status(self):
        report = ValidationReport(photo=ok(), face=ok(), signature=bad())
        decided = DecisionEngine().decide(report)
        assert decided.score == 83
        assert decided.status == "flagged"

    def test_decide_leaves_input_untouched(self):
        report = ValidationReport(photo=ok())
        DecisionEngine().decide(report)
        assert report.score == 0
        assert report.status == "failed"

    def test_is_face_unavailable(self):
        assert is_face_unavailable(bad(FACE_UNAVAILABLE_MARKER))
        assert not is_face_unavailable(CheckResult(ok=True, messages=[FACE_UNAVAILABLE_MARKER]))
        assert not is_face_unavailable(bad("Visage absent ou non centré"))
        assert not is_face_unavailable(None)
