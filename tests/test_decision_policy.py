import pytest

from govdoc.config.settings import Settings
from govdoc.core.entities.decision import Disposition
from govdoc.core.entities.forensic_report import TamperRisk
from govdoc.core.errors import ValidationError
from govdoc.core.use_cases.decide_disposition import DecisionPolicy, decide

from tests.fakes import make_report


@pytest.mark.parametrize(
    "score, expected",
    [
        (100, Disposition.APPROVED),
        (85, Disposition.APPROVED),
        (84, Disposition.REVIEW),
        (70, Disposition.REVIEW),
        (69, Disposition.REJECTED),
        (0, Disposition.REJECTED),
    ],
)
def test_score_bands(score, expected):
    assert decide(make_report(score=score)).disposition == expected


def test_high_risk_tampering_rejects_regardless_of_score():
    decision = decide(make_report(score=95, tampering=True, risk=TamperRisk.HIGH))
    assert decision.disposition == Disposition.REJECTED
    assert decision.tamper_override is True
    assert "tampering" in decision.user_message


def test_critical_tampering_rejects():
    assert decide(make_report(score=99, tampering=True, risk=TamperRisk.CRITICAL)).disposition == Disposition.REJECTED


def test_low_risk_tampering_follows_score():
    decision = decide(make_report(score=90, tampering=True, risk=TamperRisk.LOW))
    assert decision.disposition == Disposition.APPROVED
    assert decision.tamper_override is False


def test_override_can_be_switched_off():
    policy = DecisionPolicy(tamper_override=False)
    decision = policy.decide(make_report(score=90, tampering=True, risk=TamperRisk.CRITICAL))
    assert decision.disposition == Disposition.APPROVED


def test_recommended_action_is_ignored():
    report = make_report(score=60, recommended_action="APPROVED")
    assert decide(report).disposition == Disposition.REJECTED


def test_same_report_same_decision():
    report = make_report(score=77)
    assert decide(report) == decide(report)


def test_status_lookup_labels():
    review = decide(make_report(score=75))
    assert review.status_decision == "UNDER_REVIEW"
    assert review.blockchain_status == "PENDING_HUMAN_REVIEW"
    assert "under review" in review.user_message

    approved = decide(make_report(score=90))
    assert approved.status_decision == "APPROVED"
    assert approved.blockchain_status == "APPROVED"


def test_thresholds_from_settings():
    settings = Settings(_env_file=None, auto_approve_threshold=90, review_threshold=60)
    policy = DecisionPolicy.from_settings(settings)
    assert policy.decide(make_report(score=88)).disposition == Disposition.REVIEW
    assert policy.decide(make_report(score=60)).disposition == Disposition.REVIEW
    assert policy.decide(make_report(score=59)).disposition == Disposition.REJECTED


def test_inverted_thresholds_are_rejected():
    with pytest.raises(ValidationError):
        DecisionPolicy(approve_threshold=60, review_threshold=70)


@pytest.mark.parametrize("bad_score", [101, -1, 85.5])
def test_report_score_must_be_integer_in_range(bad_score):
    with pytest.raises(ValidationError):
        make_report(score=bad_score)
