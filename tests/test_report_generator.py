from datetime import datetime, timezone

from models.assessment_schemas import AnalysisStage, Assessment
from reasoning.normalizer import normalize
from reporting.report_generator import DISCLAIMER, ReportMeta, generate_report, make_report_id

from conftest import ADVANCED_PAYLOAD, BASIC_PAYLOAD, SCENARIO

TS = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)


def _meta(stage=AnalysisStage.BASIC, incident=SCENARIO):
    return ReportMeta(timestamp=TS, incident_id="SCA-00000001", stage=stage, incident=incident)


def test_report_is_deterministic():
    a = Assessment.model_validate(BASIC_PAYLOAD)
    assert generate_report(a, _meta()) == generate_report(a, _meta())


def test_make_report_id():
    assert make_report_id(datetime(2024, 1, 1, tzinfo=timezone.utc), "SCA") == "SCA-67200000"


def test_make_report_id_uses_configured_prefix(default_settings):
    default_settings.REPORT_ID_PREFIX = "ACME"
    assert make_report_id(datetime(2024, 1, 1, tzinfo=timezone.utc)) == "ACME-67200000"


def test_basic_report_layout():
    report = generate_report(Assessment.model_validate(BASIC_PAYLOAD), _meta())

    assert report.startswith("SCAM ASSESSMENT REPORT\nReport level: Basic / Educational\n")
    assert "Generated: 2024-01-01T12:30:00+00:00" in report
    assert "Report ID: SCA-00000001" in report
    assert f"YOUR DESCRIPTION\n{SCENARIO}" in report
    assert "THREAT LEVEL: HIGH\nRISK SCORE: 82/100\nINCIDENT TYPE: Credential Phishing" in report
    assert "RED FLAGS\n• Shortened link\n• Urgency pressure" in report
    assert "NEXT STEPS\n• Report to IT security team immediately" in report
    assert "ENTITIES DETECTED\nDomains: bit.ly" in report
    assert "CONFIDENCE: 80%" in report
    assert DISCLAIMER in report
    assert report.endswith("— End of Report —\n")


def test_empty_sections_are_omitted():
    report = generate_report(Assessment.model_validate(BASIC_PAYLOAD), _meta(incident=None))

    assert "RESEARCH FINDINGS" not in report
    assert "YOUR DESCRIPTION" not in report
    assert "CITATIONS" not in report
    assert "VERIFICATION SNAPSHOT" not in report
    assert "Phone numbers" not in report
    assert "NOTE" not in report


def test_degraded_assessment_is_flagged():
    report = generate_report(normalize("plain prose answer"), _meta())
    assert "NOTE\nThe analysis service returned an unstructured answer." in report
    assert "RISK SCORE: 60/100" in report


def test_advanced_report_includes_research_and_initial_assessment():
    basic = Assessment.model_validate(BASIC_PAYLOAD)
    advanced = Assessment.model_validate(ADVANCED_PAYLOAD)
    report = generate_report(advanced, _meta(stage=AnalysisStage.ADVANCED), basic=basic)

    assert "Report level: Advanced / Investigation" in report
    assert "RESEARCH FINDINGS\n• bit.ly hides the real destination" in report
    assert "CITATIONS\n• FTC phishing guidance - https://consumer.ftc.gov" in report
    assert "VERIFICATION SNAPSHOT\nStatus: FRAUD_ALERTS_FOUND" in report
    assert "KEY TAKEAWAYS" in report
    assert "RECOMMENDED ACTIONS" in report
    assert "SOURCES TO REVIEW" in report
    assert "INITIAL ASSESSMENT\nThreat level: HIGH | Risk score: 82/100 | Type: Credential Phishing" in report


def test_signal_weights_and_fractional_confidence():
    payload = {**BASIC_PAYLOAD, "signalWeights": {"links": 20, "urgency": 10}, "confidence": 0.85}
    report = generate_report(Assessment.model_validate(payload), _meta())
    assert "SIGNAL WEIGHTS\nLinks: 20\nUrgency: 10" in report
    assert "CONFIDENCE: 85%" in report
