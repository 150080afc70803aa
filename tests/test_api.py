import pytest
from fastapi.testclient import TestClient

import app as app_module
from app import app
from reasoning.transports import TransportResponse

from conftest import BASIC_PAYLOAD, SCENARIO, FakeTransport, ok_text

REQUIRED_KEYS = {
    "threatLevel",
    "riskScore",
    "incidentType",
    "immediateAction",
    "redFlags",
    "researchFindings",
    "explanation",
    "nextSteps",
}


@pytest.fixture
def client():
    return TestClient(app)


def _use_transport(monkeypatch, transport):
    monkeypatch.setattr(app_module, "build_transport", lambda cfg=None: transport)
    return transport


def test_missing_incident_is_400(client):
    r = client.post("/analyze", json={})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Missing incident data"
    assert body["userMessage"]


def test_blank_incident_is_400(client):
    r = client.post("/analyze", json={"incident": "   "})
    assert r.status_code == 400


def test_missing_body_is_400(client):
    r = client.post("/analyze")
    assert r.status_code == 400
    assert "error" in r.json()


def test_invalid_analysis_type_is_400(client):
    r = client.post("/analyze", json={"incident": SCENARIO, "analysisType": "deep"})
    assert r.status_code == 400


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_wrong_method_is_405(client, method):
    r = client.request(method.upper(), "/analyze")
    assert r.status_code == 405
    assert r.headers["allow"] == "POST"


def test_basic_analysis_with_offline_provider(client):
    r = client.post("/analyze", json={"incident": SCENARIO, "analysisType": "basic"})
    assert r.status_code == 200
    body = r.json()
    assert REQUIRED_KEYS <= body.keys()
    assert body["threatLevel"] == "HIGH"
    assert body["riskScore"] == 70
    assert "entityExtraction" in body


def test_analysis_type_defaults_to_basic(client, monkeypatch):
    transport = _use_transport(monkeypatch, FakeTransport([ok_text('{"threatLevel": "LOW"}')]))
    r = client.post("/analyze", json={"incident": "Team lunch moved to Friday."})
    assert r.status_code == 200
    assert "Basic analysis results:" not in transport.prompts[0]


def test_advanced_requires_basic_results(client):
    r = client.post("/analyze", json={"incident": SCENARIO, "analysisType": "advanced"})
    assert r.status_code == 400
    assert "basicResults" in r.json()["error"]


def test_advanced_analysis_refines_basic(client):
    basic = client.post("/analyze", json={"incident": SCENARIO}).json()
    r = client.post(
        "/analyze",
        json={"incident": SCENARIO, "analysisType": "advanced", "basicResults": basic},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["researchLog"]
    assert body["riskScore"] >= basic["riskScore"]


def test_advanced_sends_basic_results_to_provider(client, monkeypatch):
    transport = _use_transport(monkeypatch, FakeTransport([ok_text("{}")]))
    client.post(
        "/analyze",
        json={"incident": SCENARIO, "analysisType": "ADVANCED", "basicResults": BASIC_PAYLOAD},
    )
    prompt = transport.prompts[0]
    assert "Basic analysis results:" in prompt
    assert "Classic account-suspension lure." in prompt


def test_missing_credentials_is_500_with_fallback(client, default_settings):
    default_settings.LLM_PROVIDER = "gemini"
    default_settings.GEMINI_API_KEY = ""
    r = client.post("/analyze", json={"incident": SCENARIO})
    assert r.status_code == 500
    body = r.json()
    assert REQUIRED_KEYS <= body.keys()
    assert "GEMINI_API_KEY" in body["error"]
    assert body["userMessage"]


def test_provider_status_is_502_with_fallback(client, monkeypatch):
    _use_transport(monkeypatch, FakeTransport([TransportResponse(status_code=503, body={"error": "unavailable"})]))
    r = client.post("/analyze", json={"incident": SCENARIO})
    assert r.status_code == 502
    body = r.json()
    assert REQUIRED_KEYS <= body.keys()
    assert "503" in body["error"]
    assert body["degraded"] is True


def test_provider_prose_is_200_fallback(client, monkeypatch):
    _use_transport(monkeypatch, FakeTransport([ok_text("I think this is probably a scam.")]))
    r = client.post("/analyze", json={"incident": SCENARIO})
    assert r.status_code == 200
    body = r.json()
    assert body["threatLevel"] == "MEDIUM"
    assert body["riskScore"] == 60
    assert body["explanation"] == "I think this is probably a scam."


def test_api_key_enforced_when_configured(client, default_settings):
    default_settings.API_KEY = "secret"
    assert client.post("/analyze", json={"incident": SCENARIO}).status_code == 401
    ok = client.post("/analyze", json={"incident": SCENARIO}, headers={"x-api-key": "secret"})
    assert ok.status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["provider"] == "mock"
    assert client.get("/").json()["status"] == "ok"


def test_report_endpoint(client):
    r = client.post(
        "/report",
        json={"assessment": BASIC_PAYLOAD, "analysisType": "basic", "incident": SCENARIO},
    )
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert r.text.startswith("SCAM ASSESSMENT REPORT")
    assert "Report ID: SCA-" in r.text
    assert "RISK SCORE: 82/100" in r.text


def test_oversized_risk_score_from_client_is_clamped(client):
    huge = {**BASIC_PAYLOAD, "riskScore": 10**400}
    r = client.post("/report", json={"assessment": huge})
    assert r.status_code == 200
    assert "RISK SCORE: 100/100" in r.text

    r = client.post(
        "/analyze",
        json={"incident": SCENARIO, "analysisType": "advanced", "basicResults": huge},
    )
    assert r.status_code == 200
    assert r.json()["riskScore"] == 100
