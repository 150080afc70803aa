from __future__ import annotations

import json

import pytest

from config.settings import settings
from reasoning.transports import Transport, TransportResponse


class FakeTransport(Transport):
    """Replays queued responses; an Exception in the queue is raised instead."""

    name = "fake"
    model = "fake-model"

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.prompts: list[str] = []

    def post(self, prompt: str) -> TransportResponse:
        self.prompts.append(prompt)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def ok_json(payload: dict) -> TransportResponse:
    return TransportResponse(status_code=200, body={"text": json.dumps(payload)})


def ok_text(text: str) -> TransportResponse:
    return TransportResponse(status_code=200, body={"text": text})


BASIC_PAYLOAD = {
    "threatLevel": "HIGH",
    "riskScore": 82,
    "incidentType": "Credential Phishing",
    "immediateAction": "Do not click the link",
    "redFlags": ["Shortened link", "Urgency pressure"],
    "researchFindings": [],
    "explanation": "Classic account-suspension lure.",
    "nextSteps": ["Report to IT security team immediately"],
    "entityExtraction": {"domains": ["bit.ly"], "phoneNumbers": []},
    "confidence": 0.8,
}

ADVANCED_PAYLOAD = {
    **BASIC_PAYLOAD,
    "riskScore": 91,
    "researchFindings": ["bit.ly hides the real destination"],
    "researchLog": [
        {
            "category": "contact_verification",
            "description": "Verifying domain bit.ly",
            "results": "bit.ly is a URL shortener. Flagged as suspicious.",
        }
    ],
    "citations": [{"title": "FTC phishing guidance", "url": "https://consumer.ftc.gov"}],
}

SCENARIO = (
    "Your account will be suspended, click http://bit.ly/xyz123 within 24 hours "
    "and pay $500 via bitcoin"
)


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    monkeypatch.setattr(settings, "LLM_PROVIDER", "mock")
    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "OFFER_ADVANCED_ANALYSIS", True)
    monkeypatch.setattr(settings, "REPORT_ID_PREFIX", "SCA")
    return settings
