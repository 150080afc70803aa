from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
import json
import logging
import re
from typing import Any

import requests

from config.settings import Settings, settings as default_settings
from extraction.extractor import extract_entities
from reasoning.prompts import INCIDENT_MARKER, PRIOR_RESULT_MARKER, read_embedded

logger = logging.getLogger(__name__)

_GEMINI_EXECUTOR = ThreadPoolExecutor(max_workers=4)


class ConfigurationError(RuntimeError):
    """The selected provider is missing a credential or is unknown."""


class TransportError(RuntimeError):
    """The provider could not be reached (connection failure, timeout)."""


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: Any = None


class Transport:
    """
    One outbound completion call. `post` raises TransportError (or the
    underlying library's error) when the provider is unreachable; any HTTP
    status, including failures, is returned in the response.
    """

    name = "base"
    model = ""

    def post(self, prompt: str) -> TransportResponse:
        raise NotImplementedError

    def extract_text(self, body: Any) -> str | None:
        if isinstance(body, dict):
            text = body.get("text")
            if isinstance(text, str):
                return text
        return None

    def error_message(self, body: Any) -> str:
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                return str(err.get("message") or err.get("type") or err)
            if err:
                return str(err)
        return ""


# --------------------------------------------------
# Anthropic Messages API (plain HTTP)
# --------------------------------------------------
class AnthropicTransport(Transport):
    name = "anthropic"

    def __init__(self, cfg: Settings) -> None:
        if not cfg.ANTHROPIC_API_KEY:
            raise ConfigurationError("ANTHROPIC_API_KEY is not configured.")
        self.api_key = cfg.ANTHROPIC_API_KEY
        self.url = cfg.ANTHROPIC_API_URL
        self.version = cfg.ANTHROPIC_API_VERSION
        self.model = cfg.LLM_MODEL_NAME or "claude-sonnet-4-20250514"
        self.max_tokens = cfg.LLM_MAX_TOKENS
        self.timeout = cfg.LLM_REQUEST_TIMEOUT_SECONDS

    def post(self, prompt: str) -> TransportResponse:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.version,
            "content-type": "application/json",
        }
        response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        try:
            body = response.json()
        except ValueError:
            body = {"error": (response.text or "")[:500]}
        return TransportResponse(status_code=response.status_code, body=body)

    def extract_text(self, body: Any) -> str | None:
        if not isinstance(body, dict):
            return None
        blocks = body.get("content")
        if not isinstance(blocks, list):
            return None
        parts = [
            str(b.get("text"))
            for b in blocks
            if isinstance(b, dict) and b.get("type") == "text" and b.get("text")
        ]
        return "\n".join(parts) if parts else None


# --------------------------------------------------
# Gemini (google-generativeai SDK)
# --------------------------------------------------
class GeminiTransport(Transport):
    name = "gemini"

    def __init__(self, cfg: Settings) -> None:
        if not cfg.GEMINI_API_KEY:
            raise ConfigurationError("GEMINI_API_KEY is not configured.")
        self.api_key = cfg.GEMINI_API_KEY
        name = (cfg.LLM_MODEL_NAME or "gemini-1.5-flash").strip()
        if not name.startswith("models/"):
            name = f"models/{name}"
        self.model = name
        self.timeout = cfg.LLM_REQUEST_TIMEOUT_SECONDS if cfg.LLM_REQUEST_TIMEOUT_SECONDS > 0 else 60
        self._model: Any = None

    def _ensure_model(self) -> Any:
        """
        Lazy-init Gemini model so importing this module never needs the SDK.
        """
        if self._model is None:
            import google.generativeai as genai  # type: ignore

            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model)
        return self._model

    def post(self, prompt: str) -> TransportResponse:
        model = self._ensure_model()
        future = _GEMINI_EXECUTOR.submit(model.generate_content, prompt)
        try:
            response = future.result(timeout=self.timeout)
        except FuturesTimeoutError as e:
            raise TransportError(f"Gemini request timed out after {self.timeout}s.") from e
        except Exception as e:
            # google.api_core errors carry the HTTP status in `.code`.
            code = getattr(e, "code", None)
            if isinstance(code, int):
                return TransportResponse(status_code=code, body={"error": str(e)})
            raise

        try:
            text = response.text
        except ValueError:
            # Blocked or empty candidates.
            text = None
        return TransportResponse(status_code=200, body={"text": text})


# --------------------------------------------------
# Offline provider (deterministic heuristics)
# --------------------------------------------------
_SHORTENERS = {"bit.ly", "tinyurl.com", "goo.gl", "t.co", "ow.ly", "is.gd", "cutt.ly", "rb.gy"}
_RISKY_TLDS = {"xyz", "top", "tk", "ml", "ga", "cf", "gq", "click", "link", "online", "site"}


def _heuristic_assessment(text: str) -> dict[str, Any]:
    """
    Best-effort assessment using deterministic heuristics.
    """
    t = (text or "").strip()
    tl = t.lower()
    entities = extract_entities(t)

    if len(tl) < 10:
        return {
            "threatLevel": "UNKNOWN",
            "riskScore": 10,
            "incidentType": "Insufficient Context",
            "immediateAction": "Paste the full message so it can be assessed",
            "redFlags": [],
            "researchFindings": [],
            "explanation": "The message is too short to assess reliably.",
            "nextSteps": ["Provide the complete message, including sender details"],
            "entityExtraction": entities,
            "confidence": 0.1,
        }

    weights: dict[str, int] = {}
    red_flags: list[str] = []

    def signal(name: str, weight: int, flag: str) -> None:
        weights[name] = weight
        red_flags.append(flag)

    tactics = set(entities["tactics"])
    if re.search(r"\b(?:password|otp|one time password|pin|ssn|social security)\b", tl):
        signal("credentials", 30, "Requests sensitive credentials")
    if entities["urls"]:
        signal("links", 20, "Contains a link")
    if any(d in _SHORTENERS for d in entities["domains"]):
        signal("shortener", 10, "Uses a URL shortener to hide the destination")
    if any(d.rsplit(".", 1)[-1] in _RISKY_TLDS for d in entities["domains"]):
        signal("risky_tld", 10, "Uses a domain extension common in scam campaigns")
    if entities["phoneNumbers"]:
        signal("phone", 5, "Contains a phone number to call or text")
    if "payment" in tactics or entities["amounts"]:
        signal("payment", 15, "Asks for or mentions a payment")
    if "threat" in tactics:
        signal("threat", 15, "Threatens account action or consequences")
    if "urgency" in tactics:
        signal("urgency", 10, "Creates urgency pressure")
    if "verification" in tactics:
        signal("verification", 10, "Asks you to verify or confirm details")
    if "reward" in tactics:
        signal("reward", 10, "Offers a reward that may be too good to be true")
    if "off_platform" in tactics:
        signal("off_platform", 10, "Moves the conversation to another chat app")

    # Floor at 5: a score of 0 is replaced by the default when normalized.
    score = max(5, min(sum(weights.values()), 95))
    if score >= 60:
        level = "HIGH"
    elif score >= 30:
        level = "MEDIUM"
    else:
        level = "LOW"

    if "reward" in tactics and "off_platform" in tactics:
        incident_type = "Job or Prize Scam"
    elif "credentials" in weights or "verification" in tactics:
        incident_type = "Credential Phishing"
    elif "payment" in weights:
        incident_type = "Payment Fraud"
    elif score >= 30:
        incident_type = "Social Engineering"
    else:
        incident_type = "Legitimate Communication"

    if level == "LOW":
        action = "No immediate action required; stay alert"
        steps = ["Follow security protocols", "Verify unexpected requests through official channels"]
        explanation = "No strong scam indicators were found in the text."
    else:
        action = "Do not click links, reply, or send money"
        steps = [
            "Report to IT security team immediately",
            "Do not interact with links, attachments or phone numbers in the message",
            "Contact the organization through its official website or app",
        ]
        explanation = "Likely scam: " + ", ".join(f.lower() for f in red_flags[:3]) + "."

    return {
        "threatLevel": level,
        "riskScore": score,
        "incidentType": incident_type,
        "immediateAction": action,
        "redFlags": red_flags,
        "researchFindings": [],
        "explanation": explanation,
        "nextSteps": steps,
        "entityExtraction": entities,
        "signalWeights": weights,
        "confidence": round(min(0.5 + len(red_flags) * 0.05, 0.9), 2),
    }


def _refine_assessment(prior: dict[str, Any], text: str) -> dict[str, Any]:
    """
    Advanced pass: reuse the prior extraction and record offline checks
    as a research log.
    """
    entities = prior.get("entityExtraction") or extract_entities(text)
    log: list[dict[str, str]] = []
    findings: list[str] = []
    bump = 0

    for domain in (entities.get("domains") or [])[:3]:
        if domain in _SHORTENERS:
            results = f"{domain} is a URL shortener; the real destination is hidden. Flagged as suspicious."
            findings.append(f"{domain} hides the real destination")
            bump += 10
        elif domain.rsplit(".", 1)[-1] in _RISKY_TLDS:
            results = f"{domain} uses a high-risk domain extension. Flagged as suspicious."
            findings.append(f"{domain} uses a high-risk domain extension")
            bump += 10
        else:
            results = f"No fraud alerts found for {domain} in the offline reference list."
        log.append({"category": "contact_verification", "description": f"Verifying domain {domain}", "results": results})

    for org in (entities.get("organizations") or [])[:2]:
        official = [d for d in (entities.get("domains") or []) if org.lower().replace(" ", "") in d]
        if official:
            results = f"Official website referenced: https://{official[0]}"
        else:
            results = f"None of the links in the message belong to {org}; no official website match."
            findings.append(f"Links do not match {org}'s official domains")
            bump += 5
        log.append({"category": "business_verification", "description": f"Checking business {org}", "results": results})

    tactics = entities.get("tactics") or []
    if tactics:
        log.append(
            {
                "category": "threat_intelligence",
                "description": "Comparing threat patterns",
                "results": "Language matches common scam patterns: " + ", ".join(tactics),
            }
        )

    if not findings:
        findings.append("No additional risk indicators found during verification")

    refined = dict(prior)
    score = max(0, min(int(prior.get("riskScore") or 0) + bump, 100))
    refined["riskScore"] = score
    if score >= 60:
        refined["threatLevel"] = "HIGH"
    refined["researchFindings"] = list(prior.get("researchFindings") or []) + findings
    refined["researchLog"] = log
    refined["citations"] = []
    return refined


class MockTransport(Transport):
    name = "mock"
    model = "offline-heuristics"

    def post(self, prompt: str) -> TransportResponse:
        incident, end = "", 0
        found = read_embedded(prompt, INCIDENT_MARKER)
        if found is not None:
            value, end = found
            incident = value if isinstance(value, str) else ""

        # The prior result, when present, always follows the incident.
        prior = read_embedded(prompt, PRIOR_RESULT_MARKER, end)
        if prior is not None and isinstance(prior[0], dict):
            result = _refine_assessment(prior[0], incident)
        else:
            result = _heuristic_assessment(incident)

        return TransportResponse(status_code=200, body={"text": json.dumps(result, ensure_ascii=False)})


def build_transport(cfg: Settings | None = None) -> Transport:
    """
    Pick the transport for LLM_PROVIDER. Raises ConfigurationError when the
    provider is unknown or its credential is missing.
    """
    cfg = cfg or default_settings
    provider = (cfg.LLM_PROVIDER or "").strip().lower()

    if provider == "mock":
        return MockTransport()
    if provider == "gemini":
        return GeminiTransport(cfg)
    if provider == "anthropic":
        return AnthropicTransport(cfg)
    raise ConfigurationError(f"Unknown LLM_PROVIDER: {cfg.LLM_PROVIDER!r}")
