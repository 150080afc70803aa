"""
Boundary between free-form provider text and the canonical Assessment.

`normalize` is total: whatever the provider sends back, callers get a valid
Assessment. Parse problems are absorbed here and never surface as errors.
"""
from __future__ import annotations

import json
import logging
import math
from typing import Any

from pydantic import ValidationError

from models.assessment_schemas import Assessment, ThreatLevel
from reasoning.llm_client import RawProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_THREAT_LEVEL = ThreatLevel.MEDIUM
DEFAULT_RISK_SCORE = 50
DEFAULT_INCIDENT_TYPE = "Unclassified"
DEFAULT_IMMEDIATE_ACTION = "Review and assess"
DEFAULT_EXPLANATION = "Analysis completed"
DEFAULT_NEXT_STEPS = ["Follow security protocols"]

FALLBACK_THREAT_LEVEL = ThreatLevel.MEDIUM
FALLBACK_RISK_SCORE = 60
FALLBACK_INCIDENT_TYPE = "Social Engineering Analysis"
FALLBACK_RED_FLAGS = ["Analysis completed"]
FALLBACK_RESEARCH_FINDINGS = ["Unable to complete research due to parsing error"]
FALLBACK_NEXT_STEPS = [
    "Report to IT security team immediately",
    "Follow your organization's security procedures",
    "Do not interact with the suspicious content",
]

REQUIRED_FIELDS = (
    "threatLevel",
    "riskScore",
    "incidentType",
    "immediateAction",
    "redFlags",
    "researchFindings",
    "explanation",
    "nextSteps",
)

_THREAT_ALIASES = {
    "CRITICAL": ThreatLevel.HIGH,
    "SEVERE": ThreatLevel.HIGH,
    "MODERATE": ThreatLevel.MEDIUM,
    "SAFE": ThreatLevel.LOW,
    "NONE": ThreatLevel.LOW,
}


def _strip_code_fences(text: str) -> str:
    t = (text or "").strip()
    if not t.startswith("```"):
        return t

    # Remove surrounding fences.
    t = t.strip("`").strip()
    if t.lower().startswith("json"):
        t = t[4:].strip()
    return t


def _parse_json_object(text: str) -> dict[str, Any] | None:
    try:
        obj = json.loads(_strip_code_fences(text))
    except (ValueError, TypeError):
        return None
    if not isinstance(obj, dict):
        return None
    return obj


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        out: list[str] = []
        for v in value:
            s = str(v).strip() if v is not None else ""
            if s:
                out.append(s)
        return out
    s = str(value).strip()
    return [s] if s else []


def _as_text(value: Any, default: str) -> str:
    if not value:
        return default
    s = value.strip() if isinstance(value, str) else str(value).strip()
    return s or default


def _coerce_threat_level(value: Any) -> ThreatLevel:
    if not value:
        return DEFAULT_THREAT_LEVEL
    key = str(value).strip().upper()
    if not key:
        return DEFAULT_THREAT_LEVEL
    if key in ThreatLevel.__members__:
        return ThreatLevel[key]
    return _THREAT_ALIASES.get(key, ThreatLevel.UNKNOWN)


def _coerce_risk_score(value: Any) -> int:
    # Falsy scores (missing, 0, "") take the default like any other required field.
    if not value or isinstance(value, bool):
        return DEFAULT_RISK_SCORE
    if isinstance(value, int):
        return max(0, min(value, 100))
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            return DEFAULT_RISK_SCORE
    try:
        score = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_RISK_SCORE
    if math.isnan(score) or math.isinf(score):
        return DEFAULT_RISK_SCORE
    return int(max(0, min(round(score), 100)))


def apply_defaults(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Fill or repair every required field; copy everything else verbatim.
    """
    out = {k: v for k, v in payload.items() if k not in REQUIRED_FIELDS}

    out["threatLevel"] = _coerce_threat_level(payload.get("threatLevel"))
    out["riskScore"] = _coerce_risk_score(payload.get("riskScore"))
    out["incidentType"] = _as_text(payload.get("incidentType"), DEFAULT_INCIDENT_TYPE)
    out["immediateAction"] = _as_text(payload.get("immediateAction"), DEFAULT_IMMEDIATE_ACTION)
    out["redFlags"] = _as_str_list(payload.get("redFlags"))
    out["researchFindings"] = _as_str_list(payload.get("researchFindings"))
    out["explanation"] = _as_text(payload.get("explanation"), DEFAULT_EXPLANATION)
    out["nextSteps"] = _as_str_list(payload.get("nextSteps")) or list(DEFAULT_NEXT_STEPS)
    return out


def fallback_assessment(raw_text: str = "", **extra: Any) -> Assessment:
    """
    Assessment used when the provider text is not a JSON object. The raw
    text is kept as the explanation so nothing the model said is lost.
    """
    return Assessment(
        threatLevel=FALLBACK_THREAT_LEVEL,
        riskScore=FALLBACK_RISK_SCORE,
        incidentType=FALLBACK_INCIDENT_TYPE,
        immediateAction=DEFAULT_IMMEDIATE_ACTION,
        redFlags=list(FALLBACK_RED_FLAGS),
        researchFindings=list(FALLBACK_RESEARCH_FINDINGS),
        explanation=raw_text if raw_text and raw_text.strip() else DEFAULT_EXPLANATION,
        nextSteps=list(FALLBACK_NEXT_STEPS),
        degraded=True,
        **extra,
    )


def normalize(raw: RawProviderResponse | str | None) -> Assessment:
    text = raw.text if isinstance(raw, RawProviderResponse) else (raw or "")
    if not isinstance(text, str):
        text = str(text)

    payload = _parse_json_object(text)
    if payload is None:
        logger.info("Provider text is not a JSON object (%s chars); using fallback assessment", len(text))
        return fallback_assessment(text)

    try:
        return Assessment.model_validate(apply_defaults(payload))
    except ValidationError as e:
        logger.warning("Provider JSON could not be repaired: %s", e)
        return fallback_assessment(text)
