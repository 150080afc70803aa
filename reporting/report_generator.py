"""
Plain-text, shareable report for a finished assessment.

Everything here is a pure function of its arguments: pass a fixed timestamp
and report id and the output is byte-for-byte reproducible.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import re
from typing import Any, Optional

from config.settings import settings
from models.assessment_schemas import AnalysisStage, Assessment
from reasoning.research_digest import summarize_research

LEVEL_LABELS = {
    AnalysisStage.BASIC: "Basic / Educational",
    AnalysisStage.ADVANCED: "Advanced / Investigation",
}

DISCLAIMER = (
    "This report highlights warning signs and ways to verify through official channels. "
    "Avoid clicking links in unexpected messages."
)


@dataclass(frozen=True)
class ReportMeta:
    timestamp: datetime
    incident_id: str
    stage: AnalysisStage = AnalysisStage.BASIC
    incident: Optional[str] = None


def make_report_id(now: datetime | None = None, prefix: str | None = None) -> str:
    """Prefix plus the last 8 digits of the epoch-millisecond timestamp."""
    now = now or datetime.now(timezone.utc)
    millis = str(int(now.timestamp() * 1000))
    return f"{prefix or settings.REPORT_ID_PREFIX}-{millis[-8:]}"


def _bullets(items: list[str]) -> str:
    return "\n".join(f"• {x}" for x in items)


def _label(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", key).capitalize()


def _section(title: str, body: str) -> str:
    return f"{title}\n{body}"


def _entities_section(entities: Any) -> str | None:
    if not isinstance(entities, dict):
        return None
    lines = []
    for key, value in entities.items():
        if isinstance(value, list):
            items = [str(v) for v in value if str(v).strip()]
            if items:
                lines.append(f"{_label(key)}: {', '.join(items)}")
        elif value not in (None, "", {}):
            lines.append(f"{_label(key)}: {value}")
    return "\n".join(lines) or None


def _weights_section(weights: Any) -> str | None:
    if not isinstance(weights, dict) or not weights:
        return None
    return "\n".join(f"{_label(str(k))}: {v}" for k, v in weights.items())


def _citation_text(citation: Any) -> str:
    if isinstance(citation, dict):
        title = citation.get("title") or citation.get("source") or ""
        url = citation.get("url") or ""
        return " - ".join(x for x in (str(title), str(url)) if x) or str(citation)
    return str(citation)


def _confidence_text(confidence: Any) -> str:
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) and 0 <= confidence <= 1:
        return f"{round(confidence * 100)}%"
    return str(confidence)


def generate_report(assessment: Assessment, meta: ReportMeta, basic: Assessment | None = None) -> str:
    extra = assessment.extended_fields
    sections: list[str] = [
        "SCAM ASSESSMENT REPORT\n"
        f"Report level: {LEVEL_LABELS[meta.stage]}\n"
        f"Generated: {meta.timestamp.isoformat(timespec='seconds')}\n"
        f"Report ID: {meta.incident_id}"
    ]

    if meta.incident and meta.incident.strip():
        sections.append(_section("YOUR DESCRIPTION", meta.incident.strip()))

    sections.append(
        f"THREAT LEVEL: {assessment.threatLevel.value}\n"
        f"RISK SCORE: {assessment.riskScore}/100\n"
        f"INCIDENT TYPE: {assessment.incidentType}"
    )

    if assessment.is_degraded:
        sections.append(
            _section(
                "NOTE",
                "The analysis service returned an unstructured answer. The rating below is a "
                "cautious default, not a model-assigned score.",
            )
        )

    sections.append(_section("IMMEDIATE ACTION", assessment.immediateAction))

    if assessment.redFlags:
        sections.append(_section("RED FLAGS", _bullets(assessment.redFlags)))
    if assessment.researchFindings:
        sections.append(_section("RESEARCH FINDINGS", _bullets(assessment.researchFindings)))

    sections.append(_section("EXPLANATION", assessment.explanation))

    if assessment.nextSteps:
        sections.append(_section("NEXT STEPS", _bullets(assessment.nextSteps)))

    entities = _entities_section(extra.get("entityExtraction"))
    if entities:
        sections.append(_section("ENTITIES DETECTED", entities))

    weights = _weights_section(extra.get("signalWeights"))
    if weights:
        sections.append(_section("SIGNAL WEIGHTS", weights))

    if extra.get("confidence") is not None:
        sections.append(f"CONFIDENCE: {_confidence_text(extra['confidence'])}")

    citations = extra.get("citations")
    if isinstance(citations, list) and citations:
        sections.append(_section("CITATIONS", _bullets([_citation_text(c) for c in citations])))

    digest = summarize_research(extra.get("researchLog"))
    if digest is not None:
        sections.append(
            _section(
                "VERIFICATION SNAPSHOT",
                f"Status: {digest.status}\n{digest.summary}\n{_bullets(digest.details)}",
            )
        )
        sections.append(_section("KEY TAKEAWAYS", _bullets(digest.key_findings)))
        sections.append(_section("RECOMMENDED ACTIONS", _bullets(digest.recommended_actions)))
        sections.append(_section("SOURCES TO REVIEW", _bullets(digest.official_sources)))

    if meta.stage == AnalysisStage.ADVANCED and basic is not None:
        sections.append(
            _section(
                "INITIAL ASSESSMENT",
                f"Threat level: {basic.threatLevel.value} | Risk score: {basic.riskScore}/100 | "
                f"Type: {basic.incidentType}",
            )
        )

    sections.append(_section("DISCLAIMER", DISCLAIMER))
    sections.append("— End of Report —")
    return "\n\n".join(sections) + "\n"
