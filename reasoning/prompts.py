"""
Instruction text sent to the Analysis Provider.

The incident is embedded as a JSON string literal, and the advanced stage
also embeds the basic result as a JSON object after it. JSON encoding keeps
incident text from closing its own block or forging the prior-result block,
so the offline provider can recover both exactly with `read_embedded`.
"""
from __future__ import annotations

import json
from typing import Any

from models.assessment_schemas import AnalysisRequest, AnalysisStage

INCIDENT_MARKER = "Incident:"
PRIOR_RESULT_MARKER = "Basic analysis results:"

BASE = (
    "You are an expert cybersecurity analyst. Analyze this potential security incident "
    "with careful consideration of both legitimate and malicious patterns."
)

BALANCED = (
    "Important: Many communications that seem unusual are actually legitimate. Only flag as "
    "suspicious if you find clear evidence of malicious intent or patterns matching known threats."
)

RESEARCH = """THREAT INTELLIGENCE RESEARCH REQUIRED: Before answering, research the following:
1. Verify any domains mentioned - are they legitimate business domains or present in recent threat reports?
2. Research any phone numbers - look for scam reports or legitimate business associations.
3. Search for similar phishing/scam campaigns matching the language, urgency tactics or social engineering used.
4. Check for current threat campaigns targeting the mentioned organization or industry."""

EVIDENCE = (
    "Base your assessment on EVIDENCE, not assumptions. For any suspicious rating, cite specific "
    "findings. If research shows the sender/domain/pattern is legitimate, rate accordingly even if "
    "the message seems unusual."
)

REFINE = (
    "A first-pass analysis of this incident is provided below. Do NOT redo entity extraction: "
    "build on the existing results, confirm or revise the rating, and add research findings. "
    "Record each research step in researchLog as objects with category, description and results."
)

JSON_ONLY = (
    "IMPORTANT: You MUST respond with ONLY a valid JSON object. Do not include any explanatory "
    "text before or after the JSON. Your entire response should be parseable JSON."
)

STRUCTURE = """{
  "threatLevel": "LOW" | "MEDIUM" | "HIGH",
  "incidentType": "string describing the type of threat or 'Legitimate Communication'",
  "riskScore": number between 0-100,
  "immediateAction": "string with immediate action needed",
  "redFlags": ["warning signs detected"],
  "researchFindings": ["key research discoveries"],
  "explanation": "detailed explanation including evidence",
  "nextSteps": ["Report to IT security if suspicious", "other specific actions"],
  "entityExtraction": {"domains": [], "phoneNumbers": [], "emailAddresses": [], "organizations": []},
  "confidence": number between 0.0-1.0
}"""

SAFETY = (
    "CRITICAL: For ANY suspicious activity, the FIRST recommendation must ALWAYS be to report "
    "to IT security/company security team immediately."
)


def _embed(marker: str, value: Any) -> str:
    return f"{marker}\n{json.dumps(value, ensure_ascii=False)}"


def read_embedded(prompt: str, marker: str, start: int = 0) -> tuple[Any, int] | None:
    """
    Decode the JSON value written by `_embed` for `marker`, searching from
    `start`. Returns (value, end offset) or None when the block is absent.
    Encoded values never contain a raw newline, so a marker line cannot be
    forged from inside an embedded string.
    """
    header = f"\n{marker}\n"
    idx = prompt.find(header, start)
    if idx < 0:
        return None
    try:
        return json.JSONDecoder().raw_decode(prompt, idx + len(header))
    except ValueError:
        return None


def build_prompt(request: AnalysisRequest) -> str:
    sections = [BASE, BALANCED]

    if request.stage == AnalysisStage.ADVANCED:
        sections += [RESEARCH, EVIDENCE, REFINE]
    else:
        sections.append(EVIDENCE)

    sections += [JSON_ONLY, f"Respond with this structure:\n{STRUCTURE}", SAFETY]
    sections.append(_embed(INCIDENT_MARKER, request.incident))

    if request.stage == AnalysisStage.ADVANCED and request.priorResult is not None:
        sections.append(_embed(PRIOR_RESULT_MARKER, request.priorResult.to_wire()))

    return "\n\n".join(sections)
