from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any

VERIFICATION_FRAUD_ALERTS = "FRAUD_ALERTS_FOUND"
VERIFICATION_LEGITIMATE = "VERIFIED_LEGITIMATE"
VERIFICATION_PARTIAL = "PARTIALLY_VERIFIED"
VERIFICATION_COMPLETED = "RESEARCH_COMPLETED"

BUSINESS = "business_verification"
CONTACT = "contact_verification"
THREAT = "threat_intelligence"
GENERAL = "general"

_WEBSITE_PATTERN = re.compile(r"https?://[^\s,]+")


@dataclass
class ResearchFindings:
    websites: list[str] = field(default_factory=list)
    contacts: list[str] = field(default_factory=list)
    legitimacy: list[str] = field(default_factory=list)
    registration: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    alerts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResearchDigest:
    status: str
    summary: str
    details: list[str]
    key_findings: list[str]
    recommended_actions: list[str]
    official_sources: list[str]


def _categorize(description: str) -> str:
    d = description.lower()
    if "business" in d or "checking" in d:
        return BUSINESS
    if "contact" in d or "verifying" in d:
        return CONTACT
    if "threat" in d or "pattern" in d:
        return THREAT
    return GENERAL


def _entries(research_log: Any) -> list[tuple[str, str]]:
    """(category, results) pairs from a researchLog; tolerant of loose shapes."""
    if not isinstance(research_log, list):
        return []
    out: list[tuple[str, str]] = []
    for item in research_log:
        if isinstance(item, dict):
            results = str(item.get("results") or item.get("content") or "")
            category = str(item.get("category") or "") or _categorize(str(item.get("description") or ""))
        elif isinstance(item, str):
            results, category = item, GENERAL
        else:
            continue
        if results.strip():
            out.append((category, results))
    return out


def extract_findings(research_log: Any) -> ResearchFindings:
    findings = ResearchFindings()

    for category, content in _entries(research_log):
        c = content.lower()

        if category == BUSINESS:
            findings.websites.extend(w.rstrip(".);") for w in _WEBSITE_PATTERN.findall(content)[:3])
            if "official website" in c or "legitimate business" in c:
                if "no official website" not in c:
                    findings.legitimacy.append("Official website verified")
            if "contact information" in c or "contact details" in c:
                findings.legitimacy.append("Contact information available")
            if "testimonials" in c or "client reviews" in c:
                findings.legitimacy.append("Customer testimonials present")
            if "registered business" in c or "llc" in c or "corporation" in c:
                findings.registration.append("Business registration indicators found")

        if category == CONTACT:
            if "legitimate domain" in c or "verified domain" in c:
                findings.contacts.append("Email domain appears legitimate")
            if "suspicious" in c or "flagged" in c:
                findings.contacts.append("Contact methods flagged as suspicious")

        if "no fraud alerts" in c or "no warnings" in c:
            findings.warnings.append("No fraud alerts found")
        elif "fraud alert" in c or "scam warning" in c or "flagged as suspicious" in c:
            findings.alerts.append(content.strip().splitlines()[0][:160])

    return findings


def summarize_research(research_log: Any) -> ResearchDigest | None:
    """
    Turn an advanced-stage researchLog into a verification snapshot.
    Returns None when there is nothing to summarize.
    """
    entries = _entries(research_log)
    if not entries:
        return None

    f = extract_findings(research_log)
    legitimacy_score = len(f.legitimacy) + len(f.registration) + len(f.websites)

    if f.alerts:
        status = VERIFICATION_FRAUD_ALERTS
        summary = "Specific fraud warnings found during verification"
        details = f.alerts[:3]
        actions = [
            "Do not respond - specific fraud warnings found",
            "Report to IT security and the relevant authorities",
            "Delete the communication",
        ]
    elif legitimacy_score >= 3:
        status = VERIFICATION_LEGITIMATE
        summary = "Business appears legitimate with verifiable online presence"
        details = f.legitimacy[:2] + [f"Official website: {w}" for w in f.websites[:1]] + f.registration[:1]
        actions = [
            "Business appears legitimate - proceed with normal verification",
            f"Contact through official website: {f.websites[0]}"
            if f.websites
            else "Contact through official channels listed in their communication",
            "Verify identity through an independent phone call before sharing sensitive info",
        ]
    elif legitimacy_score >= 1:
        status = VERIFICATION_PARTIAL
        summary = "Some legitimate business indicators found, additional verification recommended"
        details = f.legitimacy + [f"Website found: {w}" for w in f.websites[:1]]
        actions = [
            "Mixed verification results - exercise additional caution",
            "Verify through multiple independent sources",
            "Do not share sensitive information until fully verified",
        ]
    else:
        status = VERIFICATION_COMPLETED
        summary = "Unable to fully verify legitimacy from available sources"
        details = ["Research completed with limited verification data"]
        actions = [
            "Unable to fully verify - proceed with high caution",
            "Contact the organization through independently verified channels",
            "Consider this high-risk until verified",
        ]

    key_findings: list[str] = []
    if f.websites:
        key_findings.append(f"Official website found: {f.websites[0]}")
    for group in (f.legitimacy, f.alerts or f.warnings, f.contacts, f.registration):
        if group:
            key_findings.append(group[0])
    if not key_findings:
        key_findings.append("Research completed - see detailed findings for more information")

    sources = [f"Official website: {w}" for w in f.websites[:2]]
    sources += ["Better Business Bureau directory", "State business registration records"]

    return ResearchDigest(
        status=status,
        summary=summary,
        details=details,
        key_findings=key_findings[:4],
        recommended_actions=actions[:3],
        official_sources=sources[:4],
    )
