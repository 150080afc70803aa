import pytest

from reasoning.research_digest import (
    VERIFICATION_COMPLETED,
    VERIFICATION_FRAUD_ALERTS,
    VERIFICATION_LEGITIMATE,
    VERIFICATION_PARTIAL,
    extract_findings,
    summarize_research,
)


@pytest.mark.parametrize("log", [None, [], "not a list", [{}], [{"results": "   "}]])
def test_nothing_to_summarize(log):
    assert summarize_research(log) is None


def test_fraud_alerts_take_priority():
    log = [
        {
            "category": "business_verification",
            "description": "Checking business Acme",
            "results": "Official website https://acme.com is a registered business LLC.",
        },
        {
            "category": "threat_intelligence",
            "description": "Comparing threat patterns",
            "results": "Scam warning issued by the FTC for this number.",
        },
    ]
    digest = summarize_research(log)
    assert digest.status == VERIFICATION_FRAUD_ALERTS
    assert digest.details == ["Scam warning issued by the FTC for this number."]
    assert digest.recommended_actions[0].startswith("Do not respond")


def test_verified_legitimate():
    log = [
        {
            "category": "business_verification",
            "description": "Checking business Acme",
            "results": (
                "Official website https://acme.com lists contact information and client reviews. "
                "Acme Corporation is a registered business."
            ),
        }
    ]
    digest = summarize_research(log)
    assert digest.status == VERIFICATION_LEGITIMATE
    assert "Official website: https://acme.com" in digest.details
    assert digest.recommended_actions[1] == "Contact through official website: https://acme.com"
    assert digest.official_sources[0] == "Official website: https://acme.com"


def test_partially_verified():
    log = [{"description": "Checking business Acme", "results": "Acme has an official website."}]
    digest = summarize_research(log)
    assert digest.status == VERIFICATION_PARTIAL
    assert digest.details == ["Official website verified"]


def test_no_official_website_is_not_legitimacy():
    log = [{"description": "Checking business Acme", "results": "No official website match was found."}]
    f = extract_findings(log)
    assert f.legitimacy == []
    assert summarize_research(log).status == VERIFICATION_COMPLETED


def test_string_entries_and_no_alerts():
    digest = summarize_research(["No fraud alerts found for example.com"])
    assert digest.status == VERIFICATION_COMPLETED
    assert "No fraud alerts found" in digest.key_findings


def test_contact_flagged():
    log = [
        {
            "category": "contact_verification",
            "description": "Verifying domain bit.ly",
            "results": "bit.ly is a URL shortener. Flagged as suspicious.",
        }
    ]
    f = extract_findings(log)
    assert f.contacts == ["Contact methods flagged as suspicious"]
    assert summarize_research(log).status == VERIFICATION_FRAUD_ALERTS
