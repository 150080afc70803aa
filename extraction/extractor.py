import re

# ==================================================
# Regex patterns for concrete incident entities
# ==================================================
URL_PATTERN = r"https?://[^\s<>\"]+|www\.[^\s<>\"]+"
EMAIL_PATTERN = r"[\w\.-]+@[\w\.-]+\.\w+"
DOMAIN_PATTERN = r"\b(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,24}\b"
# Looser phone capture; we normalize and validate later.
PHONE_PATTERN = r"(?:\+?\d[\d\s().-]{7,}\d)"
AMOUNT_PATTERN = r"[$£€₹]\s?\d[\d,]*(?:\.\d+)?"

# File-like suffixes the domain pattern would otherwise pick up.
_NOT_DOMAINS = (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".zip", ".exe", ".png", ".jpg", ".txt")

# ==================================================
# Organizations commonly impersonated
# ==================================================
KNOWN_ORGANIZATIONS = {
    "paypal": "PayPal",
    "amazon": "Amazon",
    "apple": "Apple",
    "microsoft": "Microsoft",
    "google": "Google",
    "netflix": "Netflix",
    "temu": "Temu",
    "walmart": "Walmart",
    "bank of america": "Bank of America",
    "chase": "Chase",
    "wells fargo": "Wells Fargo",
    "citibank": "Citibank",
    "coinbase": "Coinbase",
    "irs": "IRS",
    "fedex": "FedEx",
    "usps": "USPS",
    "dhl": "DHL",
}

# ==================================================
# Scam tactic keywords (deterministic signals)
# ==================================================
TACTIC_KEYWORDS = {
    "urgency": [
        "urgent",
        "immediately",
        "right away",
        "asap",
        "act now",
        "within",
        "today",
        "limited time",
    ],
    "threat": [
        "suspended",
        "blocked",
        "locked",
        "closed",
        "legal action",
        "arrest",
        "deactivated",
    ],
    "verification": [
        "verify",
        "verification",
        "confirm",
        "authenticate",
        "update your",
        "login",
        "password",
    ],
    "payment": [
        "pay",
        "payment",
        "transfer",
        "wire",
        "gift card",
        "bitcoin",
        "crypto",
    ],
    "reward": [
        "prize", "refund", "lottery", "won", "job offer", "same-day payout"
    ],
    "off_platform": [
        "whatsapp", "telegram", "signal", "text me"
    ],
}


def _clean_url(url: str) -> str:
    # Strip common trailing punctuation from URLs found in free-form text.
    return url.rstrip(").,;!?\"'")


def _normalize_phone(candidate: str) -> str | None:
    digits = re.sub(r"\D", "", candidate or "")
    if not digits:
        return None

    # North American 10-digit numbers.
    if len(digits) == 10 and digits[0] in "23456789":
        return "+1" + digits
    if len(digits) == 11 and digits.startswith("1"):
        return "+" + digits

    # Generic E.164-ish: accept 11-15 digits.
    if 11 <= len(digits) <= 15:
        return "+" + digits

    return None


def _dedupe_preserve_order(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for x in items:
        if x in seen:
            continue
        seen.add(x)
        out.append(x)
    return out


# ==================================================
# Core Entity Extraction Engine
# ==================================================
def extract_entities(text: str) -> dict:
    """
    Extracts concrete, checkable entities from raw incident text.

    Returns:
    {
        "urls": [...],
        "domains": [...],
        "emailAddresses": [...],
        "phoneNumbers": [...],
        "amounts": [...],
        "organizations": [...],
        "tactics": [...],
        "suspiciousKeywords": [...]
    }
    """
    text = text or ""
    text_lower = text.lower()

    urls = _dedupe_preserve_order([_clean_url(u) for u in re.findall(URL_PATTERN, text)])
    emails = _dedupe_preserve_order(re.findall(EMAIL_PATTERN, text))

    # Domains: from URLs and emails first, then bare mentions.
    domains: list[str] = []
    for u in urls:
        host = re.sub(r"^https?://", "", u, flags=re.I).split("/")[0].split(":")[0]
        domains.append(host.lower())
    for e in emails:
        domains.append(e.split("@", 1)[1].lower())
    for d in re.findall(DOMAIN_PATTERN, text, flags=re.I):
        dl = d.lower()
        if dl.endswith(_NOT_DOMAINS) or re.fullmatch(r"[\d.]+", dl):
            continue
        # Dotted email local parts ("john.doe@...") look like domains too.
        if any(e.lower().startswith(dl + "@") for e in emails):
            continue
        domains.append(dl)
    domains = [re.sub(r"^www\.", "", d) for d in domains]

    phone_numbers = []
    for c in re.findall(PHONE_PATTERN, text):
        n = _normalize_phone(c)
        if n:
            phone_numbers.append(n)

    amounts = re.findall(AMOUNT_PATTERN, text)

    organizations = [
        name for key, name in KNOWN_ORGANIZATIONS.items() if re.search(rf"\b{re.escape(key)}\b", text_lower)
    ]

    # Detect scam tactics + the specific keywords/phrases that triggered them
    tactics = []
    suspicious_keywords = []
    for tactic, keywords in TACTIC_KEYWORDS.items():
        matched = [kw for kw in keywords if kw in text_lower]
        if matched:
            tactics.append(tactic)
            suspicious_keywords.extend(matched)

    return {
        "urls": urls,
        "domains": _dedupe_preserve_order(domains),
        "emailAddresses": emails,
        "phoneNumbers": _dedupe_preserve_order(phone_numbers),
        "amounts": _dedupe_preserve_order(amounts),
        "organizations": organizations,
        "tactics": tactics,
        "suspiciousKeywords": _dedupe_preserve_order(suspicious_keywords),
    }
