"""
Instant, offline highlighting of risky phrases in an incident.

Advisory only: the spans produced here are for visual feedback while the
user types and never influence threatLevel or riskScore.
"""
import html
import re
from typing import Callable, Iterable

from models.assessment_schemas import RiskSpan, RiskTier

# ==================================================
# Tier 1 - high risk: concrete contact / payment artifacts
# ==================================================
URL_PATTERN = r"https?://[^\s<>\"']+|www\.[^\s<>\"']+"
DOMAIN_PATTERN = (
    r"\b(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+"
    r"(?:com|net|org|info|biz|xyz|top|io|co|ly|gl|me|us|uk|in|ru|cn|tk|ml|ga|cf|gq"
    r"|online|site|club|app|shop|store|live|link|click|support)\b"
)
PHONE_PATTERN = r"(?:\+?\d[\d\s().-]{7,}\d)"
CURRENCY_PATTERN = (
    r"[$£€₹]\s?\d[\d,]*(?:\.\d+)?(?:\s?(?:k|m|million|thousand)\b)?"
    r"|\b\d[\d,]*(?:\.\d+)?\s?(?:usd|dollars|euros?|pounds|rupees|inr)\b"
)
CRYPTO_PATTERN = (
    r"\b(?:bitcoin|btc|ethereum|eth|usdt|tether|litecoin|dogecoin"
    r"|crypto(?:currency|currencies)?|crypto wallet|wallet address)\b"
)

# ==================================================
# Tier 2 - medium risk: pressure and requested actions
# ==================================================
URGENCY_PATTERN = (
    r"\b(?:urgent(?:ly)?|immediately|asap|right away|act now|final notice|last chance"
    r"|limited time|expires? (?:today|soon)|deadline"
    r"|within \d+ (?:minutes?|hours?|days?)|\d+ (?:minutes?|hours?)"
    r"|suspend(?:ed)?|locked|blocked|deactivated)\b"
)
VERIFY_PATTERN = (
    r"\b(?:verify|verification|confirm(?:ation)?|authenticate|validate"
    r"|update your (?:account|information|details|payment)|log ?in|sign ?in)\b"
)
CALL_TO_ACTION_PATTERN = r"\b(?:click(?: here)?|download|install|open the attachment|tap the link)\b"

# ==================================================
# Tier 3 - suspicious context
# ==================================================
ALT_CHANNEL_PATTERN = r"\b(?:whatsapp|telegram|signal app|wechat|viber|kik|text me)\b"
TOO_GOOD_PATTERN = (
    r"\b(?:job offer|work from home|part[- ]time|remote job|same[- ]day pay(?:out)?s?"
    r"|lottery|jackpot|prize|winner|you(?:'ve| have)? won|inheritance|free gift"
    r"|guaranteed (?:income|returns?|profit))\b"
)

# ==================================================
# Tier 4 - named entities (brands, banks, agencies)
# ==================================================
BRAND_PATTERN = (
    r"\b(?:paypal|amazon|apple|microsoft|google|netflix|facebook|instagram|temu|walmart|ebay"
    r"|bank of america|chase|wells fargo|citibank|hsbc|barclays|capital one"
    r"|visa|mastercard|american express|venmo|zelle|cash app|coinbase|binance"
    r"|irs|fedex|ups|dhl|usps)\b"
)

# Fixed application order. Earlier tiers claim text first.
TIER_PATTERNS: list[tuple[RiskTier, list[re.Pattern]]] = [
    (
        RiskTier.HIGH,
        [re.compile(p, flags=re.I) for p in (URL_PATTERN, DOMAIN_PATTERN, PHONE_PATTERN, CURRENCY_PATTERN, CRYPTO_PATTERN)],
    ),
    (
        RiskTier.MEDIUM,
        [re.compile(p, flags=re.I) for p in (URGENCY_PATTERN, VERIFY_PATTERN, CALL_TO_ACTION_PATTERN)],
    ),
    (
        RiskTier.CONTEXT,
        [re.compile(p, flags=re.I) for p in (ALT_CHANNEL_PATTERN, TOO_GOOD_PATTERN)],
    ),
    (
        RiskTier.LOW,
        [re.compile(BRAND_PATTERN, flags=re.I)],
    ),
]

_TRAILING_PUNCTUATION = ").,;:!?\"'"


def _trim(text: str, start: int, end: int) -> tuple[int, int]:
    # Free-form text often glues punctuation onto links and numbers.
    while end > start and (text[end - 1] in _TRAILING_PUNCTUATION or text[end - 1].isspace()):
        end -= 1
    return start, end


def _overlaps(start: int, end: int, claimed: Iterable[tuple[int, int]]) -> bool:
    return any(start < c_end and c_start < end for c_start, c_end in claimed)


def classify(text: str) -> list[RiskSpan]:
    """
    Collect risk spans over `text` in a single pass per tier.

    Offsets always refer to the original string. A candidate that overlaps
    a span claimed by an earlier tier (or an earlier/longer match of the same
    tier) is dropped, so nothing is annotated twice.
    """
    if not text:
        return []

    claimed: list[tuple[int, int]] = []
    spans: list[RiskSpan] = []

    for tier, patterns in TIER_PATTERNS:
        candidates: list[tuple[int, int]] = []
        for pattern in patterns:
            for m in pattern.finditer(text):
                start, end = _trim(text, m.start(), m.end())
                if end > start:
                    candidates.append((start, end))

        # Leftmost first, longest first on ties.
        candidates.sort(key=lambda c: (c[0], c[0] - c[1]))
        for start, end in candidates:
            if _overlaps(start, end, claimed):
                continue
            claimed.append((start, end))
            spans.append(RiskSpan(start=start, end=end, tier=tier))

    spans.sort(key=lambda s: s.start)
    return spans


def render(
    text: str,
    spans: list[RiskSpan],
    wrap: Callable[[str, RiskTier], str],
    escape: Callable[[str], str] = lambda s: s,
) -> str:
    out: list[str] = []
    pos = 0
    for span in spans:
        out.append(escape(text[pos : span.start]))
        out.append(wrap(escape(text[span.start : span.end]), span.tier))
        pos = span.end
    out.append(escape(text[pos:]))
    return "".join(out)


def _html_mark(fragment: str, tier: RiskTier) -> str:
    return f'<mark class="risk-{tier.value}">{fragment}</mark>'


def _html_escape(fragment: str) -> str:
    return html.escape(fragment, quote=False)


def highlight(text: str) -> str:
    """
    Markup-safe rendering of `text` with every risk span wrapped in
    <mark class="risk-{tier}">. Characters outside marks are only
    HTML-escaped, never dropped or reordered.
    """
    return render(text, classify(text), _html_mark, _html_escape)


def highlight_plain(text: str, spans: list[RiskSpan] | None = None) -> str:
    """Terminal-friendly variant: [HIGH: ...] style brackets, no escaping."""
    if spans is None:
        spans = classify(text)
    return render(text, spans, lambda frag, tier: f"[{tier.value.upper()}: {frag}]")
