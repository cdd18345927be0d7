"""
Best-effort PII scrubbing for user-authored text.

``anonymize`` replaces contact details, identifiers and explicit name
disclosures with bracketed placeholders. ``redact`` is the stricter variant
used before anything is persisted: it additionally blanks long digit runs.
Both are idempotent.
"""

import re
from dataclasses import dataclass, field

EMAIL_PATTERN = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
# Never starts inside a longer number or an ISO date
PHONE_PATTERN = re.compile(
    r"\b(?<![\d.-])(?!\d{4}-\d{2}-\d{2}\b)(?:\+?\d[\d\s().-]{7,}\d)\b"
)
URL_PATTERN = re.compile(r"\bhttps?://[^\s)]+", re.IGNORECASE)
HANDLE_PATTERN = re.compile(r"(^|\s)@([a-zA-Z0-9_]{2,30})\b", re.MULTILINE)
IPV4_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
UUID_PATTERN = re.compile(
    r"\b[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\b",
    re.IGNORECASE,
)
SECRET_PATTERN = re.compile(r"\bsk-[a-zA-Z0-9]{20,}\b")
SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
CARD_LIKE_PATTERN = re.compile(r"\b(?:\d[ -]*?){13,19}\b")

# Only explicit disclosures; capitalized words in general are left alone so
# tool and product names survive.
SELF_NAME_PATTERN = re.compile(
    r"\b((?i:my name is|call me|i am|i['’]m))\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2})\b"
)
NAME_FIELD_PATTERN = re.compile(
    r"\b(?i:name)\s*[:=-]\s*([A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2})\b"
)
GREETING_NAME_PATTERN = re.compile(
    r"(^|\s)((?i:hi|hello|hey|dear))\s+([A-Z][a-z]+)\b", re.MULTILINE
)
SIGNOFF_NAME_PATTERN = re.compile(
    r"(^|\n)(\s*(?i:thanks|thank you|regards|best|sincerely|cheers)[,\s]*\n\s*)"
    r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b",
    re.MULTILINE,
)

LONG_DIGITS_PATTERN = re.compile(r"\d{4,}")

PLACEHOLDER_TOKENS = frozenset(
    {"email", "phone", "url", "handle", "secret", "id", "ip", "ssn", "card", "name", "num"}
)
PLACEHOLDER_PATTERN = re.compile(r"\[(?:" + "|".join(sorted(PLACEHOLDER_TOKENS)) + r")\]")


@dataclass
class AnonymizeResult:
    """Sanitized text plus how many replacements of each kind were made."""

    sanitized: str
    counts: dict[str, int] = field(default_factory=dict)


def _compress_whitespace(text: str) -> str:
    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"[ \t]+([.,!?;:])", r"\1", text)
    text = re.sub(r"[ \t]*\n[ \t]*", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def anonymize(text: str, redact_names: bool = True) -> AnonymizeResult:
    """
    Replace personally identifying fragments of ``text`` with placeholders.

    Args:
        text: Raw user-authored text
        redact_names: Also replace explicit name disclosures

    Returns:
        AnonymizeResult with the sanitized text and per-kind replacement counts
    """
    counts = {
        "emails": 0,
        "phones": 0,
        "urls": 0,
        "handles": 0,
        "ips": 0,
        "ids": 0,
        "secrets": 0,
        "ssns": 0,
        "cards": 0,
        "names": 0,
    }

    def substitute(pattern: re.Pattern, kind: str, replacement, value: str) -> str:
        def _replace(match: re.Match) -> str:
            counts[kind] += 1
            return replacement(match) if callable(replacement) else replacement

        return pattern.sub(_replace, value)

    sanitized = substitute(EMAIL_PATTERN, "emails", "[email]", text)
    sanitized = substitute(URL_PATTERN, "urls", "[url]", sanitized)
    sanitized = substitute(
        HANDLE_PATTERN, "handles", lambda m: f"{m.group(1)}[handle]", sanitized
    )
    sanitized = substitute(SECRET_PATTERN, "secrets", "[secret]", sanitized)
    sanitized = substitute(UUID_PATTERN, "ids", "[id]", sanitized)
    sanitized = substitute(IPV4_PATTERN, "ips", "[ip]", sanitized)
    sanitized = substitute(SSN_PATTERN, "ssns", "[ssn]", sanitized)
    sanitized = substitute(CARD_LIKE_PATTERN, "cards", "[card]", sanitized)
    # Must follow the other numeric patterns
    sanitized = substitute(PHONE_PATTERN, "phones", "[phone]", sanitized)

    if redact_names:
        sanitized = substitute(
            SELF_NAME_PATTERN, "names", lambda m: f"{m.group(1)} [name]", sanitized
        )
        sanitized = substitute(NAME_FIELD_PATTERN, "names", "name: [name]", sanitized)
        sanitized = substitute(
            GREETING_NAME_PATTERN,
            "names",
            lambda m: f"{m.group(1)}{m.group(2)} [name]",
            sanitized,
        )
        sanitized = substitute(
            SIGNOFF_NAME_PATTERN,
            "names",
            lambda m: f"{m.group(1)}{m.group(2)}[name]",
            sanitized,
        )

    return AnonymizeResult(sanitized=_compress_whitespace(sanitized), counts=counts)


def is_placeholder_only(text: str) -> bool:
    """True if nothing but placeholders, punctuation and whitespace remains."""
    return re.search(r"\w", PLACEHOLDER_PATTERN.sub("", text)) is None


def redact(text: str) -> str:
    """Anonymize ``text`` and blank any remaining run of four or more digits."""
    sanitized = anonymize(text).sanitized
    return LONG_DIGITS_PATTERN.sub("[num]", sanitized)
