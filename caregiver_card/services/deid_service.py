"""
Conservative PHI masking for transcript text.

Rules run in a fixed order, each on the output of the previous one.
Placeholders contain no digits, no ``@`` and no capitalized word, so no
rule ever re-matches an earlier replacement and masking is idempotent.
"""

import re
from typing import List, Tuple

EMAIL_PLACEHOLDER = "[email]"
PHONE_PLACEHOLDER = "[phone]"
NAME_PLACEHOLDER = "[name]"
ADDRESS_PLACEHOLDER = "[address]"

STREET_SUFFIXES = (
    "Street", "St", "Road", "Rd", "Avenue", "Ave", "Boulevard", "Blvd",
    "Drive", "Dr", "Court", "Ct", "Lane", "Ln",
)

# Order matters: e-mail before names, otherwise "Sales Team@acme.com"
# loses its local part to [name] and the domain leaks.
REDACTION_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE), EMAIL_PLACEHOLDER),
    (re.compile(r"\+?\d[\d\-\s().]{6,}\d"), PHONE_PLACEHOLDER),
    # Runs of two or more capitalized words, never starting inside a
    # hyphenated token (L-Thyroxine). Single letters (blood type "O") never qualify.
    (re.compile(r"(?<![\w-])[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b"), NAME_PLACEHOLDER),
    (
        re.compile(
            r"\b\d{1,5}\s+[A-Za-z0-9.\- ]+\s+(?:" + "|".join(STREET_SUFFIXES) + r")\b",
            re.IGNORECASE,
        ),
        ADDRESS_PLACEHOLDER,
    ),
]


def deidentify(text: str) -> str:
    """Mask e-mails, phone numbers, person names and street addresses.

    Dates, record numbers, blood types and single names are left alone.
    """
    if not text:
        return text
    for pattern, placeholder in REDACTION_RULES:
        text = pattern.sub(placeholder, text)
    return text
