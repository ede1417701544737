"""
Cleanup for contact fields that were typed or dictated
"""

import re

from caregiver_card.models.requests import PatientContacts

_PHONE_DISALLOWED = re.compile(r"[^\d()+\-\s]")

# Spoken separators, applied in order to " <text> "
_SPOKEN_EMAIL_RULES = [
    (re.compile(r"\s+at\s+"), "@"),
    (re.compile(r"\s+dot\s+"), "."),
    (re.compile(r"\s+period\s+"), "."),
    (re.compile(r"\s+underscore\s+"), "_"),
    (re.compile(r"\s+(?:hyphen|dash)\s+"), "-"),
    (re.compile(r"\s+plus\s+"), "+"),
    (re.compile(r"\s+gmail\s*\.?\s*com\s*"), "@gmail.com "),
    (re.compile(r"\s+outlook\s*\.?\s*com\s*"), "@outlook.com "),
    (re.compile(r"\s+hotmail\s*\.?\s*com\s*"), "@hotmail.com "),
    (re.compile(r"\s+yahoo\s*\.?\s*com\s*"), "@yahoo.com "),
    (re.compile(r"\s*@\s*"), "@"),
    (re.compile(r"\s*\.\s*"), "."),
    (re.compile(r"\s+"), ""),
    (re.compile(r"\.\.+"), "."),
    (re.compile(r"@@+"), "@"),
]


def normalize_phone(value: str = "") -> str:
    """Drop everything except digits, parentheses, plus, hyphen and spaces."""
    return _PHONE_DISALLOWED.sub("", value or "").strip()


def normalize_email_spoken(raw: str = "") -> str:
    """Turn 'john dot doe at gmail dot com' into 'john.doe@gmail.com'.

    Already well-formed addresses pass through lowercased.
    """
    if not raw or not raw.strip():
        return ""
    text = " " + raw.lower().strip() + " "
    for pattern, replacement in _SPOKEN_EMAIL_RULES:
        text = pattern.sub(replacement, text)
    return text


def normalize_contacts(contacts: PatientContacts) -> PatientContacts:
    cleaned = {}
    for key, value in contacts.model_dump().items():
        value = (value or "").strip()
        if "phone" in key or "fax" in key:
            value = normalize_phone(value)
        elif "email" in key:
            value = normalize_email_spoken(value)
        cleaned[key] = value
    return PatientContacts(**cleaned)


def fill_blank_contacts(typed: PatientContacts, spoken: PatientContacts) -> PatientContacts:
    """Fill only the fields left blank on the form from contacts taken out of a voice note."""
    spoken = normalize_contacts(spoken).model_dump()
    merged = {key: value or spoken[key] for key, value in typed.model_dump().items()}
    return PatientContacts(**merged)
