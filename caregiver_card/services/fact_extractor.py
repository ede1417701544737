"""
Rule-based fact extraction from a dictated medical history.

Each fact type is an independent regex scan over the transcript. The
output is advisory and reviewed by a person, so patterns are strict and
prefer missing a fact over inventing one.
"""

import re
from typing import List, Optional

from caregiver_card.models.facts import (
    BloodPressure,
    ExtractedFacts,
    Medication,
    Vitals,
    Weight,
)

CONDITION_VOCABULARY = (
    "diabetes",
    "hypertension",
    "asthma",
    "kidney disease",
    "kidney condition",
    "heart failure",
    "heart disease",
    "copd",
    "stroke",
    "migraine",
    "cancer",
)

# Leading capital is case-sensitive, the unit is not.
MEDICATION_PATTERN = re.compile(r"\b([A-Z][A-Za-z-]{1,30})\s+(\d{1,4})\s?((?i:mcg|mg|ml|g))\b")

ALLERGY_PATTERN = re.compile(
    r"\b(?:allergic\s+to|allerg(?:y|ies)\s*(?::|\bto\b))[ \t]*([^.\n]*)",
    re.IGNORECASE,
)
ALLERGY_SEPARATOR = re.compile(r",|\s+and\s+", re.IGNORECASE)

CONDITION_PATTERN = re.compile(
    r"\b(" + "|".join(c.replace(" ", r"\s+") for c in CONDITION_VOCABULARY) + r")s?\b",
    re.IGNORECASE,
)

# No leading \b so readings glued to a label ("BP130/85") still match.
BLOOD_PRESSURE_PATTERN = re.compile(r"(?<!\d)(\d{2,3})\s*(?:over|/)\s*(\d{2,3})\b", re.IGNORECASE)

WEIGHT_PATTERN = re.compile(
    r"\b(\d+(?:\.\d+)?)\s*(kilograms|kg|lbs|lb|pounds)\b",
    re.IGNORECASE,
)


def extract_medications(text: str) -> List[Medication]:
    return [
        Medication(name=m.group(1), dose=m.group(2), unit=m.group(3))
        for m in MEDICATION_PATTERN.finditer(text)
    ]


def extract_allergies(text: str) -> List[str]:
    """Allergens from the first allergy statement only."""
    match = ALLERGY_PATTERN.search(text)
    if not match:
        return []
    parts = (p.strip() for p in ALLERGY_SEPARATOR.split(match.group(1)))
    return [p for p in parts if p]


def extract_conditions(text: str) -> List[str]:
    return [" ".join(m.group(1).lower().split()) for m in CONDITION_PATTERN.finditer(text)]


def extract_blood_pressure(text: str) -> Optional[BloodPressure]:
    match = BLOOD_PRESSURE_PATTERN.search(text)
    if not match:
        return None
    return BloodPressure(systolic=int(match.group(1), 10), diastolic=int(match.group(2), 10))


def extract_weight(text: str) -> Optional[Weight]:
    match = WEIGHT_PATTERN.search(text)
    if not match:
        return None
    return Weight(value=float(match.group(1)), unit=match.group(2).lower())


def extract(transcript: str) -> ExtractedFacts:
    """Scan a transcript for medications, allergies, conditions and vitals.

    Never raises. Lists keep the order in which mentions appear and are not
    deduplicated; only the first allergy statement, blood pressure and weight
    are used.
    """
    text = transcript or ""
    return ExtractedFacts(
        medications=extract_medications(text),
        allergies=extract_allergies(text),
        conditions=extract_conditions(text),
        vitals=Vitals(
            blood_pressure=extract_blood_pressure(text),
            weight=extract_weight(text),
        ),
    )
