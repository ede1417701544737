"""
Builds the plain-text status summary shown on reports
"""

import re
from typing import List

from caregiver_card.models.facts import ExtractedFacts, StatusSummary
from caregiver_card.models.requests import TypedStatus

_TYPED_LIST_SEPARATOR = re.compile(r"[,;]\s*")

NONE_MENTIONED = "None mentioned"
NO_VALUE = "—"


def split_typed_list(value: str) -> List[str]:
    return [item.strip() for item in _TYPED_LIST_SEPARATOR.split(value or "") if item.strip()]


def merge_typed_status(typed: TypedStatus, facts: ExtractedFacts) -> StatusSummary:
    """Typed form values win; extracted facts fill whatever was left blank."""
    vitals = facts.vitals
    return StatusSummary(
        medications=split_typed_list(typed.meds) if typed.meds.strip()
        else [m.display() for m in facts.medications],
        allergies=split_typed_list(typed.allergies) if typed.allergies.strip() else list(facts.allergies),
        conditions=split_typed_list(typed.conditions) if typed.conditions.strip() else list(facts.conditions),
        bp=typed.bp.strip() or (vitals.blood_pressure.display() if vitals.blood_pressure else ""),
        weight=typed.weight.strip() or (vitals.weight.display() if vitals.weight else ""),
    )


def summarize_facts(summary: StatusSummary) -> str:
    lines = [
        f"Medications: {'; '.join(summary.medications) or NONE_MENTIONED}",
        f"Allergies: {'; '.join(summary.allergies) or NONE_MENTIONED}",
        f"Conditions: {'; '.join(summary.conditions) or NONE_MENTIONED}",
        f"Blood Pressure: {summary.bp or NO_VALUE}",
        f"Weight: {summary.weight or NO_VALUE}",
    ]
    return "\n".join(lines)
