"""
Pydantic models for facts extracted from a transcript
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Medication(BaseModel):
    """Medication mention with its dose as written"""
    name: str = Field(description="Medication name as spoken, e.g. 'Amlodipine'")
    dose: str = Field(description="Numeric dose kept as text, e.g. '10'")
    unit: str = Field(description="Dose unit as written: mg, mcg, g or ml")
    frequency: Optional[str] = Field(default=None, description="Reserved, not extracted yet")
    notes: Optional[str] = Field(default=None, description="Reserved, not extracted yet")

    def display(self) -> str:
        return f"{self.name} — {self.dose} {self.unit}"


class BloodPressure(BaseModel):
    systolic: int
    diastolic: int

    def display(self) -> str:
        return f"{self.systolic}/{self.diastolic}"


class Weight(BaseModel):
    value: float
    unit: str

    def display(self) -> str:
        value = int(self.value) if self.value.is_integer() else self.value
        return f"{value} {self.unit}"


class Vitals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blood_pressure: Optional[BloodPressure] = Field(default=None, alias="bloodPressure")
    weight: Optional[Weight] = Field(default=None)


class ExtractedFacts(BaseModel):
    """Structured facts pulled from one transcript, in scan order"""
    medications: List[Medication] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    vitals: Vitals = Field(default_factory=Vitals)


class StatusSummary(BaseModel):
    """Display-ready status, after typed values are merged over extracted facts"""
    medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    bp: str = ""
    weight: str = ""

    def is_empty(self) -> bool:
        return not (self.medications or self.allergies or self.conditions or self.bp or self.weight)
