"""
Pydantic Models for API Requests
"""

from pydantic import BaseModel, Field


class PatientContacts(BaseModel):
    """Patient, emergency contact, doctor and pharmacy details"""
    name: str = Field(default="", description="Patient full name")
    email: str = Field(default="", description="Patient e-mail address")
    blood_type: str = Field(default="", description="Blood type, e.g. 'O negative'")
    emer_name: str = Field(default="", description="Emergency contact name")
    emer_phone: str = Field(default="", description="Emergency contact phone")
    emer_email: str = Field(default="", description="Emergency contact e-mail")
    doctor_name: str = ""
    doctor_address: str = ""
    doctor_phone: str = ""
    doctor_fax: str = ""
    doctor_email: str = ""
    pharmacy_name: str = ""
    pharmacy_address: str = ""
    pharmacy_phone: str = ""
    pharmacy_fax: str = ""

    def has_content(self) -> bool:
        return any(v.strip() for v in self.model_dump().values())


class TypedStatus(BaseModel):
    """Status values typed into the form; these win over extracted ones"""
    bp: str = ""
    weight: str = ""
    meds: str = ""
    allergies: str = ""
    conditions: str = ""
    general: str = Field(default="", description="Free journal text")

    def fact_text(self) -> str:
        """Typed fields joined for the fact extractor"""
        parts = [self.meds, self.allergies, self.conditions, self.bp, self.weight]
        return " ".join(p for p in parts if p)


class LanguageDetectionRequest(BaseModel):
    text: str = Field(default="", description="Text whose language should be detected")
