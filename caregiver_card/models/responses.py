"""
Pydantic Models für API Responses
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field

from caregiver_card.models.facts import ExtractedFacts, StatusSummary


class ReportCreatedResponse(BaseModel):
    """Antwort nach dem Speichern eines Reports"""
    ok: bool = Field(default=True)
    id: str = Field(description="Report-ID")
    url: str = Field(description="Teilbarer Link zum Report")


class ReportDetailResponse(BaseModel):
    """JSON-Ansicht eines gespeicherten Reports"""
    id: str
    created_at: str
    detected_lang: Optional[str] = None
    target_lang: Optional[str] = None
    transcript: str = Field(description="Transkript (bei redact=true maskiert)")
    translated_transcript: Optional[str] = None
    facts: ExtractedFacts = Field(description="Automatisch extrahierte Fakten")
    status: StatusSummary = Field(description="Zusammengeführter Status")
    summary_text: str
    translated_summary: Optional[str] = None
    share_url: str


class LanguageDetectionResponse(BaseModel):
    ok: bool
    code: Optional[str] = None
    name: Optional[str] = None
    error: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service Status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Check-Zeitpunkt")
    version: str = Field(description="Service-Version")
    uptime_seconds: int = Field(description="Uptime in Sekunden")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Detaillierte Gesundheitsinformationen")


class ErrorResponse(BaseModel):
    """Standardisierte Fehlerantwort"""
    error: str = Field(description="Fehlertyp")
    message: str = Field(description="Fehlerbeschreibung")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Zusätzliche Fehlerdetails")
    request_id: Optional[str] = Field(default=None, description="Request-ID für Debugging")
    timestamp: datetime = Field(description="Fehlerzeitpunkt")


class RateLimitResponse(BaseModel):
    """Rate Limit Exceeded Response"""
    error: str = Field(default="rate_limit_exceeded")
    message: str = Field(description="Rate Limit Fehlermeldung")
    limit: int = Field(description="Request-Limit")
    window: int = Field(description="Zeitfenster in Sekunden")
    timestamp: datetime = Field(description="Fehlerzeitpunkt")
