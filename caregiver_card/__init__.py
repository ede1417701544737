"""
Caregiver Card - Voice Medical History Notes

A FastAPI service that turns a dictated medical history into a stored,
shareable report: transcription, rule-based fact extraction, optional
translation and a QR share link.
"""

__version__ = "1.0.0"
