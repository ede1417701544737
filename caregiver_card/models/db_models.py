"""
SQLAlchemy table for stored reports
"""

from sqlalchemy import JSON, Column, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True)
    created_at = Column(String(40), nullable=False, index=True)

    # Patient
    name = Column(Text, default="")
    email = Column(Text, default="")
    blood_type = Column(Text, default="")
    emer_name = Column(Text, default="")
    emer_phone = Column(Text, default="")
    emer_email = Column(Text, default="")

    # Doctor
    doctor_name = Column(Text, default="")
    doctor_address = Column(Text, default="")
    doctor_phone = Column(Text, default="")
    doctor_fax = Column(Text, default="")
    doctor_email = Column(Text, default="")

    # Pharmacy
    pharmacy_name = Column(Text, default="")
    pharmacy_address = Column(Text, default="")
    pharmacy_phone = Column(Text, default="")
    pharmacy_fax = Column(Text, default="")

    # Language
    detected_lang = Column(String(16), default="")
    target_lang = Column(String(16), default="")

    # Text
    transcript = Column(Text, default="")
    translated_transcript = Column(Text, default="")

    # Summary pieces
    facts = Column(JSON, default=dict)  # ExtractedFacts, camelCase aliases
    medications = Column(Text, default="")
    allergies = Column(Text, default="")
    conditions = Column(Text, default="")
    bp = Column(Text, default="")
    weight = Column(Text, default="")
    summary_text = Column(Text, default="")
    translated_summary = Column(Text, default="")

    # Share / QR
    share_url = Column(Text, default="")
    qr_data_url = Column(Text, default="")
