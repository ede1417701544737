"""
Strukturiertes Logging Setup für Caregiver Card
"""

import logging
import structlog
from datetime import datetime, timezone
from typing import Optional
from caregiver_card.config import settings
from caregiver_card.services.deid_service import deidentify


AUDIT_EXCERPT_CHARS = 120


def setup_logging():
    """Konfiguriert strukturiertes Logging"""

    # Timestamper für konsistente Zeitstempel
    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    # Processor-Chain definieren
    processors = [
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.environment == "development":
        # Development: Colored console output
        processors.extend([
            structlog.dev.ConsoleRenderer(colors=True)
        ])
    else:
        # Production: JSON output
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Erstellt einen konfigurierten Logger"""
    return structlog.get_logger(name or __name__)


def redacted_excerpt(text: Optional[str], limit: int = AUDIT_EXCERPT_CHARS) -> str:
    """Masks PHI in a transcript before it is written to a log line."""
    if not text:
        return ""
    masked = deidentify(text)
    if len(masked) > limit:
        return masked[:limit] + "…"
    return masked


class AuditLogger:
    """Spezieller Logger für Audit-Events"""

    def __init__(self):
        self.logger = get_logger("audit")

    def _emit(self, event: str, level: str = "info", **kwargs):
        if not settings.audit_log_enabled:
            return
        getattr(self.logger, level)(
            event,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )

    def log_api_request(
        self,
        request_id: str,
        endpoint: str,
        method: str,
        user_hash: str = None,
        user_agent: str = None,
        ip_address: str = None,
        **kwargs
    ):
        """Loggt API-Anfragen für Audit-Zwecke"""
        self._emit(
            "api_request",
            request_id=request_id,
            endpoint=endpoint,
            method=method,
            user_hash=user_hash,
            user_agent=user_agent,
            ip_address=ip_address,
            **kwargs
        )

    def log_transcription(
        self,
        request_id: str,
        part: str,
        model_used: str,
        audio_size_bytes: int,
        transcript: str,
        processing_time_ms: int,
        **kwargs
    ):
        """Loggt Transkriptionen, nur mit maskiertem Textauszug"""
        self._emit(
            "transcription",
            request_id=request_id,
            part=part,
            model_used=model_used,
            audio_size_bytes=audio_size_bytes,
            transcript_chars=len(transcript or ""),
            transcript_excerpt=redacted_excerpt(transcript),
            processing_time_ms=processing_time_ms,
            **kwargs
        )

    def log_report_created(
        self,
        request_id: str,
        report_id: str,
        target_lang: str,
        medication_count: int,
        allergy_count: int,
        condition_count: int,
        processing_time_ms: int,
        **kwargs
    ):
        """Loggt neu gespeicherte Reports"""
        self._emit(
            "report_created",
            request_id=request_id,
            report_id=report_id,
            target_lang=target_lang,
            medication_count=medication_count,
            allergy_count=allergy_count,
            condition_count=condition_count,
            processing_time_ms=processing_time_ms,
            **kwargs
        )

    def log_external_api_call(
        self,
        request_id: str,
        service: str,
        endpoint: str,
        success: bool,
        response_time_ms: int,
        **kwargs
    ):
        """Loggt Calls zu externen APIs"""
        self._emit(
            "external_api_call",
            request_id=request_id,
            service=service,
            endpoint=endpoint,
            success=success,
            response_time_ms=response_time_ms,
            **kwargs
        )

    def log_error(
        self,
        request_id: str,
        error_type: str,
        error_message: str,
        stack_trace: str = None,
        **kwargs
    ):
        """Loggt Fehler-Events"""
        self._emit(
            "error_event",
            level="error",
            request_id=request_id,
            error_type=error_type,
            error_message=deidentify(error_message),
            stack_trace=stack_trace,
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger()
