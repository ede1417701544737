"""
Caregiver Card - FastAPI Main Application
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Tuple
import asyncio
import httpx

from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from starlette.datastructures import UploadFile
from starlette.responses import Response

from caregiver_card.config import settings, Environment
from caregiver_card.core.logging import setup_logging, get_logger, audit_logger
from caregiver_card.core.security import require_session, security_manager
from caregiver_card.models.db_models import Report
from caregiver_card.models.facts import ExtractedFacts
from caregiver_card.models.requests import LanguageDetectionRequest, PatientContacts, TypedStatus
from caregiver_card.models.responses import (
    ErrorResponse, HealthCheckResponse, LanguageDetectionResponse, RateLimitResponse,
    ReportCreatedResponse, ReportDetailResponse,
)
from caregiver_card.services.contact_normalizer import fill_blank_contacts, normalize_contacts
from caregiver_card.services.deid_service import deidentify
from caregiver_card.services.fact_extractor import extract
from caregiver_card.services.llm_service import LLMService, DEFAULT_LANGUAGE
from caregiver_card.services.report_renderer import (
    make_qr_data_url, render_login, render_report, render_report_list,
    render_upload_form, share_base_url,
)
from caregiver_card.services.report_store import new_report_id, report_store
from caregiver_card.services.stt_service import STTService, cleanup_temp_file, process_and_save_audio
from caregiver_card.services.summary_service import merge_typed_status, summarize_facts

# Initialize logging
setup_logging()
logger = get_logger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
STARTED_AT = time.time()

# Audio parts of the upload form, with the label used in the combined transcript
AUDIO_PARTS: List[Tuple[str, str]] = [
    ("audio_patientfree", "Patient/Contacts (free)"),
    ("audio_statusfree", "Status (free)"),
    ("audio_classic", "Classic"),
]

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
report_processing_duration = Histogram('report_processing_duration_seconds', 'Upload to stored report duration')

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# Service instances
stt_service = STTService()
llm_service = LLMService()


# --- Dependency Status Checks ---
async def check_openai_status() -> Tuple[str, str]:
    """Checks that the OpenAI API answers with the configured key."""
    if not settings.openai_api_key:
        return "error", "OpenAI API key is not configured."
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            response = await client.get(
                f"{settings.openai_base_url.rstrip('/')}/models",
                headers={"Authorization": f"Bearer {settings.openai_api_key}"},
            )
        if 200 <= response.status_code < 300:
            return "ok", "OpenAI API is reachable."
        return "error", f"OpenAI API returned status {response.status_code}."
    except httpx.HTTPError as e:
        return "error", f"Failed to connect to OpenAI API: {e}"


def _ping_database():
    with report_store.engine.connect() as conn:
        conn.execute(text("SELECT 1"))


async def check_database_status() -> Tuple[str, str]:
    try:
        await asyncio.to_thread(_ping_database)
        return "ok", "Database is reachable."
    except Exception as e:
        return "error", f"Database check failed: {e}"

# --------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Caregiver Card starting...")
    logger.info(f"Environment: {settings.environment.value}")
    logger.info(f"API Version: {settings.api_version}")
    if settings.environment == Environment.PRODUCTION and settings.app_password == "changeme":
        logger.warning("APP_PASSWORD is still the default value")
    report_store.init_db()

    yield

    logger.info("Caregiver Card shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == Environment.DEVELOPMENT else None,
    redoc_url="/redoc" if settings.environment == Environment.DEVELOPMENT else None,
    debug=settings.debug,
)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


# Middleware for security headers
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    # QR codes are inline data: images
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; "
        "script-src 'self' 'unsafe-inline'; object-src 'none'",
    )
    return response


# Middleware for request tracking and metrics
@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Request tracking and Prometheus metrics"""

    start_time = time.time()
    request_id = security_manager.generate_request_id()
    request.state.request_id = request_id
    request.state.start_time = start_time

    try:
        response = await call_next(request)
    except Exception as e:
        request_count.labels(method=request.method, endpoint=request.url.path, status=500).inc()
        logger.error(f"Request {request_id} failed: {e}", exc_info=True)
        audit_logger.log_error(request_id=request_id, error_type=type(e).__name__, error_message=str(e))
        return _internal_error_response(request_id)

    duration = time.time() - start_time
    request_count.labels(method=request.method, endpoint=request.url.path, status=response.status_code).inc()
    request_duration.observe(duration)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Processing-Time"] = f"{duration:.3f}s"

    audit_logger.log_api_request(
        request_id=request_id,
        endpoint=request.url.path,
        method=request.method,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
        status_code=response.status_code,
    )
    return response


def _internal_error_response(request_id: str) -> JSONResponse:
    body = ErrorResponse(
        error="internal_server_error",
        message="An unexpected error occurred",
        request_id=request_id,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(
        status_code=500,
        content=body.model_dump(mode="json", exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


# Health check endpoint
@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Service health check"""
    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.api_version,
        uptime_seconds=int(time.time() - STARTED_AT),
    )


@app.get("/ready")
async def readiness_check():
    """
    Checks if the service and its dependencies are ready to accept traffic.
    Returns 200 OK if all checks pass, otherwise 503 Service Unavailable.
    """
    checks = {
        "database": check_database_status(),
        "openai": check_openai_status(),
    }
    results = await asyncio.gather(*checks.values())

    details = {}
    all_ok = True
    for name, (check_status, message) in zip(checks.keys(), results):
        details[name] = {"status": check_status, "message": message}
        if check_status != "ok":
            all_ok = False

    response_data = {
        "status": "ready" if all_ok else "unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.api_version,
        "details": details,
    }
    if all_ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)
    logger.warning(f"Readiness check failed: {details}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response_data)


# Prometheus metrics endpoint
@app.get("/metrics")
async def metrics():
    """Prometheus metrics"""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


# --- Login ---
@app.get("/login", response_class=HTMLResponse, include_in_schema=False)
async def login_page():
    return HTMLResponse(render_login())


@app.post("/login", include_in_schema=False)
async def login(request: Request):
    form = await request.form()
    user_id = str(form.get("userId") or "")
    password = str(form.get("password") or "")

    if not security_manager.check_credentials(user_id, password):
        logger.warning(f"[{request.state.request_id}] Failed login for {security_manager.hash_identifier(user_id)}")
        return HTMLResponse(render_login("Invalid credentials."), status_code=status.HTTP_401_UNAUTHORIZED)

    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        settings.session_cookie_name,
        security_manager.create_session_token(user_id),
        httponly=True,
        samesite="lax",
        secure=settings.environment == Environment.PRODUCTION,
        max_age=settings.access_token_expire_minutes * 60,
    )
    return response


@app.post("/logout", include_in_schema=False)
async def logout():
    response = RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.session_cookie_name)
    return response


@app.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(session: dict = Depends(require_session)):
    return HTMLResponse(render_upload_form())


@app.post("/detect-lang", response_model=LanguageDetectionResponse)
async def detect_language(body: LanguageDetectionRequest, session: dict = Depends(require_session)):
    """Detects the language of a short text."""
    text_in = body.text.strip()
    if not text_in:
        return LanguageDetectionResponse(ok=False, error="No text")
    try:
        code, name = await llm_service.detect_language(text_in)
    except Exception as e:
        logger.error(f"Language detection failed: {e}", exc_info=True)
        return LanguageDetectionResponse(ok=False, error="detect failed")
    return LanguageDetectionResponse(ok=True, code=code, name=name)


# --- Reports ---
def _form_text(form, key: str) -> str:
    value = form.get(key)
    return value.strip() if isinstance(value, str) else ""


async def _transcribe_uploads(request_id: str, form) -> Dict[str, str]:
    """Validates, stores and transcribes every audio part of the form concurrently."""
    temp_files = {}
    try:
        for part, _ in AUDIO_PARTS:
            upload = form.get(part)
            if not isinstance(upload, UploadFile) or not upload.filename:
                continue
            data = await upload.read()
            if not data:
                continue
            temp_files[part] = await process_and_save_audio(data, upload.content_type)

        texts = await asyncio.gather(*(
            stt_service.transcribe(request_id, temp.name, part) for part, temp in temp_files.items()
        ))
        return dict(zip(temp_files.keys(), texts))
    finally:
        for temp in temp_files.values():
            cleanup_temp_file(temp)


@app.post(
    "/v1/reports",
    response_model=ReportCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(f"{settings.rate_limit_requests}/minute")
async def create_report(request: Request, session: dict = Depends(require_session)):
    """
    Builds a report from typed fields and up to three voice notes:
    transcribe, extract facts, merge typed status, summarize, optionally
    translate, then store with a share link and QR code.
    """
    request_id = request.state.request_id
    form = await request.form()

    contacts = normalize_contacts(
        PatientContacts(**{key: _form_text(form, key) for key in PatientContacts.model_fields})
    )
    typed = TypedStatus(
        bp=_form_text(form, "bp"),
        weight=_form_text(form, "weight"),
        meds=_form_text(form, "typed_meds"),
        allergies=_form_text(form, "typed_allergies"),
        conditions=_form_text(form, "typed_conditions"),
        general=_form_text(form, "typed_general"),
    )
    target_lang = _form_text(form, "lang")
    if target_lang and target_lang not in settings.language_names:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported target language '{target_lang}'.",
        )

    transcripts = await _transcribe_uploads(request_id, form)

    spoken_contacts = transcripts.get("audio_patientfree")
    if spoken_contacts:
        contacts = fill_blank_contacts(contacts, await llm_service.extract_contacts(spoken_contacts, request_id))

    fact_source = "\n".join(
        t for t in (transcripts.get("audio_statusfree"), transcripts.get("audio_classic"), typed.fact_text()) if t
    )
    facts = extract(fact_source)
    summary = merge_typed_status(typed, facts)

    lines = [f"{label}: {transcripts[part]}" for part, label in AUDIO_PARTS if transcripts.get(part)]
    if typed.general:
        lines.append(f"Journal: {typed.general}")
    transcript = "\n".join(lines).strip()

    if not transcript and not contacts.has_content() and summary.is_empty():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No content")

    summary_text = summarize_facts(summary)

    detected_lang = DEFAULT_LANGUAGE
    if transcript:
        try:
            detected_lang, _ = await llm_service.detect_language(transcript)
        except Exception as e:
            logger.warning(f"[{request_id}] Language detection failed, assuming {DEFAULT_LANGUAGE}: {e}")

    translated_transcript, translated_summary = "", ""
    if target_lang:
        translated_transcript, translated_summary = await asyncio.gather(
            llm_service.translate(transcript or summary_text, target_lang, request_id),
            llm_service.translate(summary_text, target_lang, request_id),
        )

    report_id = new_report_id()
    share_url = f"{share_base_url(request)}/reports/{report_id}"
    report = Report(
        id=report_id,
        **contacts.model_dump(),
        detected_lang=detected_lang,
        target_lang=target_lang,
        transcript=transcript,
        translated_transcript=translated_transcript,
        facts=facts.model_dump(mode="json", by_alias=True, exclude_none=True),
        medications="; ".join(summary.medications),
        allergies="; ".join(summary.allergies),
        conditions="; ".join(summary.conditions),
        bp=summary.bp,
        weight=summary.weight,
        summary_text=summary_text,
        translated_summary=translated_summary,
        share_url=share_url,
        qr_data_url=make_qr_data_url(share_url),
    )
    await asyncio.to_thread(report_store.create, report)

    processing_time = time.time() - request.state.start_time
    report_processing_duration.observe(processing_time)
    audit_logger.log_report_created(
        request_id=request_id,
        report_id=report_id,
        target_lang=target_lang,
        medication_count=len(summary.medications),
        allergy_count=len(summary.allergies),
        condition_count=len(summary.conditions),
        processing_time_ms=int(processing_time * 1000),
    )
    return ReportCreatedResponse(id=report_id, url=share_url)


def _split_stored(value: str) -> List[str]:
    return [item for item in (value or "").split("; ") if item]


async def _load_report(report_id: str) -> Report:
    report = await asyncio.to_thread(report_store.get, report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return report


@app.get("/reports", response_class=HTMLResponse, include_in_schema=False)
async def list_reports(session: dict = Depends(require_session)):
    return HTMLResponse(render_report_list(await asyncio.to_thread(report_store.list_recent)))


@app.get("/reports/{report_id}", response_class=HTMLResponse, include_in_schema=False)
async def show_report(report_id: str, redact: bool = False, session: dict = Depends(require_session)):
    return HTMLResponse(render_report(await _load_report(report_id), redact=redact))


@app.get("/v1/reports/{report_id}", response_model=ReportDetailResponse)
async def get_report(report_id: str, redact: bool = False, session: dict = Depends(require_session)):
    """Report as JSON; redact=true masks PHI in the transcripts."""
    report = await _load_report(report_id)
    transcript = report.transcript or ""
    translated = report.translated_transcript or ""
    if redact:
        transcript, translated = deidentify(transcript), deidentify(translated)

    return ReportDetailResponse(
        id=report.id,
        created_at=report.created_at,
        detected_lang=report.detected_lang,
        target_lang=report.target_lang,
        transcript=transcript,
        translated_transcript=translated,
        facts=ExtractedFacts.model_validate(report.facts or {}),
        status={
            "medications": _split_stored(report.medications),
            "allergies": _split_stored(report.allergies),
            "conditions": _split_stored(report.conditions),
            "bp": report.bp or "",
            "weight": report.weight or "",
        },
        summary_text=report.summary_text or "",
        translated_summary=report.translated_summary,
        share_url=report.share_url or "",
    )


# Override rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Custom rate limit error handler"""
    response = RateLimitResponse(
        message="Too many requests. Please try again later.",
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=response.model_dump(mode="json"),
        headers={"Retry-After": str(settings.rate_limit_window)},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(f"Unhandled error in request {request_id}: {exc}")
    logger.error(f"Stacktrace: {traceback.format_exc()}")
    return _internal_error_response(request_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "caregiver_card.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == Environment.DEVELOPMENT,
    )
