"""
Speech-to-Text Service
Uses the OpenAI audio transcription API with a fallback model.
"""

import asyncio
import os
import time
from tempfile import NamedTemporaryFile
from typing import Optional

import httpx
from fastapi import HTTPException, status
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from caregiver_card.config import settings
from caregiver_card.core.logging import get_logger, audit_logger
from caregiver_card.core.security import data_encryption

logger = get_logger(__name__)


def is_retryable(exception: BaseException) -> bool:
    """Timeouts, connection drops and 5xx answers are worth another try"""
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError, APITimeoutError, APIConnectionError)):
        return True
    return isinstance(exception, APIStatusError) and exception.status_code >= 500


openai_retry_policy = dict(
    wait=wait_exponential(multiplier=1, min=2, max=10),
    stop=stop_after_attempt(settings.max_retries),
    retry=retry_if_exception(is_retryable),
    reraise=True,
    before_sleep=lambda retry_state: logger.warning(
        f"Retrying OpenAI call, attempt {retry_state.attempt_number}..."
    ),
)


def _read_decrypted(file_path: str) -> bytes:
    with open(file_path, "rb") as f:
        return data_encryption.decrypt_data(f.read())


def _write_encrypted(temp_file, audio_data: bytes):
    temp_file.write(data_encryption.encrypt_data(audio_data))
    temp_file.flush()
    os.fsync(temp_file.fileno())


class STTService:
    """Service for Speech-to-Text transcription using OpenAI."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self.model = settings.transcription_model.value
        self.fallback_model = settings.transcription_fallback_model.value

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.stt_timeout,
            )
        return self._client

    @retry(**openai_retry_policy)
    async def _transcribe_with(self, model: str, filename: str, audio: bytes) -> str:
        result = await self.client.audio.transcriptions.create(
            model=model,
            file=(filename, audio),
        )
        return (result.text or "").strip()

    async def transcribe(self, request_id: str, file_path: Optional[str], part: str = "audio") -> str:
        """
        Transcribes one encrypted upload. Tries the primary model, then the
        fallback model; returns an empty string when both fail so the report
        can still be built from typed fields.
        """
        if not file_path:
            return ""

        audio = await asyncio.to_thread(_read_decrypted, file_path)

        filename = f"{part}.webm"
        for model in (self.model, self.fallback_model):
            start = time.time()
            try:
                text = await self._transcribe_with(model, filename, audio)
            except Exception as e:
                elapsed_ms = int((time.time() - start) * 1000)
                logger.error(f"[{request_id}] Transcription of {part} with {model} failed: {e}", exc_info=True)
                audit_logger.log_external_api_call(
                    request_id=request_id,
                    service="openai",
                    endpoint="audio.transcriptions",
                    success=False,
                    response_time_ms=elapsed_ms,
                    model=model,
                )
                continue

            elapsed_ms = int((time.time() - start) * 1000)
            audit_logger.log_transcription(
                request_id=request_id,
                part=part,
                model_used=model,
                audio_size_bytes=len(audio),
                transcript=text,
                processing_time_ms=elapsed_ms,
            )
            return text

        logger.warning(f"[{request_id}] No transcript for {part}, continuing without it")
        return ""


async def process_and_save_audio(audio_data: bytes, content_type: Optional[str]) -> NamedTemporaryFile:
    """
    Validates uploaded audio data and saves it to a temporary file.
    - Checks content type and size.
    - Encrypts the audio data before saving.
    - Returns the open NamedTemporaryFile object.
    """
    # browsers send "audio/webm;codecs=opus"
    base_type = (content_type or "").split(";")[0].strip().lower()
    if base_type not in settings.supported_audio_formats:
        logger.warning(f"Unsupported audio format: {content_type}")
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported audio format: {content_type}",
        )

    if not audio_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio data.")

    max_bytes = settings.max_file_size_mb * 1024 * 1024
    if len(audio_data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Audio file exceeds {settings.max_file_size_mb} MB.",
        )

    logger.info(f"Received {len(audio_data)} bytes of audio data.")
    temp_file = NamedTemporaryFile(delete=False, suffix=".enc")
    try:
        await asyncio.to_thread(_write_encrypted, temp_file, audio_data)
    except OSError as e:
        temp_file.close()
        os.remove(temp_file.name)
        logger.error(f"Error while saving audio: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process audio file.",
        )

    logger.info(f"Encrypted audio saved temporarily to {temp_file.name}")
    return temp_file


def cleanup_temp_file(temp_file: Optional[NamedTemporaryFile]):
    """Close and delete a temporary audio file, logging failures."""
    if not temp_file:
        return
    try:
        temp_file.close()
        os.remove(temp_file.name)
        logger.info(f"Cleaned up temporary file {temp_file.name}")
    except OSError as e:
        logger.error(f"Failed to cleanup temporary file {temp_file.name}: {e}", exc_info=True)
