import asyncio
import os
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from caregiver_card.core.security import data_encryption
from caregiver_card.services.stt_service import (
    STTService,
    cleanup_temp_file,
    is_retryable,
    process_and_save_audio,
)


class FakeTranscriptions:
    def __init__(self, outcomes):
        self.outcomes = dict(outcomes)
        self.calls = []

    async def create(self, model, file):
        self.calls.append((model, file))
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


def fake_client(outcomes):
    transcriptions = FakeTranscriptions(outcomes)
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions)), transcriptions


def test_saved_audio_is_encrypted():
    temp = asyncio.run(process_and_save_audio(b"raw-audio", "audio/webm;codecs=opus"))
    try:
        with open(temp.name, "rb") as f:
            stored = f.read()
        assert stored != b"raw-audio"
        assert data_encryption.decrypt_data(stored) == b"raw-audio"
    finally:
        cleanup_temp_file(temp)
    assert not os.path.exists(temp.name)


def test_unsupported_audio_type_is_rejected():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(process_and_save_audio(b"x", "text/plain"))
    assert exc.value.status_code == 415


def test_empty_audio_is_rejected():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(process_and_save_audio(b"", "audio/webm"))
    assert exc.value.status_code == 400


def test_transcribe_uses_primary_model():
    client, transcriptions = fake_client({"gpt-4o-mini-transcribe": "  I take Metformin 500 mg  "})
    service = STTService(client=client)
    temp = asyncio.run(process_and_save_audio(b"audio", "audio/webm"))
    try:
        text = asyncio.run(service.transcribe("req-1", temp.name, "audio_statusfree"))
    finally:
        cleanup_temp_file(temp)

    assert text == "I take Metformin 500 mg"
    model, (filename, payload) = transcriptions.calls[0]
    assert model == "gpt-4o-mini-transcribe"
    assert filename == "audio_statusfree.webm"
    assert payload == b"audio"


def test_transcribe_falls_back_then_gives_up():
    client, transcriptions = fake_client({
        "gpt-4o-mini-transcribe": ValueError("bad model"),
        "whisper-1": "fallback text",
    })
    service = STTService(client=client)
    temp = asyncio.run(process_and_save_audio(b"audio", "audio/webm"))
    try:
        assert asyncio.run(service.transcribe("req-2", temp.name)) == "fallback text"

        transcriptions.outcomes["whisper-1"] = ValueError("also bad")
        assert asyncio.run(service.transcribe("req-3", temp.name)) == ""
    finally:
        cleanup_temp_file(temp)


def test_transcribe_without_file():
    service = STTService(client=SimpleNamespace())
    assert asyncio.run(service.transcribe("req-4", None)) == ""


def test_client_errors_are_not_retried():
    assert not is_retryable(ValueError("nope"))
