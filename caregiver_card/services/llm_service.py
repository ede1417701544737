"""
LLM Service for translation, language detection and contact extraction
"""
import json
import time
from typing import Optional, Tuple

import instructor
from openai import AsyncOpenAI
from tenacity import retry

from caregiver_card.config import settings
from caregiver_card.core.logging import get_logger, audit_logger
from caregiver_card.models.requests import PatientContacts
from caregiver_card.services.stt_service import openai_retry_policy

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "en"

CONTACTS_PROMPT = (
    "Extract patient and contact details from the note the user dictated. "
    "Fill only what the note states; leave every unknown field as an empty string. "
    "Do not guess phone numbers or e-mail addresses."
)


class LLMService:
    """Service for translating reports and detecting languages using an LLM."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, structured_client=None):
        self._client = client
        self._structured_client = structured_client
        self.model = settings.text_model
        self.temperature = settings.translation_temperature

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.llm_timeout,
            )
        return self._client

    @property
    def structured_client(self):
        # enables the response_model keyword
        if self._structured_client is None:
            self._structured_client = instructor.from_openai(self.client)
        return self._structured_client

    @retry(**openai_retry_policy)
    async def _complete(self, prompt: str, temperature: float) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    @retry(**openai_retry_policy)
    async def _extract_contacts(self, text: str) -> PatientContacts:
        return await self.structured_client.chat.completions.create(
            model=self.model,
            response_model=PatientContacts,
            temperature=0.0,
            messages=[
                {"role": "system", "content": CONTACTS_PROMPT},
                {"role": "user", "content": text},
            ],
        )

    async def translate(self, text: str, target_lang: str, request_id: str = "-") -> str:
        """
        Translates text into target_lang. Returns an empty string when there is
        nothing to translate or the call fails.
        """
        if not text or not target_lang:
            return ""

        start = time.time()
        try:
            translated = await self._complete(f"Translate to {target_lang}:\n\n{text}", self.temperature)
        except Exception as e:
            logger.error(f"[{request_id}] Translation to {target_lang} failed: {e}", exc_info=True)
            translated = ""
        audit_logger.log_external_api_call(
            request_id=request_id,
            service="openai",
            endpoint="chat.completions",
            success=bool(translated),
            response_time_ms=int((time.time() - start) * 1000),
            purpose="translate",
            target_lang=target_lang,
        )
        return translated

    async def extract_contacts(self, text: str, request_id: str = "-") -> PatientContacts:
        """
        Pulls name, e-mail, blood type and emergency, doctor and pharmacy
        details out of a dictated note. Returns empty contacts when there is no
        text or the call fails, so the typed form values still stand.
        """
        if not text or not text.strip():
            return PatientContacts()

        start = time.time()
        try:
            contacts = await self._extract_contacts(text)
            success = True
        except Exception as e:
            logger.error(f"[{request_id}] Contact extraction failed: {e}", exc_info=True)
            contacts, success = PatientContacts(), False
        audit_logger.log_external_api_call(
            request_id=request_id,
            service="openai",
            endpoint="chat.completions",
            success=success,
            response_time_ms=int((time.time() - start) * 1000),
            purpose="extract_contacts",
        )
        return contacts

    async def detect_language(self, text: str) -> Tuple[str, str]:
        """Returns (code, name) for the language of text, defaulting to English."""
        prompt = (
            "Detect the language of this text. Reply ONLY with a JSON object: "
            '{"code":"xx","name":"<Language Name>"}.\n\n'
            f"Text:\n{text}"
        )
        raw = await self._complete(prompt, 0.0)
        try:
            data = json.loads(raw or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Language detection returned non-JSON: '{raw[:80]}'")
            data = {}
        if not isinstance(data, dict):
            data = {}

        code = str(data.get("code") or DEFAULT_LANGUAGE)
        name = str(data.get("name") or settings.language_label(code))
        return code, name
