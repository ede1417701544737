"""
Central configuration for the Caregiver Card Service
"""

from typing import Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from enum import Enum


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class TranscriptionModel(str, Enum):
    GPT_4O_MINI_TRANSCRIBE = "gpt-4o-mini-transcribe"
    WHISPER_1 = "whisper-1"


class TextModel(str, Enum):
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4O = "gpt-4o"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="Caregiver Card API")
    api_description: str = Field(default="Voice medical history notes with shareable reports")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=10000)
    public_base_url: Optional[str] = Field(default=None)  # overrides Host-derived share links

    # Shared login
    app_user_id: str = Field(default="caregiver")
    app_password: str = Field(default="changeme")
    session_secret: str = Field(default="caregiver-card-secret")
    session_cookie_name: str = Field(default="hhsess")
    token_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=12 * 60)

    # External Service APIs
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    transcription_model: TranscriptionModel = TranscriptionModel.GPT_4O_MINI_TRANSCRIBE
    transcription_fallback_model: TranscriptionModel = TranscriptionModel.WHISPER_1
    text_model: str = Field(default=TextModel.GPT_4O_MINI.value)
    translation_temperature: float = Field(default=0.2)

    # Timeouts and Retries
    stt_timeout: int = Field(default=60)
    llm_timeout: int = Field(default=60)
    max_retries: int = Field(default=3)

    # Uploads
    max_file_size_mb: int = Field(default=6)
    supported_audio_formats: List[str] = Field(
        default=["audio/webm", "audio/ogg", "audio/mpeg", "audio/wav", "audio/mp4", "audio/m4a"]
    )
    data_encryption_key: Optional[str] = Field(default=None)  # Fernet key, generated per process if unset

    # Storage
    database_url: str = Field(default="sqlite:///./data.sqlite")

    # Rate Limiting
    rate_limit_requests: int = Field(default=10)
    rate_limit_window: int = Field(default=60)  # seconds

    # CORS Configuration
    cors_origins: List[str] = Field(default=["http://localhost:3000", "http://localhost:10000"])
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default=["GET", "POST"])
    cors_allow_headers: List[str] = Field(default=["*"])

    # Monitoring
    enable_metrics: bool = Field(default=True)

    # Audit Logging
    audit_log_enabled: bool = Field(default=True)

    # Language labels shown on reports
    language_names: Dict[str, str] = Field(
        default={
            "en": "English", "es": "Español", "fr": "Français", "de": "Deutsch",
            "pt": "Português", "it": "Italiano", "he": "עברית", "sr": "Srpski",
            "pa": "ਪੰਜਾਬੀ", "ar": "العربية", "zh": "中文", "ja": "日本語",
            "ko": "한국어", "hi": "हिन्दी",
        }
    )

    def language_label(self, code: Optional[str]) -> str:
        if not code:
            return "—"
        return self.language_names.get(code, code)


# Global settings instance
settings = Settings()
