"""Runtime configuration for talkbridge."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOURCE_CANDIDATES = [
    "en-US",
    "es-ES",
    "fr-FR",
    "de-DE",
    "it-IT",
    "pt-PT",
    "zh-CN",
    "ja-JP",
    "ko-KR",
    "ar-SA",
]


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="TALKBRIDGE_", env_file=".env", extra="ignore")

    app_name: str = "talkbridge"
    log_level: str = "INFO"
    azure_speech_key: str = ""
    azure_speech_region: str = Field(
        default="qatarcentral",
        description="Azure region hosting the speech resource.",
    )
    open_language: str = Field(
        default="en-US",
        description="Pre-selected language of the open party.",
    )
    source_candidates: list[str] = Field(default_factory=lambda: list(DEFAULT_SOURCE_CANDIDATES))
    rearm_delay_seconds: float = 0.0
    retry_delay_seconds: float = 0.5
    max_engine_retries: int = 1
    synthesis_enabled: bool = True
    synthesis_max_chars: int = 500
    synthesis_backend: str = Field(
        default="azure",
        description="Synthesis backend for live conversations: azure, pyttsx3 or echo.",
    )


settings = Settings()
