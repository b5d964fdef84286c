from functools import lru_cache
from typing import List, Literal

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class AIProviderConfig(BaseModel):
    """Everything the AI client needs to reach a text-generation provider."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["openai", "huggingface"] = "openai"
    endpoint: str
    api_key: str = ""
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 900


class Settings(BaseSettings):
    # AI provider
    AI_PROVIDER: Literal["openai", "huggingface"] = "openai"
    AI_BASE_URL: str = "https://chutes.ai/api/v1"
    AI_API_KEY: str = ""
    AI_MODEL: str = "meta-llama/Meta-Llama-3.1-70B-Instruct"
    AI_TEMPERATURE: float = 0.7
    AI_MAX_NEW_TOKENS: int = 900
    HF_INFERENCE_URL: str = "https://api-inference.huggingface.co/models/meta-llama/Llama-3.1-8B-Instruct"

    # YouTube
    YOUTUBE_API_KEY: str = ""
    YOUTUBE_COOKIES: str = ""  # base64 cookies.txt for yt-dlp

    # Transcription
    ENABLE_WHISPER_TRANSCRIPTION: bool = False
    TRANSCRIPTION_MODEL: str = "openai/whisper-large-v3"

    # Storage
    DATABASE_URL: str = "sqlite:///./creator_growth.db"

    # Uploads
    TEMP_DIR: str = "temp"
    UPLOAD_MAX_BYTES: int = 200 * 1024 * 1024
    TRANSCODE_TIMEOUT_SECONDS: float = 300.0

    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def ai_provider_config(self) -> AIProviderConfig:
        endpoint = self.HF_INFERENCE_URL if self.AI_PROVIDER == "huggingface" else self.AI_BASE_URL
        return AIProviderConfig(
            provider=self.AI_PROVIDER,
            endpoint=endpoint,
            api_key=self.AI_API_KEY,
            model=self.AI_MODEL,
            temperature=self.AI_TEMPERATURE,
            max_tokens=self.AI_MAX_NEW_TOKENS,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
