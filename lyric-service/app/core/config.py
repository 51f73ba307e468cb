# File: lyric-service/app/core/config.py
import sys
import logging
from typing import List, Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_prefix='LYRIC_',
        case_sensitive=False,
        env_file_encoding='utf-8',
        extra='ignore'
    )

    PROJECT_NAME: str = "What Would Taylor Say - Lyric Service"
    API_V1_STR: str = "/api"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: List[str] = ["*"]
    PORT: int = 8080
    WORKERS: int = Field(default=2, ge=1)

    # --- OpenAI (embeddings + selection) ---
    # Credentials stay optional at load time; dependencies.py validates them on first use.
    OPENAI_API_KEY: Optional[SecretStr] = Field(default=None, description="Your OpenAI API Key.")
    OPENAI_API_BASE: Optional[str] = None
    OPENAI_TIMEOUT_SECONDS: float = 10.0
    OPENAI_CHAT_MODEL_NAME: str = "gpt-4o-mini"
    SELECTION_TEMPERATURE: float = 0.6
    SELECTION_MAX_TOKENS: int = 150
    STRICT_CANDIDATE_MATCH: bool = False

    # --- Rate limit store (Redis) ---
    REDIS_URL: Optional[str] = Field(default=None, description="redis:// or rediss:// URL of the shared counter store.")
    REDIS_TOKEN: Optional[SecretStr] = None
    REDIS_TIMEOUT_SECONDS: float = 3.0
    RATE_LIMIT_PREFIX: str = "wwts"

    # --- Vector index ---
    VECTOR_INDEX_BACKEND: str = "pgvector"
    POSTGRES_DSN: Optional[SecretStr] = Field(default=None, description="postgresql:// DSN of the pgvector database.")
    POSTGRES_COMMAND_TIMEOUT_SECONDS: float = 5.0
    VECTOR_INDEX_CORPUS_PATH: str = "data/lyrics_corpus.json"

    @field_validator('LOG_LEVEL')
    @classmethod
    def check_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'. Must be one of {valid_levels}")
        return v.upper()

    @field_validator('VECTOR_INDEX_BACKEND')
    @classmethod
    def check_vector_index_backend(cls, v: str) -> str:
        valid_backends = ["pgvector", "memory"]
        if v.lower() not in valid_backends:
            raise ValueError(f"Invalid VECTOR_INDEX_BACKEND '{v}'. Must be one of {valid_backends}")
        return v.lower()

temp_log = logging.getLogger("lyric_service.config.loader")
if not temp_log.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    temp_log.addHandler(handler)
    temp_log.setLevel(logging.INFO)

try:
    temp_log.info("Loading Lyric Service settings...")
    settings = Settings()
    temp_log.info("--- Lyric Service Settings Loaded ---")
    temp_log.info(f"  PROJECT_NAME: {settings.PROJECT_NAME}")
    temp_log.info(f"  LOG_LEVEL: {settings.LOG_LEVEL}")
    temp_log.info(f"  OPENAI_CHAT_MODEL_NAME: {settings.OPENAI_CHAT_MODEL_NAME}")
    temp_log.info(f"  OPENAI_API_KEY configured: {settings.OPENAI_API_KEY is not None}")
    temp_log.info(f"  REDIS_URL configured: {bool(settings.REDIS_URL)}")
    temp_log.info(f"  VECTOR_INDEX_BACKEND: {settings.VECTOR_INDEX_BACKEND}")
    temp_log.info("-------------------------------------")
except Exception as e:
    temp_log.critical(f"FATAL: Error loading Lyric Service settings: {e}")
    sys.exit("FATAL: Invalid configuration. Check logs.")
