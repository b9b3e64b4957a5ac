from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_host: str = os.getenv("APP_HOST", "0.0.0.0")
    app_port: int = int(os.getenv("PORT") or os.getenv("APP_PORT", "8000"))
    app_env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_api_key: str = os.getenv("SERVICE_API_KEY", "")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "")
    batch_size: int = int(os.getenv("GENERATION_BATCH_SIZE", "20"))
    store_backend: str = os.getenv("STORE_BACKEND", "memory")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError("GENERATION_BATCH_SIZE must be positive")
        if self.store_backend not in {"memory", "redis"}:
            raise ValueError(f"Unknown STORE_BACKEND: {self.store_backend}")
