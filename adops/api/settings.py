"""Runtime settings for the AdOps API layer."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


class ApiSettings:
    """Container for runtime-tunable API settings."""

    def __init__(self) -> None:
        self.env: str = os.getenv("ENV", "dev")
        self.allowed_origins: List[str] = list(self._env_list("ALLOWED_ORIGINS")) or DEFAULT_ALLOWED_ORIGINS.copy()
        self.rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
        self.rate_limit: str = os.getenv("RATE_LIMIT", "120/minute")
        self.max_count: int = max(int(os.getenv("MAX_RECORD_COUNT", "1000")), 0)

    @staticmethod
    def _env_list(var_name: str) -> Iterable[str]:
        raw = os.getenv(var_name)
        if not raw:
            return []
        # Accept comma or newline separated lists
        parts = [item.strip() for item in raw.replace("\n", ",").split(",")]
        return [item for item in parts if item]


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    """Return cached API settings instance."""

    return ApiSettings()


__all__ = ["ApiSettings", "get_api_settings"]
