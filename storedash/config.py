from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Mapping, Optional

DEFAULT_API_BASE = "https://wingsetc.dev/api/v1"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    api_key: str = ""
    request_timeout: float = 30.0
    large_range_days: int = 30
    history_years: int = 2
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _as_float(raw: Optional[str], default: float) -> float:
    if raw is None:
        return default
    try:
        out = float(raw)
    except ValueError:
        return default
    return out if out > 0 else default


def _as_int(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        out = int(raw)
    except ValueError:
        return default
    return out if out > 0 else default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    origins_raw = _first(env, "STOREDASH_CORS_ORIGINS")
    origins = [o.strip() for o in origins_raw.split(",") if o.strip()] if origins_raw else list(DEFAULT_CORS_ORIGINS)
    return Settings(
        api_base=(_first(env, "STOREDASH_API_BASE", "API_BASE") or DEFAULT_API_BASE).rstrip("/"),
        api_key=_first(env, "STOREDASH_API_KEY", "API_KEY") or "",
        request_timeout=_as_float(_first(env, "STOREDASH_REQUEST_TIMEOUT"), 30.0),
        large_range_days=_as_int(_first(env, "STOREDASH_LARGE_RANGE_DAYS"), 30),
        history_years=_as_int(_first(env, "STOREDASH_HISTORY_YEARS"), 2),
        log_level=(_first(env, "STOREDASH_LOG_LEVEL") or "INFO").upper(),
        cors_origins=origins,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
