import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


def _split_env_list(value: str, default: List[str]) -> List[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class APISettings:
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: List[str] = field(
        default_factory=lambda: _split_env_list(
            os.getenv("API_CORS_ORIGINS", ""), ["http://localhost:5173"]
        )
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    stream_heartbeat_seconds: float = float(os.getenv("STREAM_HEARTBEAT_SECONDS", "30"))
    stream_queue_size: int = int(os.getenv("STREAM_QUEUE_SIZE", "1000"))
    default_streams: List[str] = field(
        default_factory=lambda: _split_env_list(
            os.getenv("STREAM_DEFAULT_STREAMS", ""), ["stdout", "stderr"]
        )
    )
    read_size: int = int(os.getenv("STDFORWARD_READ_SIZE", "32768"))
    enable_emit: bool = _env_bool("API_ENABLE_EMIT", False)


@lru_cache
def get_settings() -> APISettings:
    return APISettings()



def reload_settings() -> APISettings:
    get_settings.cache_clear()
    return get_settings()
