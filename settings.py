"""Process configuration, read once at startup from the environment / .env."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

OPENAI_BACKEND = "openai"
SORA_V2_BACKEND = "sorav2"
DEFAULT_API_BASE = "https://api.openai.com/v1"


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _optional_float(value: Optional[str]) -> Optional[float]:
    value = (value or "").strip()
    if not value:
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    backend: str = SORA_V2_BACKEND
    openai_api_key: str = ""
    openai_api_base: str = DEFAULT_API_BASE
    openai_video_model: str = "sora-2"
    sora_v2_api_key: str = ""
    sora_v2_api_base: str = DEFAULT_API_BASE
    sora_v2_model: str = "sora"
    # None leaves the transport default in place; see DESIGN.md.
    upstream_timeout: Optional[float] = None
    host: str = "0.0.0.0"
    port: int = 8001
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env``, or from ``os.environ`` after loading .env."""
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            backend=env.get("VIDEO_BACKEND", SORA_V2_BACKEND).strip().lower(),
            openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
            openai_api_base=env.get("OPENAI_API_BASE", DEFAULT_API_BASE).strip().rstrip("/"),
            openai_video_model=env.get("OPENAI_VIDEO_MODEL", "sora-2").strip(),
            sora_v2_api_key=env.get("SORA_V2_API_KEY", "").strip(),
            sora_v2_api_base=env.get("SORA_V2_API_BASE", DEFAULT_API_BASE).strip().rstrip("/"),
            sora_v2_model=env.get("SORA_V2_MODEL", "sora").strip(),
            upstream_timeout=_optional_float(env.get("UPSTREAM_TIMEOUT")),
            host=env.get("APP_HOST", "0.0.0.0"),
            port=int(env.get("APP_PORT", "8001")),
            debug=_flag(env.get("FLASK_DEBUG")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
