"""Service configuration, resolved once from the environment at startup."""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_bool(key: str, default: bool) -> bool:
    value = _env(key)
    if not value:
        return default
    return value.lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime settings for the face matching service."""

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=3000, ge=1, le=65535)
    # Distance policy for the dlib descriptor space, not derived from data.
    threshold: float = Field(default=0.6, gt=0.0, description="Maximum descriptor distance for a match")
    models_dir: str = Field(default="models", description="Directory holding the model artifacts")
    detector: Literal["hog", "cnn"] = "hog"
    upsample_times: int = Field(default=1, ge=0)
    num_jitters: int = Field(default=1, ge=1)
    fetch_timeout: float = Field(default=10.0, gt=0.0, description="Per-fetch timeout in seconds")
    # Accept self-signed or misconfigured TLS endpoints when fetching images.
    allow_insecure_tls: bool = True
    cache_max_entries: Optional[int] = Field(default=None, gt=0, description="LRU cap, None for unbounded")
    max_body_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        # TRESHOLD is the historical spelling.
        threshold = _env("THRESHOLD") or _env("TRESHOLD") or "0.6"
        cache_max = _env("CACHE_MAX_ENTRIES")
        return cls(
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "3000")),
            threshold=float(threshold),
            models_dir=_env("MODELS_DIR", "models"),
            detector=_env("FACE_DETECTOR", "hog").lower(),
            upsample_times=int(_env("UPSAMPLE_TIMES", "1")),
            num_jitters=int(_env("NUM_JITTERS", "1")),
            fetch_timeout=float(_env("FETCH_TIMEOUT", "10.0")),
            allow_insecure_tls=_env_bool("ALLOW_INSECURE_TLS", True),
            cache_max_entries=int(cache_max) if cache_max and int(cache_max) > 0 else None,
            max_body_bytes=int(_env("MAX_BODY_BYTES", str(10 * 1024 * 1024))),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )
