"""Service configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Tuple


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Centralised service settings based on OS environment variables."""

    mode: str = "debug"
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8080

    redis_url: str = "redis://localhost:6379/0"
    redis_ttl: int = 24 * 60 * 60

    upload_dir: str = "./uploads"
    upload_max_size: int = 10 * 1024 * 1024
    allowed_types: Tuple[str, ...] = ("image/jpeg", "image/png", "image/jpg")

    iterations: int = 5
    border_size: int = 10
    max_concurrent: int = 3
    queue_timeout: float = 30.0
    max_dimension: int = 1200
    cleanup_temp_files: bool = True
    face_detection: bool = False
    face_cascade_path: str = ""

    version: str = "dev"
    build_time: str = "unknown"
    build_id: str = "unknown"
    git_commit: str = "unknown"
    git_branch: str = "unknown"

    @property
    def is_release(self) -> bool:
        return self.mode == "release"


def _build_settings() -> Settings:
    _load_env_file()

    mode = os.getenv("LAYERKIT_MODE", "debug")
    return Settings(
        mode=mode,
        log_level=os.getenv("LOG_LEVEL", "INFO" if mode == "release" else "DEBUG"),
        host=os.getenv("LAYERKIT_HOST", "0.0.0.0"),
        port=int(os.getenv("LAYERKIT_PORT", "8080")),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        redis_ttl=int(os.getenv("REDIS_TTL", str(24 * 60 * 60))),
        upload_dir=os.getenv("UPLOAD_DIR", "./uploads"),
        upload_max_size=int(os.getenv("UPLOAD_MAX_SIZE", str(10 * 1024 * 1024))),
        allowed_types=_env_list("UPLOAD_ALLOWED_TYPES", ("image/jpeg", "image/png", "image/jpg")),
        iterations=int(os.getenv("GRABCUT_ITERATIONS", "5")),
        border_size=int(os.getenv("GRABCUT_BORDER_SIZE", "10")),
        max_concurrent=int(os.getenv("GRABCUT_MAX_CONCURRENT", "3")),
        queue_timeout=float(os.getenv("GRABCUT_QUEUE_TIMEOUT", "30")),
        max_dimension=int(os.getenv("GRABCUT_MAX_DIMENSION", "1200")),
        cleanup_temp_files=_env_bool("GRABCUT_CLEANUP_TEMP_FILES", True),
        face_detection=_env_bool("GRABCUT_FACE_DETECTION", False),
        face_cascade_path=os.getenv("GRABCUT_FACE_CASCADE", ""),
        version=os.getenv("BUILD_VERSION", "dev"),
        build_time=os.getenv("BUILD_TIME", "unknown"),
        build_id=os.getenv("BUILD_ID", "unknown"),
        git_commit=os.getenv("GIT_COMMIT", "unknown"),
        git_branch=os.getenv("GIT_BRANCH", "unknown"),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
