from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes")


def default_local_repository() -> Path:
    return Path.home() / ".m2" / "repository"


@dataclass(frozen=True)
class Settings:
    """Explicit configuration for one build invocation.

    Environment:
      BUILDSPEC_LOCAL_REPO          install target / mavenLocal location
      BUILDSPEC_CACHE_DIR           download cache for remote repositories
      BUILDSPEC_BUILD_DIR           compiler output directory
      BUILDSPEC_STRICT_SOURCE_SETS  reject conflicting source roots
      BUILDSPEC_OFFLINE             never contact remote repositories
      BUILDSPEC_LOG_LEVEL           CLI logging level
      BUILDSPEC_HTTP_TIMEOUT        seconds per remote request
    """

    local_repository: Path
    cache_dir: Path
    build_dir: Path
    strict_source_sets: bool = False
    offline: bool = False
    log_level: str = "INFO"
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        local_repo = (env.get("BUILDSPEC_LOCAL_REPO") or "").strip()
        cache_dir = (env.get("BUILDSPEC_CACHE_DIR") or "").strip()
        build_dir = (env.get("BUILDSPEC_BUILD_DIR") or "build").strip()
        timeout_raw = (env.get("BUILDSPEC_HTTP_TIMEOUT") or "30").strip()
        try:
            timeout = float(timeout_raw)
        except ValueError:
            timeout = 30.0

        repo_path = Path(local_repo).expanduser() if local_repo else default_local_repository()
        return cls(
            local_repository=repo_path,
            cache_dir=Path(cache_dir).expanduser() if cache_dir else Path(build_dir) / "cache",
            build_dir=Path(build_dir),
            strict_source_sets=_flag(env.get("BUILDSPEC_STRICT_SOURCE_SETS")),
            offline=_flag(env.get("BUILDSPEC_OFFLINE")),
            log_level=(env.get("BUILDSPEC_LOG_LEVEL") or "INFO").strip().upper(),
            http_timeout=timeout,
        )
