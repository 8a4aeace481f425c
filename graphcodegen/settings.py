"""
Runtime settings, read from the environment.

A `.env` file in the working directory (or the path in GRAPHCODEGEN_ENV_FILE)
is loaded first, so values can live there instead of being exported by hand.

    GRAPHCODEGEN_REGISTRY_PATHS   registry JSON files loaded at server start, os.pathsep separated
    GRAPHCODEGEN_MAX_DATA_DEPTH   longest data-dependency chain the compiler follows (default 256)
    GRAPHCODEGEN_LOG_LEVEL        logging level name (default INFO)
    GRAPHCODEGEN_HOST             server bind address (default 0.0.0.0)
    GRAPHCODEGEN_PORT             server port (default 3001)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from .compiler.generator import DEFAULT_MAX_DATA_DEPTH

ENV_PREFIX = "GRAPHCODEGEN_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    registry_paths: List[str] = field(default_factory=list)
    max_data_depth: int = DEFAULT_MAX_DATA_DEPTH
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        load_dotenv(env_file or os.environ.get(ENV_PREFIX + "ENV_FILE") or find_dotenv(usecwd=True))

        paths = _env("REGISTRY_PATHS", "")
        return cls(
            registry_paths=[p for p in paths.split(os.pathsep) if p],
            max_data_depth=_env_int("MAX_DATA_DEPTH", DEFAULT_MAX_DATA_DEPTH),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3001),
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
