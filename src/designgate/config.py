"""
Configuration — Runtime settings for designgate.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from designgate.memory.storage import DEFAULT_MEMORY_FILENAME


MEMORY_PATH_ENV = "DESIGN_MEMORY_PATH"


def _default_memory_path() -> Path:
    return Path(os.environ.get(MEMORY_PATH_ENV) or Path.cwd() / DEFAULT_MEMORY_FILENAME)


def _parse_level(name: str) -> int:
    level = getattr(logging, name.strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


@dataclass
class DesignGateConfig:
    """Configuration for a designgate process."""
    memory_path: Path = field(default_factory=_default_memory_path)  # Falls back to DESIGN_MEMORY_PATH env var
    log_level: int = logging.INFO
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "DesignGateConfig":
        """Build from environment variables."""
        return cls(
            memory_path=_default_memory_path(),
            log_level=_parse_level(os.environ.get("DESIGNGATE_LOG_LEVEL", "INFO")),
            json_logs=os.environ.get("DESIGNGATE_JSON_LOGS", "").lower() in ("1", "true", "yes"),
        )
