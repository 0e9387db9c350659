"""
Engine configuration.

All knobs come from environment variables so the engine can be tuned per
deployment without touching the keyword packs.
"""

import os
from typing import Optional
from dataclasses import dataclass


# Relative to the working directory
DEFAULT_LOG_FILE = os.path.join("data", "logs", "interpretations.csv")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass
class EngineConfig:
    """Configuration for the expense interpretation engine."""

    # Pack settings
    pack_dir: Optional[str] = None  # None = packaged resources
    strict_packs: bool = True

    # Plausibility bounds
    max_amount: float = 10000.0  # exclusive
    max_participants: int = 20

    # Interpretation log
    log_file: str = DEFAULT_LOG_FILE

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load config from environment variables."""
        return cls(
            pack_dir=os.getenv("RACHA_PACK_DIR") or None,
            strict_packs=_env_bool("RACHA_STRICT_PACKS", True),
            max_amount=_env_number("RACHA_MAX_AMOUNT", 10000.0, float),
            max_participants=_env_number("RACHA_MAX_PARTICIPANTS", 20, int),
            log_file=os.getenv("RACHA_LOG_FILE") or DEFAULT_LOG_FILE,
        )
