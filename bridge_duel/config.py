# bridge_duel/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()

DEFAULT_TRICK_PAUSE = 1.5
DEFAULT_RESULTS_DIR = Path(__file__).resolve().parent / "results"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime settings read from the environment.

    trick_pause: seconds a completed trick stays on the table before it is
                 resolved (BRIDGE_DUEL_TRICK_PAUSE).
    results_dir: where simulator CSVs and plots go (BRIDGE_DUEL_RESULTS_DIR).
    log_level:   default logging level for the CLI (BRIDGE_DUEL_LOG_LEVEL).
    """
    trick_pause: float = DEFAULT_TRICK_PAUSE
    results_dir: Path = DEFAULT_RESULTS_DIR
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        results_dir: Optional[str] = os.getenv("BRIDGE_DUEL_RESULTS_DIR")
        trick_pause = _float_env("BRIDGE_DUEL_TRICK_PAUSE", DEFAULT_TRICK_PAUSE)
        if trick_pause < 0:
            raise ValueError("BRIDGE_DUEL_TRICK_PAUSE must not be negative")
        return cls(
            trick_pause=trick_pause,
            results_dir=Path(results_dir) if results_dir else DEFAULT_RESULTS_DIR,
            log_level=os.getenv("BRIDGE_DUEL_LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.from_env()
