# bridge_duel/paths.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config import settings

# Simulator CSVs and summary plots land here (BRIDGE_DUEL_RESULTS_DIR).
RESULTS_DIR = settings.results_dir


def ensure_results_dir(base: Optional[Path] = None) -> Path:
    results_dir = base or RESULTS_DIR
    results_dir.mkdir(parents=True, exist_ok=True)
    return results_dir


def resolve_results_path(path_like: str | Path, base: Optional[Path] = None) -> Path:
    """
    Where the simulator should write `path_like`.

    A bare file name such as "bridge_duel_results.csv" goes into the results
    directory (created on demand); an absolute path is used as given.
    """
    path = Path(path_like)
    if path.is_absolute():
        return path
    return ensure_results_dir(base) / path
