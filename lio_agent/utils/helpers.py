"""Path and clock helpers shared across modules."""

import os
from datetime import datetime
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Active data directory; `LIO_DATA_DIR` overrides the default `~/.lio-agent`."""
    override = os.environ.get("LIO_DATA_DIR", "").strip()
    if override:
        return ensure_dir(Path(override).expanduser())
    return ensure_dir(Path.home() / ".lio-agent")


def now_iso() -> str:
    return datetime.now().isoformat()
