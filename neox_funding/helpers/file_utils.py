"""Small file helpers shared by the readers and the report writer."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_text(path: Path, description: str = "file") -> str:
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading {description} from {path}: {e}")
        raise


def read_json(path: Path, description: str = "JSON file") -> Any:
    content = read_text(path, description)
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing {description} from {path}: {e}")
        raise


def list_directory(path: Path, predicate: Callable[[Path], bool] | None = None) -> list[Path]:
    """Non-recursive, name-sorted listing; unreadable directories yield []."""
    try:
        entries = sorted(p for p in Path(path).iterdir() if p.is_file())
    except OSError as e:
        logger.error(f"Error reading directory {path}: {e}")
        return []
    return [p for p in entries if predicate is None or predicate(p)]


def write_json_atomic(path: Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}_", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
