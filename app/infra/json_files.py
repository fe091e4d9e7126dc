from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)


def load_json(path: Path, fallback: Any) -> Any:
    """Read a JSON document; missing, empty or unparseable files yield ``fallback``."""
    if not path.exists():
        return fallback
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        LOGGER.exception("Failed to read %s; using fallback", path)
        return fallback
    if not raw.strip():
        return fallback
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.exception("Corrupt JSON in %s; using fallback", path)
        return fallback


def save_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=False, indent=2)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)


def snapshot_file(path: Path, backup_dir: Path, *, keep: int, now: datetime) -> Path | None:
    """Copy ``path`` into ``backup_dir`` with a timestamp suffix and prune old copies."""
    if not path.exists():
        return None
    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_dir / f"{path.stem}-{now.strftime('%Y%m%d-%H%M%S')}{path.suffix}"
    shutil.copy2(path, target)
    copies = sorted(backup_dir.glob(f"{path.stem}-*{path.suffix}"))
    for stale in copies[:-keep] if keep > 0 else []:
        try:
            stale.unlink()
        except OSError:
            LOGGER.warning("Failed to prune backup %s", stale)
    return target
