"""JSON file helpers shared by the CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_json_object(path: Path, label: str = "JSON") -> dict[str, Any]:
    """Load a JSON file that must contain an object."""
    if not path.exists():
        raise ValueError(f"{label} file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {label} file: {e}")
    if not isinstance(data, dict):
        raise ValueError(f"{label} file must contain a JSON object")
    return data


def dump_json(data: Any, indent: int = 2) -> str:
    """Serialize JSON output, keeping key order."""
    return json.dumps(data, indent=indent or None, ensure_ascii=False)


def write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON output to a file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_json(data, indent) + "\n", encoding="utf-8")
