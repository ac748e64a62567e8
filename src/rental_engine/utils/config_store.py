"""JSON config file split into named sections."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_config_data(config_path: Path) -> dict[str, Any]:
    """Whole config document; empty when missing or unreadable."""
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config_section(config_path: Path, key: str) -> dict[str, Any]:
    section = load_config_data(config_path).get(key)
    return section if isinstance(section, dict) else {}


def save_config_section(config_path: Path, key: str, section: dict[str, Any]) -> None:
    """Replace one section and leave the others as they are."""
    payload = load_config_data(config_path)
    payload[key] = section
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
