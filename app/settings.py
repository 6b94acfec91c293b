from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
SETTINGS_FILE = DATA_DIR / "settings.json"
LOG_FILE = DATA_DIR / "demand_board.log"
API_URL_ENV = "DEMAND_API_URL"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientSettings:
    base_url: str = "http://localhost:8080"
    read_timeout: float = 15.0
    default_seats: int = 5
    default_start: str = "09:00"
    default_end: str = "18:00"
    log_level: str = "INFO"


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    known = {field.name: field.type for field in fields(ClientSettings)}
    result: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in known or value is None:
            continue
        if key == "read_timeout":
            value = float(value)
        elif key == "default_seats":
            value = int(value)
        else:
            value = str(value)
        result[key] = value
    return result


def load_settings(path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> ClientSettings:
    """Read settings.json (if any) and apply the environment override for the API URL."""
    settings_path = path or SETTINGS_FILE
    environ = os.environ if environ is None else environ
    settings = ClientSettings()
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                settings = replace(settings, **_coerce(data))
        except (ValueError, TypeError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable settings file %s", settings_path)
    override = (environ.get(API_URL_ENV) or "").strip()
    if override:
        settings = replace(settings, base_url=override)
    return replace(settings, base_url=settings.base_url.rstrip("/"))
