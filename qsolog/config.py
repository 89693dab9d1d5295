"""Settings: a small JSON file in the user config directory plus env overrides.

JSON shape example:
{ "owner_id": "6f1c...", "page_size": 50, "log_level": "INFO" }

Environment variables win over the file:
- QSOLOG_CONFIG: path of the JSON file itself.
- QSOLOG_OWNER: operator id (UUID) used for every workflow.
- QSOLOG_LOG_LEVEL: logging level name.
"""

from __future__ import annotations

import json
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

APP_NAME = "QSO Log"
CONFIG_ENV_VAR = "QSOLOG_CONFIG"
OWNER_ENV_VAR = "QSOLOG_OWNER"
LOG_LEVEL_ENV_VAR = "QSOLOG_LOG_LEVEL"
CONFIG_FILENAME = "config.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "owner_id": None,
    "page_size": 20,
    "log_level": "WARNING",
}


def config_path() -> Path:
    """Resolve the JSON settings path, honoring QSOLOG_CONFIG."""
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    cfg_dir = Path(user_config_dir(appname=APP_NAME, appauthor=False))
    cfg_dir.mkdir(parents=True, exist_ok=True)
    return cfg_dir / CONFIG_FILENAME


def _read_file(p: Path) -> Dict[str, Any]:
    try:
        if p.exists():
            with p.open("r", encoding="utf-8") as f:
                raw = json.load(f)
                if isinstance(raw, dict):
                    return raw
    except (OSError, json.JSONDecodeError, ValueError, TypeError):
        # Malformed configs fall back to defaults
        pass
    return {}


def _parse_owner(value: Any) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def load_settings() -> Dict[str, Any]:
    """Return defaults overlaid with valid values from the file and environment."""
    data: Dict[str, Any] = dict(DEFAULT_SETTINGS)
    raw = _read_file(config_path())

    owner = _parse_owner(raw.get("owner_id"))
    if owner:
        data["owner_id"] = owner
    page_size = raw.get("page_size")
    if isinstance(page_size, int) and not isinstance(page_size, bool) and page_size > 0:
        data["page_size"] = page_size
    level = raw.get("log_level")
    if isinstance(level, str) and level.strip():
        data["log_level"] = level.strip().upper()

    env_owner = _parse_owner(os.getenv(OWNER_ENV_VAR))
    if env_owner:
        data["owner_id"] = env_owner
    env_level = os.getenv(LOG_LEVEL_ENV_VAR)
    if env_level:
        data["log_level"] = env_level.strip().upper()
    return data


def save_settings(values: Dict[str, Any]) -> Path:
    """Merge `values` into the JSON file and return its path."""
    p = config_path()
    raw = _read_file(p)
    for key, val in values.items():
        raw[key] = str(val) if isinstance(val, uuid.UUID) else val
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(raw, f, indent=2)
    return p


def ensure_owner_id() -> uuid.UUID:
    """Return the configured operator id, generating and saving one on first use."""
    owner = load_settings()["owner_id"]
    if owner:
        return owner
    owner = uuid.uuid4()
    save_settings({"owner_id": owner})
    return owner
