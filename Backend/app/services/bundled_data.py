from __future__ import annotations

import yaml
from pathlib import Path
from typing import Any, Dict, List

from app.core.logging import get_logger

logger = get_logger().bind(module="bundled_data")

THIS_FILE = Path(__file__).resolve()
APP_DIR = THIS_FILE.parent.parent  # Backend/app
DATA_DIR = APP_DIR / "data"


def load_dataset(filename: str) -> Dict[str, Any]:
    """
    Load a bundled YAML dataset. Missing or unreadable files yield an empty
    dict so a broken seed file degrades lookups instead of aborting them.
    """
    path = DATA_DIR / filename
    if not path.exists():
        logger.warning("bundled_data_missing", path=str(path))
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("bundled_data_unreadable", path=str(path), error=str(exc))
        return {}
    if not isinstance(data, dict):
        logger.warning("bundled_data_not_a_mapping", path=str(path))
        return {}
    return data


def load_records(filename: str, key: str) -> List[Dict[str, Any]]:
    """Return the list stored under `key`, keeping only mapping entries."""
    items = load_dataset(filename).get(key) or []
    if not isinstance(items, list):
        logger.warning("bundled_data_not_a_list", filename=filename, key=key)
        return []
    return [item for item in items if isinstance(item, dict)]
