import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from .datatypes import ItemKind
from .errors import ConfigError

logger = logging.getLogger(__name__)

CFG_PATH = Path(__file__).parent / 'data' / 'budget_config.yaml'

REQUIRED_KEYS = {
    'horizons': ('bill_months', 'income_months'),
    'urgency': ('due_soon_days',),
    'storage': ('path',),
}

_config_cache: Dict[Path, Dict[str, Any]] = {}


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load (and cache) the YAML configuration, defaulting to the packaged file."""
    config_path = Path(path) if path is not None else CFG_PATH
    if config_path in _config_cache:
        return _config_cache[config_path]

    if not config_path.exists():
        raise FileNotFoundError(f"Budget config not found at {config_path}")

    logger.debug(f"Loading budget config from {config_path}")
    config = yaml.safe_load(config_path.read_text()) or {}

    for section, keys in REQUIRED_KEYS.items():
        body = config.get(section)
        if not isinstance(body, dict):
            raise ConfigError(f"{config_path}: missing '{section}' section")
        missing = [k for k in keys if k not in body]
        if missing:
            raise ConfigError(f"{config_path}: '{section}' is missing {', '.join(missing)}")

    logger.info(f"Loaded budget configuration (version {config.get('metadata', {}).get('config_version', 'unknown')})")
    _config_cache[config_path] = config
    return config


def clear_config_cache() -> None:
    _config_cache.clear()


def horizons_from_config(config: Dict[str, Any]) -> Dict[ItemKind, int]:
    return {
        ItemKind.BILL: int(config['horizons']['bill_months']),
        ItemKind.INCOME: int(config['horizons']['income_months']),
    }


def due_soon_days(config: Dict[str, Any]) -> int:
    return int(config['urgency']['due_soon_days'])
