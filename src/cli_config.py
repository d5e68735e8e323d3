"""User configuration loading and logging setup for the CLI.

The YAML configuration (``<home>/config.yml`` or ``--config``) overrides the
defaults held on ``Constants``. Only known keys are applied; unknown keys are
logged and ignored.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from common.logging_utils import configure_logging
from common.paths import PathsProvider
from constants import Constants

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _as_list(value: Any):
    if value is None:
        return None
    if isinstance(value, str):
        return [p for p in value.split(os.pathsep) if p]
    return [str(p) for p in value]


# config key -> (Constants attribute, converter)
_KNOWN_KEYS = {
    "index_url": ("INDEX_URL", str),
    "cache_ttl_days": ("CACHE_TTL_SEC", lambda v: int(float(v) * _SECONDS_PER_DAY)),
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "http_retry_max": ("HTTP_RETRY_MAX", int),
    "probe_paths": ("PROBE_PATHS", _as_list),
    "walk_up": ("WALK_UP", _as_bool),
    "version_probe_timeout": ("VERSION_PROBE_TIMEOUT", float),
}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the YAML configuration mapping; a missing or invalid file yields ``{}``."""
    if not config_path or not os.path.isfile(config_path):
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.warning("Ignoring invalid config file %s: %s", config_path, exc)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", config_path)
        return {}
    return data


def apply_config(data: Dict[str, Any]) -> None:
    """Apply known configuration keys onto ``Constants``."""
    for key, value in data.items():
        if key not in _KNOWN_KEYS:
            logger.warning("Unknown configuration key %r ignored", key)
            continue
        attribute, convert = _KNOWN_KEYS[key]
        try:
            setattr(Constants, attribute, convert(value))
        except (TypeError, ValueError) as exc:
            logger.warning("Invalid value %r for configuration key %r: %s", value, key, exc)


def load_user_config(args: Any, paths: Optional[PathsProvider] = None) -> Optional[str]:
    """Load ``--config`` or the default config file and apply it.

    Returns:
        The path that was loaded, or None.
    """
    paths = paths or PathsProvider()
    explicit = getattr(args, "CONFIG", None)
    config_path = explicit or paths.config_file
    if explicit and not os.path.isfile(explicit):
        logger.warning("Config file not found: %s", explicit)
        return None
    data = load_config_file(config_path)
    if not data:
        return None
    apply_config(data)
    logger.debug("Loaded configuration from %s", config_path)
    return config_path


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)
