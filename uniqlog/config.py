"""Configuration system for uniqlog.

Thresholds and settings can be overridden via environment variables
or a JSON config file at ~/.uniqlog/config.json. Values that cannot be
converted to the type of their default, or fall outside the allowed
range, are ignored with a warning and the default stays in effect.
"""

import json
import logging
import os

_log = logging.getLogger("uniqlog.config")

_DEFAULTS = {
    # when two lines reach this value we start to track them back
    "first_similarity_threshold": 0.9,
    # what the following lines of a block have to reach to keep it going
    "keep_similarity_threshold": 0.49,
    "debug": False,
    # how many lines we track back (history ring capacity)
    "max_lines_track": 50,
    # seconds of silence before a progress notice while riding a block
    "time_without_output": 2.0,
    "color": True,
    "stats": False,
}

# inclusive bounds, None = unbounded
_RANGES = {
    "first_similarity_threshold": (0.0, 1.0),
    "keep_similarity_threshold": (0.0, 1.0),
    "max_lines_track": (1, None),
    "time_without_output": (0.0, None),
}

ENV_PREFIX = "UNIQLOG_"

_config: dict | None = None


def _coerce(key: str, value):
    """Convert ``value`` to the type of the default for ``key``.

    Returns None when the value does not fit.
    """
    default_val = _DEFAULTS[key]
    if isinstance(default_val, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes")
        return None
    if isinstance(value, bool):
        return None
    try:
        if isinstance(default_val, int):
            if isinstance(value, float) and not value.is_integer():
                return None
            value = int(value)
        elif isinstance(default_val, float):
            value = float(value)
    except (TypeError, ValueError):
        return None
    low, high = _RANGES.get(key, (None, None))
    # written so that NaN fails both checks
    if low is not None and not value >= low:
        return None
    if high is not None and not value <= high:
        return None
    return value


def _overlay(config: dict, key: str, value, source: str):
    coerced = _coerce(key, value)
    if coerced is None:
        _log.warning("Ignoring %s=%r from %s, using %r", key, value, source, config[key])
        return
    config[key] = coerced


def _load_config() -> dict:
    """Load config from file, then overlay env vars."""
    config = dict(_DEFAULTS)

    from uniqlog import data_dir  # noqa: PLC0415

    config_path = os.path.join(data_dir(), "config.json")
    if os.path.exists(config_path):
        try:
            with open(config_path) as f:
                user_config = json.load(f)
        except (json.JSONDecodeError, OSError):
            _log.warning("Ignoring unreadable config file %s", config_path)
            user_config = {}
        if isinstance(user_config, dict):
            for key, value in user_config.items():
                if key in _DEFAULTS:
                    _overlay(config, key, value, config_path)

    for key in _DEFAULTS:
        env_key = ENV_PREFIX + key.upper()
        env_val = os.environ.get(env_key)
        if env_val is not None:
            _overlay(config, key, env_val, env_key)

    return config


def get(key: str):
    """Get a config value."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = _load_config()
    return _config.get(key, _DEFAULTS.get(key))


def reload():
    """Force reload of configuration."""
    global _config  # noqa: PLW0603
    _config = None
