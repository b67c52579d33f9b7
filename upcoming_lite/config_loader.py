"""upcoming_lite.config_loader

Config loader for upcoming_lite.

- Reads YAML with PyYAML (JSON files load too, JSON being a YAML subset).
- Applies ``UPCOMING_LITE_*`` environment overrides, optionally seeded from a .env file.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from upcoming_lite.calendar.lite_datetime_utils import MINUTE_PRECISION, SECOND_PRECISION
from upcoming_lite.calendar.lite_rrule_expander import CLAMP_POLICY, ROLLOVER_POLICY
from upcoming_lite.core.timezone_utils import UTC_ZONE, normalize_timezone_name

logger = logging.getLogger(__name__)

ENV_PREFIX = "UPCOMING_LITE_"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Config:
    """Typed configuration for upcoming_lite.

    Fields:
        limit: maximum number of occurrences returned
        weeks_ahead: recurrence expansion window in weeks
        default_timezone: zone whose midnight starts the window
        default_title: title used for events without SUMMARY
        max_iterations: recurrence safety cap per event
        weekly_scan_days: BYDAY scan horizon in days
        monthly_day_policy: "rollover" or "clamp" for short months
        match_precision: "minute" or "second" for EXDATE / RECURRENCE-ID matching
        honor_weekly_interval: apply INTERVAL to weekly BYDAY rules
        decode_escaped_backslash: unescape ``\\\\`` in text values
        use_calendar_timezone: use X-WR-TIMEZONE for events without TZID
        log_level: logging level name
    """

    limit: int = 10
    weeks_ahead: int = 12
    default_timezone: str = UTC_ZONE
    default_title: str = "Untitled"
    max_iterations: int = 100
    weekly_scan_days: int = 14
    monthly_day_policy: str = ROLLOVER_POLICY
    match_precision: str = MINUTE_PRECISION
    honor_weekly_interval: bool = False
    decode_escaped_backslash: bool = True
    use_calendar_timezone: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int, booleans accept the usual string
        spellings, and out-of-range or unknown values fall back to defaults with a
        logged warning.
        """
        if data is None:
            data = {}
        defaults = cls()

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

        def _coerce_int(key: str, minimum: int) -> int:
            default = getattr(defaults, key)
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("Config %s=%d below minimum %d; using default", key, value, minimum)
                return default
            return value

        def _coerce_bool(key: str) -> bool:
            raw = data.get(key, getattr(defaults, key))
            if isinstance(raw, str):
                return raw.strip().lower() in _TRUTHY
            return bool(raw)

        def _coerce_choice(key: str, choices: tuple[str, ...]) -> str:
            default = getattr(defaults, key)
            raw = str(data.get(key, default)).strip().lower()
            if raw not in choices:
                logger.warning("Config %s=%r not one of %s; using %r", key, raw, choices, default)
                return default
            return raw

        default_timezone = str(data.get("default_timezone") or UTC_ZONE)
        if default_timezone != UTC_ZONE and normalize_timezone_name(default_timezone) is None:
            logger.warning("Config default_timezone=%r unknown; using UTC", default_timezone)
            default_timezone = UTC_ZONE

        return cls(
            limit=_coerce_int("limit", 0),
            weeks_ahead=_coerce_int("weeks_ahead", 0),
            default_timezone=default_timezone,
            default_title=str(data.get("default_title", defaults.default_title)),
            max_iterations=_coerce_int("max_iterations", 1),
            weekly_scan_days=_coerce_int("weekly_scan_days", 1),
            monthly_day_policy=_coerce_choice(
                "monthly_day_policy", (ROLLOVER_POLICY, CLAMP_POLICY)
            ),
            match_precision=_coerce_choice("match_precision", (MINUTE_PRECISION, SECOND_PRECISION)),
            honor_weekly_interval=_coerce_bool("honor_weekly_interval"),
            decode_escaped_backslash=_coerce_bool("decode_escaped_backslash"),
            use_calendar_timezone=_coerce_bool("use_calendar_timezone"),
            log_level=str(data.get("log_level") or "INFO").upper(),
        )


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Skips empty lines and comments, strips quotes from values. Missing or
    unreadable files yield an empty dict.
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")
    return result


def load_env_file(path: Path) -> list[str]:
    """Load a .env file into os.environ without overriding existing variables.

    Returns:
        Keys that were set from the file
    """
    set_keys = []
    for key, val in parse_env_file(path).items():
        if key not in os.environ:
            os.environ[key] = val
            set_keys.append(key)

    if set_keys:
        logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
    return set_keys


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, str]:
    """Collect ``UPCOMING_LITE_<FIELD>`` variables as config keys."""
    environ = dict(os.environ) if environ is None else environ
    names = {f.name for f in fields(Config)}
    overrides = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX) :].lower()
        if name in names:
            overrides[name] = value
    return overrides


def _load_yaml(path: Path) -> Any:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Config file {path} is not valid YAML: {e}") from e
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | None = None, env_file: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file plus environment overrides.

    Args:
        path: Optional path to the config file. Defaults to ./upcoming_lite.yaml.
        env_file: Optional .env file loaded before reading the environment

    Returns:
        Config dataclass instance with values from file, environment or defaults.

    Behavior:
    - If file is missing: defaults (plus environment overrides).
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "upcoming_lite.yaml"
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if p.exists():
        loaded = _load_yaml(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        raw.update(loaded)
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    if env_file:
        load_env_file(Path(env_file))
    raw.update(env_overrides())

    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
