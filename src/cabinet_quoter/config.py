"""Settings, environment flags and logging for the cabinet quoter.

Shop defaults (pricing settings, cart limits, payment terms, shipping
constants, catalog client options) ship as ``resources/app_settings.json``.
A deployment can point ``CABINET_QUOTER_APP_SETTINGS`` at a JSON file whose
keys are merged over the bundled document, so only the values that differ
need to be written down.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

RESOURCE_DIR = Path(__file__).resolve().parent / "resources"
SETTINGS_FILE = RESOURCE_DIR / "app_settings.json"
DEFAULT_VERSION = 1
DEFAULTS_SECTION = "pricing_defaults"

APP_SETTINGS_ENV_VAR = "CABINET_QUOTER_APP_SETTINGS"
STRICT_FORMULAS_ENV_VAR = "CABINET_QUOTER_STRICT_FORMULAS"
CATALOG_URL_ENV_VAR = "CABINET_QUOTER_CATALOG_URL"
CATALOG_KEY_ENV_VAR = "CABINET_QUOTER_CATALOG_KEY"

LOGGER_NAME = "cabinet_quoter"
LOG_FORMAT = "%(levelname)-7s %(name)s: %(message)s"

_FLAG_ON = frozenset({"1", "true", "yes", "on"})
_FLAG_OFF = frozenset({"0", "false", "no", "off"})

_settings_cache: dict[str, Any] | None = None


class ConfigError(RuntimeError):
    """Raised when configuration data cannot be loaded or validated."""


def get_logger(*names: str) -> logging.Logger:
    """Return ``cabinet_quoter`` or a child logger such as ``cabinet_quoter.pricing``."""

    return logging.getLogger(".".join((LOGGER_NAME, *names)))


logger = get_logger()


def configure_logging(level: int = logging.INFO, *, force: bool = False) -> None:
    """Install a stderr handler unless the host application already configured one."""

    root = logging.getLogger()
    if root.handlers and not force:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT, force=force)


def _env_text(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


def _env_flag(name: str, *, default: bool = False) -> bool:
    """Read an on/off switch; numbers count as on when non-zero."""

    text = _env_text(name)
    if text is None:
        return default
    text = text.lower()
    if text in _FLAG_ON:
        return True
    if text in _FLAG_OFF:
        return False
    try:
        return int(text) != 0
    except ValueError:
        return default


@dataclass(frozen=True)
class AppEnvironment:
    """Deployment switches read from ``CABINET_QUOTER_*`` variables."""

    strict_formulas: bool = False
    catalog_url: str | None = None
    catalog_key: str | None = None

    @classmethod
    def from_env(cls) -> "AppEnvironment":
        return cls(
            strict_formulas=_env_flag(STRICT_FORMULAS_ENV_VAR),
            catalog_url=_env_text(CATALOG_URL_ENV_VAR),
            catalog_key=_env_text(CATALOG_KEY_ENV_VAR),
        )


def _read_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed JSON in {path.name}: {exc}") from exc
    if not isinstance(document, Mapping):
        raise ConfigError(f"Configuration root must be an object in {path.name}")
    return dict(document)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _override_path() -> Path | None:
    text = _env_text(APP_SETTINGS_ENV_VAR)
    return Path(text).expanduser() if text else None


def _build_settings() -> dict[str, Any]:
    settings = _read_settings_file(SETTINGS_FILE)
    override_path = _override_path()
    if override_path is None:
        return settings
    if not override_path.exists():
        logger.warning("Override settings path does not exist: %s", override_path)
        return settings
    try:
        override = _read_settings_file(override_path)
    except ConfigError as exc:
        raise ConfigError(f"Failed to load override settings: {exc}") from exc
    logger.debug("Merging settings override from %s", override_path)
    return _deep_merge(settings, override)


def load_app_settings(*, reload: bool = False) -> dict[str, Any]:
    """Return a private copy of the bundled settings with any override applied.

    The merged document is cached; pass ``reload=True`` after changing
    ``CABINET_QUOTER_APP_SETTINGS``.
    """

    global _settings_cache
    if reload or _settings_cache is None:
        _settings_cache = _build_settings()
    return copy.deepcopy(_settings_cache)


def load_named_config(name: str, version: int = DEFAULT_VERSION) -> dict[str, Any]:
    """Return one section of ``pricing_defaults`` (``settings``, ``limits``, ...)."""

    if version != DEFAULT_VERSION:
        raise ConfigError(
            f"Unsupported version requested: {version!r}; expected {DEFAULT_VERSION}"
        )
    defaults = load_app_settings().get(DEFAULTS_SECTION)
    if not isinstance(defaults, Mapping):
        raise ConfigError(f"'{DEFAULTS_SECTION}' section missing from app settings")
    section = defaults.get(name)
    if not isinstance(section, Mapping):
        raise ConfigError(f"Missing configuration section in app settings: {name}")
    return dict(section)


def load_default_settings() -> dict[str, Any]:
    """Global pricing settings used when the catalog does not provide them."""

    return load_named_config("settings")


def load_default_limits() -> dict[str, Any]:
    """Dimension, quantity and price-tolerance limits for carts and configurations."""

    return load_named_config("limits")


def save_named_config(
    data: Mapping[str, Any],
    path: str | Path,
    *,
    version: int = DEFAULT_VERSION,
    indent: int = 2,
) -> Path:
    """Write ``data`` as ``{"version": ..., "data": ...}`` JSON and return the path."""

    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    document = {"version": version, "data": dict(data)}
    destination.write_text(json.dumps(document, indent=indent, sort_keys=True), encoding="utf-8")
    return destination


def describe_runtime_environment() -> dict[str, str]:
    """Return the effective runtime configuration with the catalog key redacted."""

    env = AppEnvironment.from_env()
    override_path = _override_path()
    currency = load_app_settings().get("currency")
    currency_code = currency.get("code", "") if isinstance(currency, Mapping) else ""
    return {
        "strict_formulas": str(env.strict_formulas),
        "catalog_url": env.catalog_url or "",
        "catalog_key": "<redacted>" if env.catalog_key else "",
        "app_settings_override": str(override_path) if override_path else "",
        "currency": str(currency_code),
    }


__all__ = [
    "APP_SETTINGS_ENV_VAR",
    "AppEnvironment",
    "CATALOG_KEY_ENV_VAR",
    "CATALOG_URL_ENV_VAR",
    "ConfigError",
    "DEFAULT_VERSION",
    "DEFAULTS_SECTION",
    "LOGGER_NAME",
    "RESOURCE_DIR",
    "SETTINGS_FILE",
    "STRICT_FORMULAS_ENV_VAR",
    "configure_logging",
    "describe_runtime_environment",
    "get_logger",
    "load_app_settings",
    "load_default_limits",
    "load_default_settings",
    "load_named_config",
    "logger",
    "save_named_config",
]
