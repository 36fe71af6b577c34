"""Configuration surface: defaults, optional YAML file, env overrides, CLI flags."""

from __future__ import annotations

import logging
import os
from argparse import Namespace
from dataclasses import dataclass, field, fields

import yaml

log = logging.getLogger("bwmon.config")

X_UNITS = ["read", "sec", "min", "hour", "day"]
Y_UNITS = ["dynamic", "byte", "kilo", "mega", "giga", "tera"]

ENV_OVERRIDES = {
    "BWMON_READ_INTERVAL": "read_interval",
    "BWMON_SLEEP_TIME": "sleep_time",
    "BWMON_POLICY": "policy",
    "BWMON_LIFETIME": "lifetime",
    "BWMON_INPUT": "inputs",
    "BWMON_OUTPUT": "outputs",
    "BWMON_LOG_LEVEL": "log_level",
}


@dataclass
class Settings:
    read_interval: float = 1.0
    sleep_time: float = 0.02
    policy: str = ""
    lifetime: int = 10
    show_only_running: bool = True
    x_unit: str = "sec"
    y_unit: str = "dynamic"
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=lambda: ["ascii"])
    log_level: str = "WARNING"


def _split_names(value) -> list[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def _positive_float(key: str, value, default: float) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        log.warning("Invalid %s %r, using default %s", key, value, default)
        return default
    if f <= 0:
        log.warning("%s must be positive (got %r), using default %s", key, value, default)
        return default
    return f


def _positive_int(key: str, value, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        log.warning("Invalid %s %r, using default %s", key, value, default)
        return default
    if n <= 0:
        log.warning("%s must be positive (got %r), using default %s", key, value, default)
        return default
    return n


def _choice(key: str, value, choices: list[str], default: str) -> str:
    value = str(value).lower()
    if value not in choices:
        log.warning("Unknown %s %r (expected one of %s), using default %s",
                    key, value, ", ".join(choices), default)
        return default
    return value


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _bool(key: str, value, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    log.warning("Invalid %s %r, using default %s", key, value, default)
    return default


def apply(settings: Settings, raw: dict) -> Settings:
    """Merge a flat mapping into settings, falling back on malformed values."""
    defaults = Settings()
    known = {f.name for f in fields(Settings)}

    for key, value in raw.items():
        if key not in known:
            log.warning("Unknown config key %r ignored", key)
            continue
        if value is None:
            continue
        if key in ("read_interval", "sleep_time"):
            value = _positive_float(key, value, getattr(defaults, key))
        elif key == "lifetime":
            value = _positive_int(key, value, defaults.lifetime)
        elif key == "x_unit":
            value = _choice(key, value, X_UNITS, defaults.x_unit)
        elif key == "y_unit":
            value = _choice(key, value, Y_UNITS, defaults.y_unit)
        elif key in ("inputs", "outputs"):
            value = _split_names(value)
        elif key == "show_only_running":
            value = _bool(key, value, defaults.show_only_running)
        else:
            value = str(value)
        setattr(settings, key, value)

    return settings


def load_config(path: str | None) -> dict:
    """Read a YAML config file into a flat dict, plus environment overrides."""
    raw: dict = {}
    if path:
        with open(path) as f:
            doc = yaml.safe_load(f)
        if isinstance(doc, dict):
            raw.update(doc)
        elif doc is not None:
            log.warning("Config %s is not a mapping, ignored", path)

    for env_key, name in ENV_OVERRIDES.items():
        val = os.environ.get(env_key)
        if val is None:
            continue
        raw[name] = val
        log.debug("Env override: %s = %s", name, val)

    return raw


def settings_from_args(args: Namespace) -> Settings:
    """Build Settings from config file and env, then layer CLI flags on top."""
    settings = apply(Settings(), load_config(args.config))

    cli = {
        "read_interval": args.read_interval,
        "sleep_time": args.sleep_time,
        "policy": args.policy,
        "lifetime": args.lifetime,
        "x_unit": args.x_unit,
        "y_unit": args.y_unit,
        "inputs": args.input,
        "outputs": args.output,
        "log_level": args.log_level,
    }
    if args.show_all:
        cli["show_only_running"] = False
    return apply(settings, {k: v for k, v in cli.items() if v is not None})
