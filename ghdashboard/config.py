"""Resolution and validation of the dashboard settings."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from datetime import timedelta
from fractions import Fraction
from pathlib import Path
from typing import Any

from .models import Config

ENV_PREFIX = "GITHUB_DASHBOARD"

DEFAULTS: dict[str, Any] = {
    "user": "",
    "org": "",
    "output": "./dashboard",
    "token": "",
    "cache-dir": "./.cache",
    "cache-ttl": "1h",
    "verbose": False,
}

_UNITS = {
    "ns": Fraction(1, 10**9),
    "us": Fraction(1, 10**6),
    "µs": Fraction(1, 10**6),
    "μs": Fraction(1, 10**6),
    "ms": Fraction(1, 10**3),
    "s": Fraction(1),
    "m": Fraction(60),
    "h": Fraction(3600),
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


class ConfigError(Exception):
    """The settings are invalid."""


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1h``, ``30m`` or ``1h30m5.5s``."""
    rest = text
    negative = False
    if rest[:1] in ("+", "-") and rest:
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += Fraction(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if negative:
        total = -total
    return timedelta(microseconds=round(total * 1_000_000))


def _env_name(key: str) -> str:
    return f"{ENV_PREFIX}_{key.upper()}"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value) in _TRUE


def resolve_settings(
    flags: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Merge explicit flags, environment variables and defaults.

    Flags given explicitly win over ``GITHUB_DASHBOARD_*`` variables, which win
    over the defaults. ``GITHUB_TOKEN`` fills the token when nothing else does.
    """
    flags = flags or {}
    environ = os.environ if environ is None else environ

    settings: dict[str, Any] = {}
    for key, default in DEFAULTS.items():
        flag = flags.get(key)
        env_value = environ.get(_env_name(key), "")
        if flag is not None:
            value = flag
        elif env_value:
            value = env_value
        else:
            value = default
        settings[key] = _to_bool(value) if key == "verbose" else value

    fallback_token = environ.get("GITHUB_TOKEN", "")
    if fallback_token and not settings["token"]:
        settings["token"] = fallback_token
    return settings


def build_config(settings: Mapping[str, Any]) -> Config:
    """Validate resolved settings and create the directories they name."""
    try:
        cache_ttl = parse_duration(str(settings.get("cache-ttl", "")))
    except ValueError:
        raise ConfigError(
            "invalid cache-ttl format: use a valid duration string (e.g., 1h, 30m)"
        ) from None

    config = Config(
        user=str(settings.get("user") or ""),
        organization=str(settings.get("org") or ""),
        output_dir=str(settings.get("output") or ""),
        github_token=str(settings.get("token") or ""),
        cache_dir=str(settings.get("cache-dir") or ""),
        cache_ttl=cache_ttl,
        verbose=_to_bool(settings.get("verbose", False)),
    )

    if not config.user and not config.organization:
        raise ConfigError("either user or organization must be specified")
    if config.user and config.organization:
        raise ConfigError("only one of user or organization can be specified")

    output = Path(config.output_dir)
    output.mkdir(parents=True, exist_ok=True)
    (output / "repositories").mkdir(parents=True, exist_ok=True)
    Path(config.cache_dir).mkdir(parents=True, exist_ok=True)
    return config