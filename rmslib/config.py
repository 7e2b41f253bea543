from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

PRESET_SCHEMA_VERSION = "1.0"

# Keys that only make sense on the command line and never go into presets
_INTERNAL_KEYS = {"json", "every", "verbose"}


class ConfigError(Exception):
    """Invalid engine settings, window size, preset or input file."""


@dataclass
class ConfigFieldError:
    """A single validation error for one configuration field.

    Attributes:
        key:     The config key that failed validation.
        value:   The offending value.
        message: Human-readable explanation of what is wrong.
    """
    key: str
    value: Any
    message: str


@dataclass(frozen=True)
class ParamSpec:
    """Declarative specification for a single configuration parameter."""
    key: str
    type: type | tuple              # expected Python type(s)
    default: Any
    label: str                       # short label used in messages and --help
    description: str = ""
    min: float | int | None = None   # inclusive lower bound
    choices: list | None = None      # allowed string values
    nullable: bool = False           # True if None is valid


ENGINE_PARAMS: list[ParamSpec] = [
    ParamSpec(
        key="window_ms", type=(int, float), default=400.0, min=0.0,
        label="RMS window size (ms)",
        description=(
            "Length of the sliding RMS window in milliseconds. Re-evaluated "
            "against the stream's sample rate on every buffer."
        ),
    ),
    ParamSpec(
        key="window_samples", type=int, default=None, min=0, nullable=True,
        label="RMS window size (samples)",
        description=(
            "Fixed window length in samples. When set, overrides window_ms "
            "and ignores the sample rate."
        ),
    ),
    ParamSpec(
        key="block_frames", type=int, default=512, min=1,
        label="Block size (frames)",
        description="Number of frames handed to the engine per update.",
    ),
    ParamSpec(
        key="dbfs_convention", type=str, default="standard",
        choices=["standard", "aes17"],
        label="dBFS convention",
        description=(
            "Standard: 0 dBFS = full-scale digital. "
            "AES17: 0 dBFS = RMS of a full-scale sine (+3.01 dB offset)."
        ),
    ),
]


def default_config() -> dict[str, Any]:
    """Returns the built-in default configuration."""
    return {p.key: p.default for p in ENGINE_PARAMS}


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge config dicts left-to-right; later values override earlier ones."""
    result: dict[str, Any] = {}
    for cfg in configs:
        result.update(cfg)
    return result


def load_preset(path: str) -> dict[str, Any]:
    """Read the engine settings stored in a JSON preset.

    Bookkeeping keys (``schema_version``, ``_description``) are stripped.
    Raises :class:`ConfigError` for missing, unreadable or malformed files.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Preset file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"Preset {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read preset {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Preset {path} must hold a JSON object, not {type(data).__name__}")
    return {k: v for k, v in data.items() if k != "schema_version" and not k.startswith("_")}


def save_preset(config: dict[str, Any], path: str, *, description: str | None = None) -> None:
    """
    Save a config dict as a JSON preset file.
    Only values that differ from the defaults are written.
    """
    preset: dict[str, Any] = {"schema_version": PRESET_SCHEMA_VERSION}
    if description:
        preset["_description"] = description

    defaults = default_config()
    for k, v in config.items():
        if k in _INTERNAL_KEYS or k.startswith("_"):
            continue
        if k in defaults and defaults[k] == v:
            continue
        preset[k] = v

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(preset, f, indent=4, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Validation  (ParamSpec-driven)
# ---------------------------------------------------------------------------

def _check_value(spec: ParamSpec, value: Any) -> str | None:
    """Return an error message for *value*, or None when it is valid."""
    if value is None:
        return None if spec.nullable else f"{spec.label} must not be empty."

    # bool is an int subclass; only accept it where bool is asked for
    expected = spec.type
    if expected is not bool and isinstance(value, bool):
        return f"{spec.label} must be {_type_label(expected)}, got boolean."
    if not isinstance(value, expected):
        return (
            f"{spec.label} must be {_type_label(expected)}, "
            f"got {type(value).__name__}."
        )

    if spec.choices is not None and value not in spec.choices:
        opts = ", ".join(repr(c) for c in spec.choices)
        return f"{spec.label} must be one of {opts}."

    if isinstance(value, (int, float)) and spec.min is not None and value < spec.min:
        return f"{spec.label} must be at least {spec.min}."
    return None


def validate_param_values(
    params: list[ParamSpec],
    values: dict[str, Any],
) -> list[ConfigFieldError]:
    """Validate *values* against a list of :class:`ParamSpec` definitions.

    Returns a (possibly empty) list of :class:`ConfigFieldError` objects.
    Only keys present in *values* are checked; missing keys are not errors
    (they will receive their default).
    """
    errors: list[ConfigFieldError] = []
    for spec in params:
        if spec.key not in values:
            continue
        message = _check_value(spec, values[spec.key])
        if message is not None:
            errors.append(ConfigFieldError(spec.key, values[spec.key], message))
    return errors


def validate_config(config: dict[str, Any]) -> None:
    """Validate a flat config dict.

    Raises :class:`ConfigError` listing every invalid field.
    """
    errors = validate_param_values(ENGINE_PARAMS, config)
    if errors:
        lines = [e.message for e in errors]
        raise ConfigError(
            "Configuration has invalid values:\n  • " + "\n  • ".join(lines)
        )


def window_from_config(config: dict[str, Any]):
    """Build the :class:`~rmslib.models.WindowSize` described by *config*.

    ``window_samples`` takes precedence over ``window_ms``.
    """
    from .models import WindowSize

    samples = config.get("window_samples")
    if samples is not None:
        return WindowSize.from_samples(samples)
    return WindowSize.from_ms(config.get("window_ms", 400.0))


def _type_label(t) -> str:
    """Human-readable label for an expected type or tuple of types."""
    if isinstance(t, tuple):
        return " or ".join(x.__name__ for x in t)
    return t.__name__
