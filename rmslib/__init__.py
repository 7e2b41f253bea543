from ._version import __version__
from .models import BlockResult, Settings, WindowSize
from .window import Window
from .engine import BufferShapeError, RmsEngine
from .audio import to_wave, linear_to_db
from .config import (
    default_config,
    merge_configs,
    validate_config,
    validate_param_values,
    window_from_config,
    load_preset,
    save_preset,
    ConfigError,
    ConfigFieldError,
    ParamSpec,
    ENGINE_PARAMS,
)
from .stream import meter_array, meter_file
from .reports import summarize, render_text, save_json

__all__ = [
    "__version__",
    "BlockResult",
    "Settings",
    "WindowSize",
    "Window",
    "RmsEngine",
    "BufferShapeError",
    "to_wave",
    "linear_to_db",
    "default_config",
    "merge_configs",
    "validate_config",
    "validate_param_values",
    "window_from_config",
    "load_preset",
    "save_preset",
    "ConfigError",
    "ConfigFieldError",
    "ParamSpec",
    "ENGINE_PARAMS",
    "meter_array",
    "meter_file",
    "summarize",
    "render_text",
    "save_json",
]
