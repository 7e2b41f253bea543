import json

import numpy as np
import pytest

from rmslib.config import (
    ConfigError,
    ENGINE_PARAMS,
    default_config,
    load_preset,
    merge_configs,
    save_preset,
    validate_config,
    validate_param_values,
    window_from_config,
)
from rmslib.models import WindowSize


def test_defaults_are_valid():
    cfg = default_config()
    validate_config(cfg)
    assert cfg["window_ms"] == 400.0
    assert cfg["window_samples"] is None
    assert cfg["block_frames"] == 512


def test_merge_later_wins():
    merged = merge_configs(default_config(), {"block_frames": 256}, {"block_frames": 128})
    assert merged["block_frames"] == 128
    assert merged["window_ms"] == 400.0


@pytest.mark.parametrize("key,value", [
    ("window_ms", -1.0),
    ("window_ms", "400"),
    ("window_samples", -5),
    ("window_samples", 2.5),
    ("block_frames", 0),
    ("block_frames", True),
    ("dbfs_convention", "loud"),
])
def test_invalid_values_are_reported(key, value):
    errors = validate_param_values(ENGINE_PARAMS, {key: value})
    assert len(errors) == 1
    assert errors[0].key == key
    with pytest.raises(ConfigError):
        validate_config({key: value})


def test_missing_keys_are_not_errors():
    assert validate_param_values(ENGINE_PARAMS, {}) == []


def test_nullable_only_where_declared():
    assert validate_param_values(ENGINE_PARAMS, {"window_samples": None}) == []
    errors = validate_param_values(ENGINE_PARAMS, {"window_ms": None})
    assert "must not be empty" in errors[0].message


def test_window_from_config_prefers_samples():
    assert window_from_config(default_config()) == WindowSize.from_ms(400.0)
    cfg = merge_configs(default_config(), {"window_samples": 64})
    assert window_from_config(cfg) == WindowSize.from_samples(64)


def test_preset_keeps_only_changed_values(tmp_path):
    path = tmp_path / "presets" / "fast.json"
    cfg = merge_configs(default_config(), {"window_ms": 50.0, "json": "out.json"})
    save_preset(cfg, str(path), description="fast meter")

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["schema_version"] == "1.0"
    assert raw["_description"] == "fast meter"
    assert "block_frames" not in raw
    assert "json" not in raw

    assert load_preset(str(path)) == {"window_ms": 50.0}


def test_load_preset_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_preset(str(tmp_path / "missing.json"))

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_preset(str(bad))

    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_preset(str(listing))


class TestWindowSize:

    def test_needs_exactly_one_field(self):
        with pytest.raises(ConfigError):
            WindowSize()
        with pytest.raises(ConfigError):
            WindowSize(samples=4, ms=10.0)

    @pytest.mark.parametrize("kwargs", [
        {"samples": -1},
        {"samples": 2.0},
        {"samples": True},
        {"samples": np.float64(4.0)},
        {"ms": -0.5},
        {"ms": float("nan")},
        {"ms": "10"},
    ])
    def test_rejects_bad_values(self, kwargs):
        with pytest.raises(ConfigError):
            WindowSize(**kwargs)

    def test_numpy_integer_sample_count(self):
        size = WindowSize.from_samples(np.int64(4))
        assert size.samples == 4
        assert type(size.samples) is int
        assert size.resolve() == 4

    def test_sample_count_ignores_rate(self):
        size = WindowSize.from_samples(100)
        assert not size.is_time_based
        assert size.resolve() == 100
        assert size.resolve(48000) == 100

    def test_duration_resolves_against_rate(self):
        size = WindowSize.from_ms(10)
        assert size.is_time_based
        assert size.resolve(44100) == 441
        assert size.resolve(48000.0) == 480

    def test_duration_rounds_half_away_from_zero(self):
        assert WindowSize.from_ms(1).resolve(1500) == 2
        assert WindowSize.from_ms(1).resolve(2500) == 3
        assert WindowSize.from_ms(1).resolve(1400) == 1

    @pytest.mark.parametrize("rate", [None, 0, -44100])
    def test_duration_needs_positive_rate(self, rate):
        with pytest.raises(ConfigError):
            WindowSize.from_ms(10).resolve(rate)
