import numpy as np
import pytest
import soundfile as sf

from rmslib.audio import (
    dbfs_offset,
    format_duration,
    linear_to_db,
    probe,
    read_blocks,
    to_wave,
)
from rmslib.config import ConfigError


def test_float_samples_pass_through():
    data = np.array([0.5, -0.25], dtype=np.float32)
    waves = to_wave(data)
    assert waves.dtype == np.float64
    np.testing.assert_array_equal(waves, [0.5, -0.25])


def test_signed_integers_scale_to_full_scale():
    np.testing.assert_allclose(
        to_wave(np.array([-32768, 0, 16384], dtype=np.int16)), [-1.0, 0.0, 0.5]
    )
    np.testing.assert_allclose(to_wave(np.array([2 ** 30], dtype=np.int32)), [0.5])


def test_unsigned_integers_are_offset_binary():
    np.testing.assert_allclose(
        to_wave(np.array([0, 128, 192], dtype=np.uint8)), [-1.0, 0.0, 0.5]
    )


def test_sequences_are_taken_as_waves():
    np.testing.assert_array_equal(to_wave([0, 2, -1]), [0.0, 2.0, -1.0])


def test_non_numeric_arrays_rejected():
    with pytest.raises(TypeError):
        to_wave(np.array([True, False]))
    with pytest.raises(TypeError):
        to_wave(np.array(["a"]))


def test_db_helpers():
    assert linear_to_db(0.0) == float("-inf")
    assert linear_to_db(1.0) == 0.0
    assert dbfs_offset({"dbfs_convention": "aes17"}) == pytest.approx(3.0103)
    assert dbfs_offset({}) == 0.0


def test_format_duration():
    assert format_duration(66150, 44100) == "00:01.500"
    assert format_duration(100, 0) == "00:00.000"


def test_probe_and_blocks(stereo_wav):
    assert probe(str(stereo_wav)) == (2, 8000, 1050)

    blocks = list(read_blocks(str(stereo_wav), 500))
    assert [b.shape for b, _ in blocks] == [(500, 2), (500, 2), (50, 2)]
    assert all(rate == 8000 for _, rate in blocks)
    np.testing.assert_allclose(blocks[-1][0][0], [0.5, 0.25])


def test_unreadable_files_raise_config_error(tmp_path):
    missing = tmp_path / "nope.wav"
    with pytest.raises(ConfigError):
        probe(str(missing))
    with pytest.raises(ConfigError):
        list(read_blocks(str(missing), 128))

    garbage = tmp_path / "garbage.wav"
    garbage.write_bytes(b"not audio at all")
    with pytest.raises(ConfigError):
        probe(str(garbage))


def test_block_size_must_be_positive(stereo_wav):
    with pytest.raises(ConfigError):
        list(read_blocks(str(stereo_wav), 0))


def test_mono_file_blocks_are_two_dimensional(tmp_path):
    path = tmp_path / "mono.wav"
    sf.write(str(path), np.zeros(10, dtype=np.float32), 8000, subtype="FLOAT")
    (block, _), = list(read_blocks(str(path), 16))
    assert block.shape == (10, 1)
