import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

# rmsmeter.py lives next to the rmslib package at the project root
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def stereo_wav(tmp_path):
    """A 2-channel float WAV: 0.5 on the left, 0.25 on the right, 1050 frames."""
    path = tmp_path / "stereo.wav"
    data = np.empty((1050, 2), dtype=np.float32)
    data[:, 0] = 0.5
    data[:, 1] = 0.25
    sf.write(str(path), data, 8000, subtype="FLOAT")
    return path


@pytest.fixture
def silent_wav(tmp_path):
    path = tmp_path / "silent.wav"
    sf.write(str(path), np.zeros(400, dtype=np.float32), 8000, subtype="FLOAT")
    return path
