import numpy as np
import pytest

from seedopt.errors import ConfigurationError
from seedopt.noise import NoiseGenerator, GaussianNoise, TruncatedNormalNoise, NullNoise, philox_key


def test_same_key_same_noise():
    a = NoiseGenerator(0.003)((3, 4), seed=7, generation=2)
    b = NoiseGenerator(0.003)((3, 4), seed=7, generation=2)
    assert a.dtype == np.float32
    assert a.shape == (3, 4)
    assert np.array_equal(a, b), "Identical (generation, seed) must give bit-identical noise"


def test_different_keys_differ():
    noise = NoiseGenerator(1.0)
    base = noise((16,), seed=1, generation=1)
    assert not np.array_equal(base, noise((16,), seed=2, generation=1))
    assert not np.array_equal(base, noise((16,), seed=1, generation=2))
    # swapping seed and generation is a different key
    assert philox_key(1, 2) != philox_key(2, 1)
    assert not np.array_equal(noise((16,), seed=2, generation=1), noise((16,), seed=1, generation=2))


def test_scaled_by_stdev():
    unit = NoiseGenerator(1.0)((1000,), seed=3, generation=5, dtype=np.float64)
    scaled = NoiseGenerator(0.5)((1000,), seed=3, generation=5, dtype=np.float64)
    assert np.allclose(scaled, unit * 0.5)
    assert 0.8 < np.std(unit) < 1.2


@pytest.mark.parametrize("dtype", [np.float16, np.float32, np.float64])
def test_dtypes(dtype):
    sample = NoiseGenerator(0.1)((2, 2), seed=0, generation=1, dtype=dtype)
    assert sample.dtype == np.dtype(dtype)
    assert np.array_equal(sample, NoiseGenerator(0.1)((2, 2), seed=0, generation=1, dtype=dtype))


def test_scalar_shape():
    sample = NoiseGenerator(0.1)((), seed=0, generation=1)
    assert sample.shape == ()


def test_negative_seed():
    noise = NoiseGenerator(1.0)
    assert not np.array_equal(noise((8,), seed=-1, generation=1), noise((8,), seed=1, generation=1))


@pytest.mark.parametrize("stdev", [0, -1.0, float('nan'), float('inf')])
def test_invalid_stdev(stdev):
    with pytest.raises(ConfigurationError):
        NoiseGenerator(stdev)


def test_invalid_dtype():
    with pytest.raises(ConfigurationError):
        NoiseGenerator(1.0)((2,), seed=0, generation=0, dtype=np.int32)


def test_equality():
    assert GaussianNoise(0.01) == NoiseGenerator(0.01)
    assert NoiseGenerator(0.01) != NoiseGenerator(0.02)
    assert TruncatedNormalNoise(0.01) != NoiseGenerator(0.01)
    assert len({NoiseGenerator(0.01), NoiseGenerator(0.01)}) == 1


def test_truncated_normal_bound():
    noise = TruncatedNormalNoise(1.0, bound=0.5)
    sample = noise((2000,), seed=11, generation=3, dtype=np.float64)
    assert np.all(np.abs(sample) <= 0.5)
    assert np.array_equal(sample, TruncatedNormalNoise(1.0, bound=0.5)((2000,), seed=11, generation=3, dtype=np.float64))
    with pytest.raises(ConfigurationError):
        TruncatedNormalNoise(1.0, bound=0)


def test_null_noise():
    sample = NullNoise()((3,), seed=5, generation=9, dtype=np.float64)
    assert sample.dtype == np.float64
    assert np.array_equal(sample, np.zeros(3))
