"""Deterministic noise for seed-compressed perturbations.

Noise is drawn from a counter-based bit generator (numpy's Philox) whose key is
built from ``(generation, seed)`` alone. Nothing about a sample has to be stored:
the same two integers regenerate the same tensor, bit for bit, whenever the
engine needs to apply or undo a perturbation.
"""
from typing import Sequence, Tuple
import numpy as np

from seedopt.errors import ConfigurationError

__all__ = [
    "NoiseGenerator",
    "GaussianNoise",
    "TruncatedNormalNoise",
    "NullNoise",
    "SUPPORTED_DTYPES",
    "philox_key",
]

SUPPORTED_DTYPES = (np.dtype(np.float16), np.dtype(np.float32), np.dtype(np.float64))

_MASK64 = (1 << 64) - 1


def philox_key(generation: int, seed: int) -> int:
    """Pack ``(generation, seed)`` into a single 128 bit Philox key.

    Both integers are reduced modulo 2**64, so negative seeds are valid and map
    to distinct keys.
    """
    return ((int(generation) & _MASK64) << 64) | (int(seed) & _MASK64)


def _check_dtype(dtype) -> np.dtype:
    dtype = np.dtype(dtype)
    if dtype not in SUPPORTED_DTYPES:
        raise ConfigurationError(f"Unsupported dtype {dtype}. Expected one of {[str(d) for d in SUPPORTED_DTYPES]}.")
    return dtype


class NoiseGenerator:
    """Stateless Gaussian noise keyed on ``(generation, seed)``.

    Parameters
    ----------
    stdev : float
        Standard deviation the unit normal samples are scaled by. Must be
        positive.

    Notes
    -----
    Each call constructs a fresh ``numpy.random.Generator(Philox(key))``, so a
    generator instance holds no stream state and may be shared across threads.
    float16 samples are drawn in float32 and cast, since numpy only draws
    float32 and float64 normals natively.

    Examples
    --------
    >>> noise = NoiseGenerator(0.003)
    >>> a = noise((2, 3), seed=4, generation=1)
    >>> b = NoiseGenerator(0.003)((2, 3), seed=4, generation=1)
    >>> bool((a == b).all())
    True
    """

    def __init__(self, stdev: float):
        if not np.isfinite(stdev) or stdev <= 0:
            raise ConfigurationError(f"Noise standard deviation must be positive, got {stdev}.")
        self.stdev = float(stdev)

    def __call__(self, shape: Sequence[int], seed: int, generation: int, dtype=np.float32) -> np.ndarray:
        return self.noise(shape, seed, generation, dtype=dtype)

    def noise(self, shape: Sequence[int], seed: int, generation: int, dtype=np.float32) -> np.ndarray:
        """Return a tensor of ``shape`` and ``dtype`` for the key ``(generation, seed)``."""
        dtype = _check_dtype(dtype)
        shape = tuple(int(d) for d in shape)
        rng = np.random.Generator(np.random.Philox(key=philox_key(generation, seed)))
        draw_dtype = np.float32 if dtype == np.float16 else dtype
        sample = np.asarray(self._sample(rng, shape, draw_dtype), dtype=draw_dtype).reshape(shape)
        scaled = np.multiply(sample, np.asarray(self.stdev, dtype=draw_dtype))
        return np.asarray(scaled, dtype=dtype)

    def _sample(self, rng: np.random.Generator, shape: Tuple[int, ...], dtype) -> np.ndarray:
        return rng.standard_normal(size=shape, dtype=dtype)

    def _config(self):
        return (self.stdev,)

    def __eq__(self, other):
        return type(self) is type(other) and self._config() == other._config()

    def __hash__(self):
        return hash((type(self).__name__,) + self._config())

    def __repr__(self):
        return f"{type(self).__name__}(stdev={self.stdev})"


GaussianNoise = NoiseGenerator


class TruncatedNormalNoise(NoiseGenerator):
    """Normal noise with unit samples restricted to ``[-bound, bound]``.

    Samples outside the bound are redrawn from the same keyed stream until all
    of them fall inside, which keeps the result a pure function of the key.
    """

    def __init__(self, stdev: float, bound: float = 2.0):
        super().__init__(stdev)
        if not np.isfinite(bound) or bound <= 0:
            raise ConfigurationError(f"Truncation bound must be positive, got {bound}.")
        self.bound = float(bound)

    def _sample(self, rng, shape, dtype):
        sample = np.asarray(rng.standard_normal(size=shape, dtype=dtype), dtype=dtype).reshape(shape)
        outside = np.abs(sample) > self.bound
        while outside.any():
            sample[outside] = rng.standard_normal(size=int(outside.sum()), dtype=dtype)
            outside = np.abs(sample) > self.bound
        return sample

    def _config(self):
        return (self.stdev, self.bound)

    def __repr__(self):
        return f"{type(self).__name__}(stdev={self.stdev}, bound={self.bound})"


class NullNoise(NoiseGenerator):
    """Noise that is always zero. Assign it to a parameter to freeze it."""

    def __init__(self):
        self.stdev = 0.0

    def noise(self, shape, seed, generation, dtype=np.float32):
        dtype = _check_dtype(dtype)
        return np.zeros(tuple(int(d) for d in shape), dtype=dtype)

    def __repr__(self):
        return "NullNoise()"


