"""Multi-stream random variate source backed by numpy generators."""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Dict, Union

import numpy as np

from .errors import ConfigurationError

ARRIVAL_STREAM = 0
ROUTING_STREAM = 1


def _check_seed(seed) -> int:
    if isinstance(seed, bool) or not isinstance(seed, numbers.Integral):
        raise ConfigurationError(f"Seed must be an integer, got {seed!r}.")
    if seed < 0:
        raise ConfigurationError("Seed must be non-negative.")
    return int(seed)


class VariateSource:
    """
    Independent substreams derived from one integer seed.

    Stream ``i`` is a PCG64 generator seeded with ``SeedSequence(seed,
    spawn_key=(i,))``, so streams are created lazily and the draws of one
    stream never depend on how the others were used.
    """

    def __init__(self, seed: int = 0):
        self._streams: Dict[int, np.random.Generator] = {}
        self._stream = 0
        self._seed = 0
        self.plant_seeds(seed)

    @property
    def stream(self) -> int:
        return self._stream

    def plant_seeds(self, seed: int) -> None:
        """Reinitialize every stream from ``seed``."""
        self._seed = _check_seed(seed)
        self._streams.clear()
        self._stream = 0

    def select_stream(self, index: int) -> None:
        if index < 0:
            raise ConfigurationError("Stream index must be non-negative.")
        self._stream = index

    def _generator(self) -> np.random.Generator:
        gen = self._streams.get(self._stream)
        if gen is None:
            seq = np.random.SeedSequence(self._seed, spawn_key=(self._stream,))
            gen = np.random.Generator(np.random.PCG64(seq))
            self._streams[self._stream] = gen
        return gen

    def get_seed(self) -> int:
        """Return the integer state of the selected stream without drawing."""
        state = self._generator().bit_generator.state
        return int(state["state"]["state"])

    def uniform(self) -> float:
        """Draw from the open interval (0, 1)."""
        generator = self._generator()
        u = generator.random()
        while u == 0.0:
            u = generator.random()
        return float(u)

    def exponential(self, mean: float) -> float:
        return float(self._generator().exponential(mean))

    def bounded_pareto(self, shape: float, low: float, high: float) -> float:
        """Inverse-CDF draw from a Pareto(shape, low) truncated to [low, high]."""
        u = self.uniform()
        tail = 1.0 - (low / high) ** shape
        return low * (1.0 - u * tail) ** (-1.0 / shape)


@dataclass(frozen=True)
class Exponential:
    mean: float

    def __post_init__(self) -> None:
        if self.mean <= 0:
            raise ConfigurationError("Exponential mean must be strictly positive.")

    @classmethod
    def from_rate(cls, rate: float) -> "Exponential":
        if rate <= 0:
            raise ConfigurationError("Rate must be strictly positive.")
        return cls(mean=1.0 / rate)

    @property
    def rate(self) -> float:
        return 1.0 / self.mean

    def draw(self, source: VariateSource) -> float:
        return source.exponential(self.mean)


@dataclass(frozen=True)
class BoundedPareto:
    """Heavy-tailed service law truncated to ``[low, high]``."""

    shape: float
    low: float
    high: float

    def __post_init__(self) -> None:
        if self.shape <= 0:
            raise ConfigurationError("Pareto shape must be strictly positive.")
        if not 0 < self.low < self.high:
            raise ConfigurationError("Bounded Pareto needs 0 < low < high.")

    @property
    def mean(self) -> float:
        a, lo, hi = self.shape, self.low, self.high
        norm = 1.0 - (lo / hi) ** a
        if a == 1.0:
            return lo * np.log(hi / lo) / norm
        return (a * lo**a / (a - 1.0)) * (lo ** (1.0 - a) - hi ** (1.0 - a)) / norm

    def draw(self, source: VariateSource) -> float:
        return source.bounded_pareto(self.shape, self.low, self.high)


Distribution = Union[Exponential, BoundedPareto]
