from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence


try:  # optional dependency
    import numpy as _np  # type: ignore
except Exception:  # pragma: no cover - optional
    _np = None


@dataclass
class RandomSource:
    engine: str

    def randint(self, a: int, b: int) -> int:
        raise NotImplementedError

    def choice(self, seq: Sequence[int]) -> int:
        raise NotImplementedError


class PyRandomSource(RandomSource):
    def __init__(self, seed: Optional[int] = None):
        super().__init__(engine="py_random")
        self._rng = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[int]) -> int:
        return self._rng.choice(list(seq))


class NumpyPCG64Source(RandomSource):  # pragma: no cover - covered when numpy present
    def __init__(self, seed: Optional[int] = None):
        if _np is None:
            raise RuntimeError("numpy is not installed; install bingo-engine[pcg]")
        super().__init__(engine="numpy_pcg64")
        self._rng = _np.random.Generator(_np.random.PCG64(seed))

    def randint(self, a: int, b: int) -> int:
        return int(self._rng.integers(low=a, high=b + 1))

    def choice(self, seq: Sequence[int]) -> int:
        return int(self._rng.choice(seq))


def create_rng(engine: str, seed: Optional[int] = None) -> RandomSource:
    """Build a random source; ``seed=None`` draws from OS entropy."""
    engine = (engine or "py_random").strip().lower()
    if engine == "py_random":
        return PyRandomSource(seed)
    if engine == "numpy_pcg64":
        return NumpyPCG64Source(seed)
    raise ValueError(f"Unsupported RNG engine: {engine}")
