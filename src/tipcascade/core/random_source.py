"""Single source of randomness for threshold sampling and tipping draws."""

from typing import Optional
import numpy as np


class RandomSource:
    """
    Thin wrapper around ``numpy.random.Generator``.
    
    All stochastic calls in the engine go through an instance of this
    class, so tests can pass a subclass with scripted outcomes.
    
    Parameters
    ----------
    seed : int, optional
        Random seed. ``None`` draws fresh OS entropy.
    """
    
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)
    
    def uniform(self, low: float, high: float) -> float:
        """Draw from U[low, high)."""
        return float(self._rng.uniform(low, high))
    
    def random(self) -> float:
        """Draw from U[0, 1)."""
        return float(self._rng.random())
    
    def spawn(self) -> "RandomSource":
        """Independent child source, e.g. one per ensemble member."""
        child = RandomSource.__new__(RandomSource)
        child.seed = None
        child._rng = np.random.default_rng(self._rng.integers(0, 2**63 - 1))
        return child
    
    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed})"
