"""Discrete probability distributions over a :class:`Domain`."""

from typing import Any, Optional, Sequence

import numpy as np
from scipy import stats

from ..core.errors import InvalidKeyError
from ..core.types import Domain


class EnumDistrib:
    """Categorical distribution over the values of a domain.

    Parameters
    ----------
    domain : Domain
        The values the distribution ranges over.
    probs : array-like
        One probability per domain value, in domain order.  Must be
        non-negative and sum to 1.

    Examples
    --------
    >>> d = EnumDistrib(Domain.boolean(), [0.3, 0.7])
    >>> d.get(False)
    0.7
    """

    def __init__(self, domain: Domain, probs: Sequence[float]) -> None:
        probs = np.asarray(probs, dtype=float)
        if probs.shape != (domain.size,):
            raise ValueError(
                f"Expected {domain.size} probabilities, got shape {probs.shape}"
            )
        if np.any(probs < 0):
            raise ValueError("All probabilities must be non-negative.")
        if not np.isclose(probs.sum(), 1.0):
            raise ValueError(f"Probabilities must sum to 1, got {probs.sum()}")
        self.domain = domain
        self._probs = probs

    @classmethod
    def uniform(cls, domain: Domain) -> "EnumDistrib":
        return cls(domain, np.full(domain.size, 1.0 / domain.size))

    @property
    def probs(self) -> np.ndarray:
        """Copy of the probabilities in domain order."""
        return self._probs.copy()

    def get(self, value: Any) -> float:
        """Probability of *value*."""
        return float(self._probs[self.domain.index(value)])

    def mode(self) -> Any:
        """Most probable value (first in domain order on ties)."""
        return self.domain.get(int(np.argmax(self._probs)))

    def sample(self, n: int = 1, rng: Optional[np.random.Generator] = None) -> list:
        """Draw *n* domain values."""
        dist = stats.rv_discrete(values=(np.arange(self.domain.size), self._probs))
        indices = np.atleast_1d(dist.rvs(size=n, random_state=rng))
        return [self.domain.get(int(i)) for i in indices]

    def entropy(self) -> float:
        """Shannon entropy in nats."""
        return float(stats.entropy(self._probs))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EnumDistrib):
            return NotImplemented
        return self.domain == other.domain and np.allclose(self._probs, other._probs)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(f"{v!r}: {p:.4g}" for v, p in zip(self.domain, self._probs))
        return f"EnumDistrib({{{inner}}})"
