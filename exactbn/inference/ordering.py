"""Elimination-order heuristics.

An ordering is a callable ``(candidates, factors, rank) -> Variable`` that
picks the next variable to eliminate given the current factor set.
``rank`` maps each variable to its topological position and breaks ties,
so every heuristic is deterministic.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Sequence, Set, Union

import numpy as np

from ..core.types import Variable
from .factor import FactorTable

Ordering = Callable[[Sequence[Variable], Sequence[FactorTable], Mapping[Variable, int]], Variable]


def _neighbors(variable: Variable, factors: Sequence[FactorTable]) -> Set[Variable]:
    """Variables sharing a factor with *variable*, itself included."""
    found: Set[Variable] = {variable}
    for ft in factors:
        if ft.position(variable) >= 0:
            found.update(ft.parents)
    return found


def min_size(
    candidates: Sequence[Variable],
    factors: Sequence[FactorTable],
    rank: Mapping[Variable, int],
) -> Variable:
    """Pick the variable whose product factor has the fewest entries."""
    def cost(v: Variable):
        size = int(np.prod([n.size for n in _neighbors(v, factors)], dtype=np.int64))
        return size, rank.get(v, 0)
    return min(candidates, key=cost)


def min_neighbors(
    candidates: Sequence[Variable],
    factors: Sequence[FactorTable],
    rank: Mapping[Variable, int],
) -> Variable:
    """Pick the variable co-occurring with the fewest other variables."""
    return min(candidates, key=lambda v: (len(_neighbors(v, factors)), rank.get(v, 0)))


def reverse_topological(
    candidates: Sequence[Variable],
    factors: Sequence[FactorTable],
    rank: Mapping[Variable, int],
) -> Variable:
    """Pick the latest variable in topological order (bucket elimination)."""
    return max(candidates, key=lambda v: rank.get(v, 0))


_ORDERINGS: Dict[str, Ordering] = {
    "min-size": min_size,
    "min-neighbors": min_neighbors,
    "reverse-topological": reverse_topological,
}


def register_ordering(name: str, ordering: Ordering) -> None:
    """Make *ordering* available under *name*."""
    if not callable(ordering):
        raise TypeError("ordering must be callable")
    _ORDERINGS[name] = ordering


def get_ordering(name: Union[str, Ordering]) -> Ordering:
    """Resolve a heuristic name or pass a callable through.

    Raises
    ------
    ValueError
        If *name* is not a callable and names no registered heuristic.
    """
    if callable(name):
        return name
    try:
        return _ORDERINGS[name]
    except KeyError:
        raise ValueError(
            f"Unknown ordering '{name}'. Use one of {sorted(_ORDERINGS)}."
        ) from None