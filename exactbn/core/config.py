"""Inference configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

OrderingLike = Union[str, Callable]


@dataclass(frozen=True)
class InferenceConfig:
    """Settings for :class:`~exactbn.inference.exact.VarElim`.

    Attributes
    ----------
    ordering : str or callable
        Elimination-order heuristic, either a registered name
        (``"min-size"``, ``"min-neighbors"``, ``"reverse-topological"``)
        or a callable ``(candidates, factors, rank) -> Variable``.
    max_factor_variables : int
        A warning is logged when an intermediate factor spans more
        variables than this.
    prune_irrelevant : bool
        Drop nodes that cannot influence a belief query given the
        evidence before building factors.
    """

    ordering: OrderingLike = "min-size"
    max_factor_variables: int = 20
    prune_irrelevant: bool = True

    def __post_init__(self) -> None:
        if self.max_factor_variables < 1:
            raise ValueError(
                f"max_factor_variables must be positive, got {self.max_factor_variables}"
            )
        if not (isinstance(self.ordering, str) or callable(self.ordering)):
            raise TypeError("ordering must be a name or a callable")
