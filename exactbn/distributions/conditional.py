"""Conditional probability nodes.

A node owns one :class:`~exactbn.core.types.Variable` and refers to zero
or more parent variables.  It answers "probability of my value given my
parents' values" and exports itself as a
:class:`~exactbn.inference.factor.FactorTable` with evidence baked in, which
is all the inference engine needs from it.

Example
-------
>>> rain = Variable.boolean("Rain")
>>> wet = Variable.boolean("Wet")
>>> prior = CPT(rain, prior=[0.2, 0.8])
>>> lawn = CPT.from_array(wet, [rain], [[0.9, 0.1], [0.05, 0.95]])
>>> lawn.get(True, (False,))
0.05
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.errors import InvalidKeyError, NetworkStructureError
from ..core.table import EnumTable
from ..core.types import Variable
from ..inference.factor import FactorTable
from .discrete import EnumDistrib

Evidence = Mapping[Variable, Any]


class BNode(ABC):
    """Base class for the nodes of a :class:`~exactbn.networks.dag.BNet`.

    Parameters
    ----------
    variable : Variable
        The node's own variable.
    parents : iterable of Variable
        Parent variables, in the order used for parent keys.
    """

    def __init__(self, variable: Variable, parents: Iterable[Variable] = ()) -> None:
        if not isinstance(variable, Variable):
            raise TypeError("variable must be a Variable")
        parents = tuple(parents)
        if variable in parents:
            raise NetworkStructureError(f"Node {variable.name} cannot be its own parent")
        if len(set(parents)) != len(parents):
            raise NetworkStructureError(f"Duplicate parent of node {variable.name}")
        self._variable = variable
        self._parents: Tuple[Variable, ...] = parents
        self._instance: Any = None

    # --------------------------------------------------------------------- #
    #  Structure
    # --------------------------------------------------------------------- #

    @property
    def variable(self) -> Variable:
        return self._variable

    @property
    def name(self) -> str:
        return self._variable.name

    @property
    def parents(self) -> List[Variable]:
        return list(self._parents)

    def is_root(self) -> bool:
        return not self._parents

    # --------------------------------------------------------------------- #
    #  Instantiation
    # --------------------------------------------------------------------- #

    @property
    def instance(self) -> Any:
        """Current evidence value, or None when uninstantiated."""
        return self._instance

    def set_instance(self, value: Any) -> None:
        """Instantiate the node; ``None`` resets it.

        Raises
        ------
        InvalidKeyError
            If *value* is not in the variable's domain.
        """
        if value is not None:
            self._variable.index(value)
        self._instance = value

    def reset_instance(self) -> None:
        self._instance = None

    # --------------------------------------------------------------------- #
    #  Probabilities
    # --------------------------------------------------------------------- #

    @abstractmethod
    def get(self, value: Any, key: Sequence[Any] = ()) -> float:
        """Return P(variable = value | parents = key)."""

    def make_factor(self, evidence: Optional[Evidence] = None) -> FactorTable:
        """Export the node as a factor over its uninstantiated variables.

        The factor's variables are the free parents in parent order
        followed by the node's own variable (if free).  Variables present
        in *evidence* are fixed at their evidence value and dropped.
        """
        evidence = evidence or {}
        family = self.parents + [self._variable]
        free = [v for v in family if v not in evidence]
        ft = FactorTable(free, evidenced=len(free) < len(family))
        for index in range(ft.size):
            assignment = dict(zip(free, ft.get_key(index)))
            for v in family:
                if v in evidence:
                    assignment[v] = evidence[v]
            p = self.get(
                assignment[self._variable],
                tuple(assignment[pv] for pv in self._parents),
            )
            if p != 0.0:
                ft.set_value(index, p)
        return ft

    def _check_key(self, key: Sequence[Any]) -> None:
        if len(key) != len(self._parents):
            raise InvalidKeyError(
                f"Node {self.name} expects {len(self._parents)} parent values, got {len(key)}"
            )

    def __repr__(self) -> str:
        parents = ", ".join(p.name for p in self._parents)
        return f"{type(self).__name__}({self.name} | {parents})"


class CPT(BNode):
    """Conditional probability table.

    Holds one :class:`EnumDistrib` per parent configuration (a single
    prior for root nodes).

    Parameters
    ----------
    variable : Variable
        The node's own variable.
    parents : iterable of Variable
        Parent variables.
    prior : EnumDistrib or array-like, optional
        Distribution of a root node.
    """

    def __init__(
        self,
        variable: Variable,
        parents: Iterable[Variable] = (),
        prior: Union[EnumDistrib, Sequence[float], None] = None,
    ) -> None:
        super().__init__(variable, parents)
        self._table: EnumTable[EnumDistrib] = EnumTable(self._parents)
        if prior is not None:
            if self._parents:
                raise ValueError("prior is only valid for root nodes; use put()")
            self.put((), prior)

    @classmethod
    def from_array(
        cls,
        variable: Variable,
        parents: Sequence[Variable],
        probs: Any,
    ) -> "CPT":
        """Build a CPT from an array of shape ``(|P1|, ..., |Pk|, |X|)``.

        Raises
        ------
        ValueError
            If the array shape does not match the parent and variable sizes.
        """
        probs = np.asarray(probs, dtype=float)
        expected = tuple(p.size for p in parents) + (variable.size,)
        if probs.shape != expected:
            raise ValueError(f"CPT shape {probs.shape} does not match expected {expected}")
        cpt = cls(variable, parents)
        rows = probs.reshape(-1, variable.size)
        for index, row in enumerate(rows):
            cpt._table.set_value(index, EnumDistrib(variable.domain, row))
        return cpt

    @property
    def table(self) -> EnumTable[EnumDistrib]:
        return self._table

    def put(self, key: Sequence[Any], probs: Union[EnumDistrib, Sequence[float]]) -> int:
        """Set the distribution for the parent configuration *key*."""
        if not isinstance(probs, EnumDistrib):
            probs = EnumDistrib(self._variable.domain, probs)
        elif probs.domain != self._variable.domain:
            raise ValueError(f"Distribution domain does not match {self.name}")
        return self._table.set(tuple(key), probs)

    def distribution(self, key: Sequence[Any] = ()) -> EnumDistrib:
        """Distribution of the variable given the parent values *key*."""
        self._check_key(key)
        distrib = self._table.get(tuple(key))
        if distrib is None:
            raise InvalidKeyError(f"No distribution for {self.name} given {tuple(key)!r}")
        return distrib

    def get(self, value: Any, key: Sequence[Any] = ()) -> float:
        return self.distribution(key).get(value)

    def is_complete(self) -> bool:
        """True if every parent configuration has a distribution."""
        return len(self._table) == self._table.size

    def make_factor(self, evidence: Optional[Evidence] = None) -> FactorTable:
        evidence = evidence or {}
        own = self._variable
        free_parents = [p for p in self._parents if p not in evidence]
        own_free = own not in evidence
        ft = FactorTable(
            free_parents + ([own] if own_free else []),
            evidenced=len(free_parents) < len(self._parents) or not own_free,
        )
        partial = [evidence[p] if p in evidence else None for p in self._parents]
        free_pos = [i for i, p in enumerate(self._parents) if p not in evidence]
        values = own.domain.values if own_free else (evidence[own],)
        for index in self._table.get_indices(partial):
            distrib = self._table.get_value(index)
            if distrib is None:
                continue
            key = self._table.get_key(index)
            row = tuple(key[i] for i in free_pos)
            for x in values:
                p = distrib.get(x)
                if p == 0.0:
                    continue
                ft.set(row + ((x,) if own_free else ()), p)
        return ft


class NoisyOR(BNode):
    """Noisy-OR node over a two-valued variable.

    The first domain value of the variable is the "on" state.  Each parent
    independently fails to switch the node on with probability ``1 - p_i``
    when it takes its activating value, and the leak switches it on with
    probability ``leak`` regardless of the parents.

    Parameters
    ----------
    variable : Variable
        Two-valued child variable.
    parents : sequence of Variable
        Causes.
    probs : sequence of float
        Activation probability of each parent.
    active_values : sequence, optional
        Activating value of each parent; defaults to each parent's first
        domain value.
    leak : float
        Probability that the node is on with no active parent.
    """

    def __init__(
        self,
        variable: Variable,
        parents: Sequence[Variable],
        probs: Sequence[float],
        active_values: Optional[Sequence[Any]] = None,
        leak: float = 0.0,
    ) -> None:
        super().__init__(variable, parents)
        if variable.size != 2:
            raise ValueError(f"NoisyOR variable must have two values, {variable.name} has {variable.size}")
        probs = [float(p) for p in probs]
        if len(probs) != len(self._parents):
            raise ValueError("One activation probability per parent is required")
        if any(not 0.0 <= p <= 1.0 for p in probs) or not 0.0 <= leak <= 1.0:
            raise ValueError("Probabilities must be in [0, 1]")
        if active_values is None:
            active_values = [p.domain.get(0) for p in self._parents]
        if len(active_values) != len(self._parents):
            raise ValueError("One activating value per parent is required")
        self._active = [p.index(v) for p, v in zip(self._parents, active_values)]
        self.probs = probs
        self.leak = float(leak)

    def get(self, value: Any, key: Sequence[Any] = ()) -> float:
        self._check_key(key)
        off = 1.0 - self.leak
        for parent, active, p, v in zip(self._parents, self._active, self.probs, key):
            if parent.index(v) == active:
                off *= 1.0 - p
        return 1.0 - off if self._variable.index(value) == 0 else off
