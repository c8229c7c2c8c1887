"""Results of exact inference queries."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from ..core.errors import InvalidKeyError, UnknownVariableError
from ..core.types import Assignment, Variable
from ..distributions.discrete import EnumDistrib
from .factor import FactorTable

if TYPE_CHECKING:
    from .exact import Query


class JPT:
    """Normalized joint probability table over the query variables.

    Parameters
    ----------
    factor : FactorTable
        Unnormalized joint; it is normalized on construction.

    Raises
    ------
    ZeroProbabilityError
        If *factor* sums to zero.
    """

    def __init__(self, factor: FactorTable) -> None:
        self._table = factor.normalize()

    @property
    def variables(self) -> List[Variable]:
        return self._table.parents

    @property
    def table(self) -> FactorTable:
        return self._table

    def get(self, *key: Any) -> float:
        """Probability of a key, one value per variable.

        ``None`` at a position sums over that variable.
        """
        if len(key) != self._table.n_parents:
            raise InvalidKeyError(
                f"Invalid key: length is {len(key)} not {self._table.n_parents}"
            )
        if any(v is None for v in key):
            return float(sum(self._table.get_values(key)))
        return self._table.get(key)

    def get_all(self, key: Optional[Sequence[Any]] = None) -> Dict[Tuple[Any, ...], float]:
        """Populated entries matching the partial *key*, as ``{key: probability}``."""
        if key is None:
            indices = list(self._table)
        else:
            indices = [i for i in self._table if self._table.is_match(key, i)]
        return {self._table.get_key(i): self._table.get_value(i) for i in sorted(indices)}

    def to_array(self) -> np.ndarray:
        return self._table.to_array()

    def display(self) -> str:
        return self._table.display(tag="P")

    def __repr__(self) -> str:
        return f"JPT({', '.join(self._table.labels)})"


class QueryResult:
    """Outcome of :meth:`~exactbn.inference.exact.VarElim.infer`.

    Parameters
    ----------
    query : Query
        The query that produced the result.
    factor : FactorTable
        Unnormalized table over the query variables, in query order.
    mpe : list of Assignment, optional
        Maximising assignment (MPE queries only).
    mpe_probability : float, optional
        Joint probability of the maximising assignment and the evidence.
    likelihood : float, optional
        Probability of the evidence when the factor carries the exact
        joint mass; None when irrelevant nodes were pruned.
    """

    def __init__(
        self,
        query: "Query",
        factor: FactorTable,
        mpe: Optional[List[Assignment]] = None,
        mpe_probability: Optional[float] = None,
        likelihood: Optional[float] = None,
    ) -> None:
        self._query = query
        self._factor = factor
        self._mpe = mpe
        self._mpe_probability = mpe_probability
        self._likelihood = likelihood
        self._table: Optional[FactorTable] = None

    @property
    def variables(self) -> List[Variable]:
        return list(self._query.variables)

    @property
    def is_mpe(self) -> bool:
        return self._query.mpe

    @property
    def factor(self) -> FactorTable:
        """The unnormalized result table."""
        return self._factor

    @property
    def table(self) -> FactorTable:
        """The result table, normalized when the query asked for it."""
        if self._table is None:
            self._table = self._factor.normalize() if self._query.normalize else self._factor
        return self._table

    @property
    def likelihood(self) -> Optional[float]:
        return self._likelihood

    def get_jpt(self) -> JPT:
        return JPT(self._factor)

    def query(self, variable: Variable) -> EnumDistrib:
        """Marginal distribution of one query variable.

        Raises
        ------
        UnknownVariableError
            If *variable* is not a query variable.
        ZeroProbabilityError
            If the evidence has probability zero.
        """
        if self._factor.position(variable) < 0:
            raise UnknownVariableError(f"{variable} is not a query variable")
        others = [v for v in self._factor.parents if v != variable]
        marginal = self._factor.marginalize(others).normalize()
        return EnumDistrib(variable.domain, marginal.to_array())

    def get_mpe(self) -> List[Assignment]:
        """Maximising assignment of every variable, in topological order."""
        if self._mpe is None:
            raise ValueError("Not an MPE query; use VarElim.make_mpe()")
        return list(self._mpe)

    @property
    def mpe_probability(self) -> float:
        if self._mpe_probability is None:
            raise ValueError("Not an MPE query; use VarElim.make_mpe()")
        return self._mpe_probability

    def display(self) -> str:
        lines = [self.table.display(tag="P" if self._query.normalize else "F")]
        if self._mpe is not None:
            lines.append("MPE: " + ", ".join(str(a) for a in self._mpe))
            lines.append(f"P(MPE, evidence) = {self._mpe_probability:.6g}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        kind = "MPE" if self._query.mpe else "belief"
        return f"QueryResult({kind}, {[v.name for v in self._query.variables]})"
