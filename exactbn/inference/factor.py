"""Factor tables: the unit of computation in exact inference.

Provides :class:`FactorTable`, an :class:`~exactbn.core.table.EnumTable`
of non-negative reals with the three operations variable elimination is
built from:

* :meth:`FactorTable.product` – join two factors on their shared
  variables.
* :meth:`FactorTable.marginalize` – sum variables out.
* :meth:`FactorTable.max_marginalize` – max variables out, remembering
  the maximising values (used for MPE queries).

Values live in a dense float64 array with one axis per variable.  The
table's mixed-radix index is the array's C-order flat index, so the
``EnumTable`` key and index API reads straight through to the array.
Only non-zero entries count as populated.
"""

from __future__ import annotations

from typing import Any, Collection, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from exactbn.core.errors import InvalidKeyError, ZeroProbabilityError
from exactbn.core.table import EnumTable
from exactbn.core.types import Variable


class FactorTable(EnumTable[float]):
    """A real-valued function over an assignment of a set of variables.

    Parameters
    ----------
    variables : sequence of Variable
        Variables that index the axes of the table, in key order.
    evidenced : bool
        Set when the factor was reduced by evidence.
    function : bool
        Set when the factor is the result of a product or
        marginalization rather than taken directly from a node.
    values : numpy.ndarray, optional
        Array whose shape equals the variables' domain sizes.  Defaults
        to all zeros.
    """

    def __init__(
        self,
        variables: Iterable[Variable],
        evidenced: bool = False,
        function: bool = False,
        values: Optional[np.ndarray] = None,
    ) -> None:
        super().__init__(variables)
        self.evidenced = evidenced
        self.function = function
        expected = tuple(self.cardinalities)
        if values is None:
            values = np.zeros(expected, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64, order="C")
        if values.shape != expected:
            raise ValueError(
                f"FactorTable shape {values.shape} does not match "
                f"cardinalities {expected}"
            )
        self._values: np.ndarray = values

    # ----- factory helpers ------------------------------------------------

    @classmethod
    def from_array(cls, variables: Sequence[Variable], values: Any) -> "FactorTable":
        """Build a factor from an array shaped by the variables' sizes."""
        values = np.array(values, dtype=np.float64)
        if np.any(values < 0):
            raise ValueError("Factor entries must be non-negative")
        return cls(variables, values=values)

    def to_array(self) -> np.ndarray:
        """Dense numpy copy with one axis per variable (C order)."""
        return self._values.copy()

    # ----- accessors ------------------------------------------------------

    @property
    def variables(self) -> List[Variable]:
        return self.parents

    @property
    def cardinalities(self) -> List[int]:
        return [v.size for v in self.parents]

    @property
    def _flat(self) -> np.ndarray:
        return self._values.reshape(-1)

    def __contains__(self, index: object) -> bool:
        if not isinstance(index, (int, np.integer)) or not 0 <= index < self.size:
            return False
        return bool(self._flat[index] != 0.0)

    def __len__(self) -> int:
        return int(np.count_nonzero(self._values))

    def __iter__(self) -> Iterator[int]:
        return iter(np.flatnonzero(self._values).tolist())

    def items(self) -> Iterator[Tuple[int, float]]:
        """Non-zero ``(index, value)`` pairs in index order."""
        flat = self._flat
        return iter([(i, float(flat[i])) for i in np.flatnonzero(flat).tolist()])

    def set_value(self, index: int, value: float) -> int:
        self._check_index(index)
        self._flat[index] = value
        return index

    def get_value(self, index: int) -> float:
        self._check_index(index)
        return float(self._flat[index])

    def add_value(self, index: int, value: float) -> int:
        """Add *value* to the entry at *index*."""
        self._check_index(index)
        self._flat[index] += value
        return index

    def add(self, key: Sequence[Any], value: float) -> int:
        return self.add_value(self.get_index(key), value)

    def get_sum(self) -> float:
        return float(self._values.sum())

    def is_atomic(self) -> bool:
        """True if the factor has no variables (a single scalar entry)."""
        return self.n_parents == 0

    def argmax(self) -> int:
        """Index of the largest entry (lowest index on ties).

        Raises
        ------
        ZeroProbabilityError
            If every entry is zero.
        """
        index = int(np.argmax(self._flat))
        if self._flat[index] <= 0.0:
            raise ZeroProbabilityError("All outcomes are impossible")
        return index

    def log_likelihood(self) -> float:
        """Natural log of the sum of all entries."""
        total = self.get_sum()
        if total == 0.0:
            raise ZeroProbabilityError("All outcomes are impossible: log-likelihood is -inf")
        return float(np.log(total))

    # ----- core operations ------------------------------------------------

    @staticmethod
    def product(ft1: "FactorTable", ft2: "FactorTable") -> "FactorTable":
        """Point-wise product of two factors.

        The result has the variables of *ft1* in order followed by the
        variables of *ft2* not in *ft1*.  Shared variables are aligned and
        the rest are broadcast.
        """
        combined = ft1.parents + [v for v in ft2.parents if ft1.position(v) < 0]
        a = ft1._broadcast_into(combined)
        b = ft2._broadcast_into(combined)
        return FactorTable(
            combined,
            evidenced=ft1.evidenced or ft2.evidenced,
            function=True,
            values=a * b,
        )

    def __mul__(self, other: "FactorTable") -> "FactorTable":
        if not isinstance(other, FactorTable):
            return NotImplemented
        return FactorTable.product(self, other)

    @staticmethod
    def product_all(factors: Sequence["FactorTable"]) -> "FactorTable":
        """Multiply factors together, smallest (by variable count) first."""
        if not factors:
            raise ValueError("product_all requires at least one factor")
        ordered = sorted(factors, key=lambda f: f.n_parents)
        result = ordered[0]
        for ft in ordered[1:]:
            result = FactorTable.product(result, ft)
        return result

    def _check_members(self, variables: Collection[Variable]) -> None:
        for var in variables:
            if self.position(var) < 0:
                raise InvalidKeyError(f"Variable '{var}' not in factor")

    def marginalize(self, variables: Iterable[Variable]) -> "FactorTable":
        """Sum out *variables*; the remaining variables keep their order.

        Total mass is conserved.
        """
        drop = set(variables)
        self._check_members(drop)
        axes = tuple(i for i, v in enumerate(self.parents) if v in drop)
        return FactorTable(
            [v for v in self.parents if v not in drop],
            evidenced=self.evidenced,
            function=True,
            values=self._values.sum(axis=axes),
        )

    def max_marginalize(
        self, variables: Sequence[Variable]
    ) -> Tuple["FactorTable", EnumTable[Tuple[Any, ...]]]:
        """Max out *variables*.

        Returns
        -------
        (FactorTable, EnumTable)
            The reduced factor, and a traceback table over the same
            variables mapping each entry to the values of *variables*
            (in the given order) that attain the maximum.  Ties go to the
            lowest index of this table.
        """
        variables = list(variables)
        drop = set(variables)
        self._check_members(drop)
        kept_axes = [i for i, v in enumerate(self.parents) if v not in drop]
        drop_axes = [i for i, v in enumerate(self.parents) if v in drop]
        kept = [self.parents[i] for i in kept_axes]
        drop_shape = tuple(self.parents[i].size for i in drop_axes)

        moved = np.transpose(self._values, kept_axes + drop_axes)
        moved = moved.reshape(moved.shape[: len(kept_axes)] + (-1,))
        best = np.argmax(moved, axis=-1)
        result = FactorTable(
            kept,
            evidenced=self.evidenced,
            function=True,
            values=np.take_along_axis(moved, best[..., None], axis=-1)[..., 0],
        )

        # Domain positions of the maximisers, one row per dropped axis.
        positions = np.unravel_index(best.reshape(-1), drop_shape)
        order = [drop_axes.index(self.position(v)) for v in variables]
        traceback: EnumTable[Tuple[Any, ...]] = EnumTable(kept)
        for index in range(traceback.size):
            traceback.set_value(index, tuple(
                variables[k].domain.get(int(positions[j][index]))
                for k, j in enumerate(order)
            ))
        return result, traceback

    def reduce(self, variable: Variable, value: Any) -> "FactorTable":
        """Condition on ``variable = value`` (slice the factor).

        Returns a factor without *variable*, flagged as evidenced.
        """
        self._check_members([variable])
        axis = self.position(variable)
        return FactorTable(
            [v for v in self.parents if v != variable],
            evidenced=True,
            function=self.function,
            values=np.take(self._values, variable.index(value), axis=axis),
        )

    def permute(self, variables: Sequence[Variable]) -> "FactorTable":
        """Return the same factor with its variables in the given order."""
        variables = list(variables)
        if len(variables) != self.n_parents or set(variables) != set(self.parents):
            raise InvalidKeyError(
                f"Cannot reorder factor over {self.labels} to {[str(v) for v in variables]}"
            )
        if variables == self.parents:
            return self
        return FactorTable(
            variables,
            evidenced=self.evidenced,
            function=self.function,
            values=np.transpose(self._values, [self.position(v) for v in variables]).copy(),
        )

    @classmethod
    def point_mass(cls, variable: Variable, value: Any) -> "FactorTable":
        """Indicator factor that is 1 at ``variable = value`` and 0 elsewhere."""
        ft = cls([variable], evidenced=True)
        ft.set((value,), 1.0)
        return ft

    def normalize(self) -> "FactorTable":
        """Return a copy whose entries sum to one.

        Raises
        ------
        ZeroProbabilityError
            If the entries sum to zero.
        """
        total = self.get_sum()
        if total == 0.0:
            raise ZeroProbabilityError(
                f"Cannot normalize {self!r}: all entries are zero"
            )
        return FactorTable(
            self.parents,
            evidenced=self.evidenced,
            function=self.function,
            values=self._values / total,
        )

    # ----- helpers --------------------------------------------------------

    def _broadcast_into(self, target: List[Variable]) -> np.ndarray:
        """Reshape values so axes align with *target* (size-1 for missing)."""
        src_axes = [self.position(v) for v in target if self.position(v) >= 0]
        shape = [v.size if self.position(v) >= 0 else 1 for v in target]
        values = np.transpose(self._values, src_axes) if src_axes else self._values
        return values.reshape(shape)

    def _format_value(self, value: Optional[float]) -> str:
        return f"{0.0 if value is None else value:7.5f}"

    def display(self, tag: str = "F") -> str:
        return super().display(tag)

    def __repr__(self) -> str:
        return f"FactorTable(variables={self.labels}, entries={len(self)}/{self.size})"
