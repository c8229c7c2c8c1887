"""Core types for exactbn: domains, variables and assignments."""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterator, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .context import ModelContext, VariableRegistry
from .errors import InvalidKeyError


# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------

def _plain(value: Any) -> Any:
    """Convert numpy scalars to the equivalent Python scalar."""
    if isinstance(value, np.generic):
        return value.item()
    return value


class Domain:
    """An ordered, finite set of distinct values of one type.

    Parameters
    ----------
    values : sequence
        The values, in order.  At least two, all distinct and all of the
        same Python type.

    Examples
    --------
    >>> d = Domain(["Yes", "No", "Maybe"])
    >>> d.index("No")
    1
    >>> d.get(2)
    'Maybe'
    """

    def __init__(self, values: Sequence[Hashable]) -> None:
        values = tuple(_plain(v) for v in values)
        if len(values) < 2:
            raise ValueError("A domain must have at least two values")
        kinds = {type(v) for v in values}
        if len(kinds) != 1:
            raise ValueError(
                f"Domain values must share one type, got {sorted(k.__name__ for k in kinds)}"
            )
        self._values: Tuple[Hashable, ...] = values
        self._type = kinds.pop()
        self._index: Dict[Hashable, int] = {}
        for i, v in enumerate(values):
            if v in self._index:
                raise ValueError(f"Duplicate value {v!r} in domain")
            self._index[v] = i

    # ----- factories ------------------------------------------------------

    @classmethod
    def boolean(cls) -> "Domain":
        """The boolean domain ``(True, False)``."""
        return cls([True, False])

    @classmethod
    def number(cls, n: int) -> "Domain":
        """Integers ``0 .. n-1``."""
        return cls(list(range(n)))

    @classmethod
    def nominal(cls, labels: Sequence[str]) -> "Domain":
        """Named categories."""
        return cls(list(labels))

    @classmethod
    def nucleic_acid(cls) -> "Domain":
        return cls(list("ACGT"))

    @classmethod
    def amino_acid(cls) -> "Domain":
        return cls(list("ACDEFGHIKLMNPQRSTVWY"))

    # ----- lookup ---------------------------------------------------------

    @property
    def values(self) -> Tuple[Hashable, ...]:
        return self._values

    @property
    def size(self) -> int:
        return len(self._values)

    def index(self, value: Any) -> int:
        """Return the position of *value* in the domain.

        Raises
        ------
        InvalidKeyError
            If *value* is not a member (a value of another type, such as
            ``1`` in a boolean domain, is not a member).
        """
        value = _plain(value)
        if type(value) is self._type:
            idx = self._index.get(value)
            if idx is not None:
                return idx
        raise InvalidKeyError(f"Value {value!r} unknown to domain {self}")

    def get(self, index: int) -> Hashable:
        """Return the value at position *index*."""
        if not 0 <= index < len(self._values):
            raise InvalidKeyError(f"Index {index} out of range for domain {self}")
        return self._values[index]

    def is_valid(self, value: Any) -> bool:
        try:
            self.index(value)
            return True
        except InvalidKeyError:
            return False

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._values)

    def __contains__(self, value: Any) -> bool:
        return self.is_valid(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Domain):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Domain({list(self._values)!r})"


# ---------------------------------------------------------------------------
# Variable
# ---------------------------------------------------------------------------

class Variable:
    """A canonically indexed handle to a :class:`Domain`.

    The canonical index is assigned once by a :class:`VariableRegistry`
    and identifies the variable; the display name is neither unique nor
    used for equality.

    Parameters
    ----------
    domain : Domain
        The values the variable can take.
    name : str, optional
        Display name.  Defaults to ``"V<index>"``.
    registry : VariableRegistry, optional
        Registry assigning the canonical index.  Defaults to the registry
        of the active :class:`ModelContext`, else the default registry.
    """

    __slots__ = ("_domain", "_name", "_registry", "_index")

    def __init__(
        self,
        domain: Domain,
        name: Optional[str] = None,
        registry: Optional[VariableRegistry] = None,
    ) -> None:
        if not isinstance(domain, Domain):
            raise TypeError("domain must be a Domain")
        self._domain = domain
        self._name = name
        self._registry = registry if registry is not None else ModelContext.current_registry()
        self._index = self._registry.register(self)

    @classmethod
    def boolean(cls, name: Optional[str] = None, registry: Optional[VariableRegistry] = None) -> "Variable":
        return cls(Domain.boolean(), name, registry)

    @classmethod
    def nominal(
        cls,
        name: Optional[str],
        labels: Sequence[str],
        registry: Optional[VariableRegistry] = None,
    ) -> "Variable":
        return cls(Domain.nominal(labels), name, registry)

    @classmethod
    def number(cls, name: Optional[str], n: int, registry: Optional[VariableRegistry] = None) -> "Variable":
        return cls(Domain.number(n), name, registry)

    @property
    def domain(self) -> Domain:
        return self._domain

    @property
    def name(self) -> str:
        return self._name if self._name is not None else f"V{self._index}"

    @property
    def canonical_index(self) -> int:
        return self._index

    @property
    def registry(self) -> VariableRegistry:
        return self._registry

    @property
    def size(self) -> int:
        """Number of values in the domain."""
        return self._domain.size

    def index(self, value: Any) -> int:
        return self._domain.index(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Variable):
            return NotImplemented
        return self._index == other._index and self._registry is other._registry

    def __hash__(self) -> int:
        return hash((self._registry.uid, self._index))

    def __str__(self) -> str:
        return f"{self.name}.{self._index}"

    def __repr__(self) -> str:
        return f"Variable({self.name!r}, index={self._index}, size={self.size})"


class Assignment(NamedTuple):
    """A value assigned to a variable."""

    variable: Variable
    value: Any

    def __str__(self) -> str:
        return f"{self.variable.name}={self.value!r}"
