"""Sparse tables indexed by assignments to a fixed list of variables.

An :class:`EnumTable` encodes a key (one value per parent variable) as a
single integer using a mixed-radix system: parent ``i`` contributes
``index_i * step_i`` where ``step_i`` is the product of the domain sizes
of parents ``i+1 .. n-1``.  The last parent varies fastest, so the
encoding coincides with numpy's C-order ``ravel_multi_index`` over the
table's cardinalities.
"""

from __future__ import annotations

from typing import (
    Any,
    Collection,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from .errors import InvalidKeyError
from .types import Variable

V = TypeVar("V")

Key = Sequence[Any]


class EnumTable(Generic[V]):
    """Sparse associative array keyed by parent-variable assignments.

    Parameters
    ----------
    parents : sequence of Variable
        The variables forming the key, in key order.  The order fixes the
        index encoding; two tables built from the same variables in a
        different order are not interchangeable by index.

    Examples
    --------
    >>> a, b = Variable.boolean("A"), Variable.number("B", 3)
    >>> t = EnumTable([a, b])
    >>> t.get_index((False, 2))
    5
    >>> t.get_key(5)
    (False, 2)
    """

    def __init__(self, parents: Iterable[Variable]) -> None:
        self._parents: Tuple[Variable, ...] = tuple(parents)
        if len(set(self._parents)) != len(self._parents):
            raise InvalidKeyError("Duplicate variable in table parents")
        n = len(self._parents)
        self._step: List[int] = [0] * n
        prod = 1
        for i in range(n - 1, -1, -1):
            self._step[i] = prod
            prod *= self._parents[i].size
        self._size = prod
        self._position: Dict[Variable, int] = {v: i for i, v in enumerate(self._parents)}
        self._map: Dict[int, V] = {}

    # ----- structure ------------------------------------------------------

    @property
    def parents(self) -> List[Variable]:
        """The key variables, in key order."""
        return list(self._parents)

    @property
    def n_parents(self) -> int:
        return len(self._parents)

    @property
    def size(self) -> int:
        """Theoretical number of entries (at least the populated number)."""
        return self._size

    @property
    def labels(self) -> List[str]:
        """Canonical labels (``name.index``) of the parents."""
        return [str(v) for v in self._parents]

    def position(self, variable: Variable) -> int:
        """Return the key position of *variable*, or -1."""
        return self._position.get(variable, -1)

    def __contains__(self, index: object) -> bool:
        return index in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[int]:
        return iter(self._map)

    # ----- index arithmetic -----------------------------------------------

    def get_index(self, key: Key) -> int:
        """Return the index encoding the fully instantiated *key*."""
        if len(key) != len(self._parents):
            raise InvalidKeyError(
                f"Invalid key: length is {len(key)} not {len(self._parents)}"
            )
        total = 0
        for var, step, value in zip(self._parents, self._step, key):
            if value is None:
                raise InvalidKeyError(f"None in key for {var}")
            total += var.index(value) * step
        return total

    def get_key(self, index: int) -> Tuple[Any, ...]:
        """Return the key encoded by *index* (inverse of :meth:`get_index`)."""
        self._check_index(index)
        remain = index
        key = []
        for var, step in zip(self._parents, self._step):
            keyindex = remain // step
            key.append(var.domain.get(keyindex))
            remain -= keyindex * step
        return tuple(key)

    def get_key_indices(self, index: int) -> Tuple[int, ...]:
        """Return the per-parent domain positions encoded by *index*."""
        self._check_index(index)
        remain = index
        out = []
        for step in self._step:
            keyindex = remain // step
            out.append(keyindex)
            remain -= keyindex * step
        return tuple(out)

    def index_of_positions(self, positions: Sequence[int], offset: int = 0) -> int:
        """Encode domain positions for the parents starting at *offset*.

        Parents before *offset* contribute nothing, so partial indices can
        be summed.
        """
        return sum(p * s for p, s in zip(positions, self._step[offset:]))

    def is_match(self, key: Key, index: int) -> bool:
        """Check whether the partial *key* (``None`` = any) matches *index*."""
        if len(key) != len(self._parents):
            raise InvalidKeyError("Invalid index or key")
        self._check_index(index)
        remain = index
        for var, step, value in zip(self._parents, self._step, key):
            keyindex = remain // step
            if value is not None and var.index(value) != keyindex:
                return False
            remain -= keyindex * step
        return True

    def mask_index(self, index: int, mask: Collection[Variable]) -> int:
        """Map *index* to its index in a table without the *mask* variables.

        The reduced table keeps the remaining parents in their current
        order.  Runs in O(number of parents).
        """
        kept_sizes = [v.size for v in self._parents if v not in mask]
        newstep = [0] * len(kept_sizes)
        prod = 1
        for j in range(len(kept_sizes) - 1, -1, -1):
            newstep[j] = prod
            prod *= kept_sizes[j]
        remain = index
        total = 0
        j = 0
        for var, step in zip(self._parents, self._step):
            keyindex = remain // step
            remain -= keyindex * step
            if var not in mask:
                total += keyindex * newstep[j]
                j += 1
        return total

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._size:
            raise InvalidKeyError(f"Invalid index {index} for table of size {self._size}")

    # ----- values ---------------------------------------------------------

    def set_value(self, index: int, value: V) -> int:
        """Associate *value* with the entry at *index*."""
        self._check_index(index)
        self._map[index] = value
        return index

    def set(self, key: Key, value: V) -> int:
        """Associate *value* with *key*; return the entry index."""
        return self.set_value(self.get_index(key), value)

    def get_value(self, index: int) -> Optional[V]:
        """Value at *index*, or None if the entry is absent."""
        return self._map.get(index)

    def get(self, key: Key) -> Optional[V]:
        """Value for the fully instantiated *key*, or None if absent."""
        return self.get_value(self.get_index(key))

    def items(self) -> Iterator[Tuple[int, V]]:
        """Populated ``(index, value)`` pairs."""
        return iter(list(self._map.items()))

    def get_values(self, key: Optional[Key] = None) -> List[V]:
        """Populated values whose entries match the partial *key*.

        A ``None`` at a key position matches any value; omitting *key*
        returns all populated values.
        """
        if key is None or all(v is None for v in key):
            return [value for _, value in self.items()]
        return [value for index, value in self.items() if self.is_match(key, index)]

    def get_indices(self, key: Optional[Key] = None) -> List[int]:
        """Indices matching the partial *key*.

        With an all-wildcard key every theoretical index is returned;
        otherwise only populated entries are considered.
        """
        if key is None or all(v is None for v in key):
            return list(range(self._size))
        return [index for index in self if self.is_match(key, index)]

    # ----- display --------------------------------------------------------

    def _format_value(self, value: Optional[V]) -> str:
        return "null" if value is None else str(value)

    def display(self, tag: str = "P") -> str:
        """Return a text dump with one row per theoretical entry."""
        header = "Idx " + "".join(f"[{label[:10]:>10}]" for label in self.labels) + f" {tag}"
        rows = [header]
        for i in range(self._size):
            key = self.get_key(i)
            cells = "".join(f" {str(k)[:10]:<10} " for k in key)
            rows.append(f"{i:3d} {cells} {self._format_value(self.get_value(i))}")
        return "\n".join(rows)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self.labels)}; entries={len(self)}/{self.size})"
