"""Tests for exactbn/core/table.py.

Covers:
- Mixed-radix index encoding (last parent fastest)
- Index/key bijection
- mask_index against direct recomputation
- Partial-key wildcard matching
- Error handling for malformed keys and indices
"""

from __future__ import annotations

import numpy as np
import pytest

from exactbn.core.errors import InvalidKeyError
from exactbn.core.table import EnumTable
from exactbn.core.types import Variable


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _three_vars(registry):
    a = Variable.boolean("A", registry)
    b = Variable.number("B", 3, registry)
    c = Variable.nominal("C", ["x", "y", "z", "w"], registry)
    return a, b, c


# ------------------------------------------------------------------ #
#  Index arithmetic
# ------------------------------------------------------------------ #

class TestIndexing:
    """Tests for the mixed-radix encoding."""

    def test_last_parent_fastest(self, registry):
        a, b = Variable.boolean("A", registry), Variable.number("B", 3, registry)
        t = EnumTable([a, b])
        assert t.get_index((True, 0)) == 0
        assert t.get_index((True, 1)) == 1
        assert t.get_index((False, 0)) == 3
        assert t.get_index((False, 2)) == 5
        assert t.get_key(5) == (False, 2)

    def test_size(self, registry):
        t = EnumTable(_three_vars(registry))
        assert t.size == 2 * 3 * 4
        assert len(t) == 0

    def test_bijection(self, registry):
        """get_index(get_key(i)) == i for every valid index."""
        t = EnumTable(_three_vars(registry))
        for i in range(t.size):
            assert t.get_index(t.get_key(i)) == i

    def test_matches_numpy_ravel(self, registry):
        """The encoding is numpy's C-order ravel over the cardinalities."""
        a, b, c = _three_vars(registry)
        t = EnumTable([a, b, c])
        key = (False, 1, "w")
        positions = (a.index(False), b.index(1), c.index("w"))
        assert t.get_index(key) == np.ravel_multi_index(positions, (2, 3, 4))

    def test_index_of_positions(self, registry):
        a, b, c = _three_vars(registry)
        t = EnumTable([a, b, c])
        assert t.index_of_positions((1, 2, 3)) == t.get_index((False, 2, "w"))
        assert t.index_of_positions((2, 3), offset=1) == 2 * 4 + 3

    def test_no_parents(self):
        t = EnumTable([])
        assert t.size == 1
        assert t.get_index(()) == 0
        assert t.get_key(0) == ()

    def test_duplicate_parents(self, registry):
        a = Variable.boolean("A", registry)
        with pytest.raises(InvalidKeyError, match="Duplicate"):
            EnumTable([a, a])

    def test_position(self, registry):
        a, b, c = _three_vars(registry)
        t = EnumTable([c, a])
        assert t.position(c) == 0
        assert t.position(a) == 1
        assert t.position(b) == -1


class TestMaskIndex:
    """mask_index maps an index into the table without some variables."""

    def test_against_recomputation(self, registry):
        a, b, c = _three_vars(registry)
        full = EnumTable([a, b, c])
        for drop in ([a], [b], [c], [a, c], [a, b, c]):
            kept = [v for v in full.parents if v not in drop]
            reduced = EnumTable(kept)
            for i in range(full.size):
                key = full.get_key(i)
                sub = tuple(k for v, k in zip(full.parents, key) if v not in drop)
                assert full.mask_index(i, set(drop)) == reduced.get_index(sub)

    def test_empty_mask_is_identity(self, registry):
        t = EnumTable(_three_vars(registry))
        assert [t.mask_index(i, set()) for i in range(t.size)] == list(range(t.size))


# ------------------------------------------------------------------ #
#  Values
# ------------------------------------------------------------------ #

class TestValues:
    """Tests for storing and retrieving values."""

    def test_set_get(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        idx = t.set((True, 2), "hello")
        assert idx == 2
        assert t.get((True, 2)) == "hello"
        assert t.get_value(2) == "hello"
        assert 2 in t
        assert len(t) == 1

    def test_missing_reads_none(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        assert t.get((False, 0)) is None

    def test_partial_key_values(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        for i in range(t.size):
            t.set_value(i, i)
        assert sorted(t.get_values((True, None))) == [0, 1, 2]
        assert sorted(t.get_values((None, 1))) == [1, 4]
        assert sorted(t.get_values()) == list(range(6))

    def test_get_indices(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        t.set((False, 1), 1.0)
        assert t.get_indices((None, None)) == list(range(6))
        assert t.get_indices((False, None)) == [4]
        assert t.get_indices((True, None)) == []

    def test_is_match(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        assert t.is_match((None, 2), 5)
        assert not t.is_match((True, None), 5)

    def test_items(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        t.set_value(3, "x")
        t.set_value(1, "y")
        assert dict(t.items()) == {3: "x", 1: "y"}


class TestErrors:
    """Malformed keys and indices raise InvalidKeyError."""

    def test_key_length(self, registry):
        a, b, _ = _three_vars(registry)
        with pytest.raises(InvalidKeyError, match="length is 1 not 2"):
            EnumTable([a, b]).get_index((True,))

    def test_none_in_key(self, registry):
        a, b, _ = _three_vars(registry)
        with pytest.raises(InvalidKeyError, match="None in key"):
            EnumTable([a, b]).get_index((None, 1))

    def test_value_outside_domain(self, registry):
        a, b, _ = _three_vars(registry)
        with pytest.raises(InvalidKeyError):
            EnumTable([a, b]).get_index((True, 7))

    def test_index_out_of_range(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        with pytest.raises(InvalidKeyError, match="Invalid index"):
            t.get_key(6)
        with pytest.raises(InvalidKeyError):
            t.set_value(-1, "x")


class TestDisplay:
    """Tests for the text dump."""

    def test_display_rows(self, registry):
        a, b, _ = _three_vars(registry)
        t = EnumTable([a, b])
        t.set((True, 0), "v")
        lines = t.display().splitlines()
        assert len(lines) == 1 + t.size
        assert "A.0" in lines[0]
        assert lines[1].endswith("v")
        assert lines[2].endswith("null")

    def test_repr(self, registry):
        a, b, _ = _three_vars(registry)
        assert "entries=0/6" in repr(EnumTable([a, b]))
