"""Tests for exactbn/inference/factor.py.

Covers:
- Dense import/export
- Product against numpy broadcasting, commutativity and zero skipping
- Sum- and max-marginalization
- Evidence reduction, normalization and degeneracy errors
"""

from __future__ import annotations

import itertools
import math

import numpy as np
import pytest

from exactbn.core.errors import InvalidKeyError, ZeroProbabilityError
from exactbn.core.types import Variable
from exactbn.inference.factor import FactorTable


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

@pytest.fixture
def abc(registry):
    a = Variable.boolean("A", registry)
    b = Variable.number("B", 3, registry)
    c = Variable.boolean("C", registry)
    return a, b, c


def _random_factor(rng, variables):
    shape = tuple(v.size for v in variables)
    return FactorTable.from_array(variables, rng.random(shape))


def _same_function(f1: FactorTable, f2: FactorTable) -> bool:
    """True if both factors give the same value for every full assignment."""
    if set(f1.parents) != set(f2.parents):
        return False
    variables = f1.parents
    for values in itertools.product(*(v.domain.values for v in variables)):
        assignment = dict(zip(variables, values))
        k2 = tuple(assignment[v] for v in f2.parents)
        if not math.isclose(f1.get(values), f2.get(k2), rel_tol=1e-12, abs_tol=1e-15):
            return False
    return True


# ------------------------------------------------------------------ #
#  Construction
# ------------------------------------------------------------------ #

class TestConstruction:
    """Tests for building factors."""

    def test_from_array_roundtrip(self, abc):
        a, b, _ = abc
        values = np.arange(6, dtype=float).reshape(2, 3)
        f = FactorTable.from_array([a, b], values)
        np.testing.assert_allclose(f.to_array(), values)
        assert f.get((False, 2)) == 5.0
        assert f.variables == [a, b]
        assert f.cardinalities == [2, 3]

    def test_shape_mismatch(self, abc):
        a, b, _ = abc
        with pytest.raises(ValueError, match="does not match"):
            FactorTable.from_array([a, b], np.ones((2, 2)))

    def test_negative_entries(self, abc):
        a, _, _ = abc
        with pytest.raises(ValueError, match="non-negative"):
            FactorTable.from_array([a], [0.5, -0.1])

    def test_missing_entries_read_zero(self, abc):
        a, b, _ = abc
        f = FactorTable([a, b])
        assert f.get((True, 1)) == 0.0
        assert f.get_sum() == 0.0

    def test_add_accumulates(self, abc):
        a, _, _ = abc
        f = FactorTable([a])
        f.add((True,), 0.25)
        f.add((True,), 0.5)
        assert f.get((True,)) == 0.75

    def test_atomic(self):
        f = FactorTable([])
        f.set_value(0, 2.0)
        assert f.is_atomic()
        assert f.get(()) == 2.0


# ------------------------------------------------------------------ #
#  Product
# ------------------------------------------------------------------ #

class TestProduct:
    """Tests for FactorTable.product."""

    def test_variable_order(self, abc):
        a, b, c = abc
        f1 = FactorTable([b, a])
        f2 = FactorTable([c, a])
        assert FactorTable.product(f1, f2).parents == [b, a, c]

    def test_against_numpy(self, abc):
        rng = np.random.default_rng(0)
        a, b, c = abc
        f1 = _random_factor(rng, [a, b])
        f2 = _random_factor(rng, [b, c])
        expected = f1.to_array()[:, :, None] * f2.to_array()[None, :, :]
        np.testing.assert_allclose((f1 * f2).to_array(), expected)

    def test_commutative_up_to_order(self, abc):
        rng = np.random.default_rng(1)
        a, b, c = abc
        f1 = _random_factor(rng, [a, b])
        f2 = _random_factor(rng, [c, b])
        assert _same_function(FactorTable.product(f1, f2), FactorTable.product(f2, f1))

    def test_disjoint_is_outer_product(self, abc):
        rng = np.random.default_rng(2)
        a, b, _ = abc
        f1 = _random_factor(rng, [a])
        f2 = _random_factor(rng, [b])
        np.testing.assert_allclose(
            (f1 * f2).to_array(), np.outer(f1.to_array(), f2.to_array())
        )

    def test_atomic_scales(self, abc):
        a, _, _ = abc
        scalar = FactorTable([])
        scalar.set_value(0, 0.5)
        f = FactorTable.from_array([a], [0.2, 0.8])
        np.testing.assert_allclose((scalar * f).to_array(), [0.1, 0.4])

    def test_zero_entries_skipped(self, abc):
        a, b, _ = abc
        f1 = FactorTable.from_array([a], [0.0, 1.0])
        f2 = FactorTable.from_array([a, b], np.ones((2, 3)))
        product = f1 * f2
        assert len(product) == 3
        np.testing.assert_allclose(product.to_array(), [[0, 0, 0], [1, 1, 1]])

    def test_flags(self, abc):
        a, b, _ = abc
        f1 = FactorTable.from_array([a], [0.5, 0.5])
        f2 = FactorTable.from_array([b], [0.2, 0.3, 0.5])
        f2.evidenced = True
        product = f1 * f2
        assert product.function
        assert product.evidenced
        assert not f1.function

    def test_product_all(self, abc):
        rng = np.random.default_rng(3)
        a, b, c = abc
        factors = [_random_factor(rng, vs) for vs in ([a, b], [c], [b, c])]
        expected = factors[0] * factors[1] * factors[2]
        assert _same_function(FactorTable.product_all(factors), expected)

    def test_product_all_empty(self):
        with pytest.raises(ValueError):
            FactorTable.product_all([])

    def test_mul_rejects_other_types(self, abc):
        a, _, _ = abc
        with pytest.raises(TypeError):
            FactorTable([a]) * 2


# ------------------------------------------------------------------ #
#  Marginalization
# ------------------------------------------------------------------ #

class TestMarginalize:
    """Tests for sum- and max-marginalization."""

    def test_conserves_mass(self, abc):
        rng = np.random.default_rng(4)
        f = _random_factor(rng, list(abc))
        for drop in ([abc[0]], [abc[1], abc[2]], list(abc)):
            assert math.isclose(f.marginalize(drop).get_sum(), f.get_sum())

    def test_against_numpy(self, abc):
        rng = np.random.default_rng(5)
        a, b, c = abc
        f = _random_factor(rng, [a, b, c])
        m = f.marginalize([b])
        assert m.parents == [a, c]
        assert m.function
        np.testing.assert_allclose(m.to_array(), f.to_array().sum(axis=1))

    def test_all_variables_gives_atomic(self, abc):
        a, b, _ = abc
        f = FactorTable.from_array([a, b], np.full((2, 3), 0.5))
        m = f.marginalize([a, b])
        assert m.is_atomic()
        assert math.isclose(m.get(()), 3.0)

    def test_unknown_variable(self, abc):
        a, b, c = abc
        with pytest.raises(InvalidKeyError, match="not in factor"):
            FactorTable([a, b]).marginalize([c])

    def test_marginalize_after_product(self, registry):
        """Summing out a chain's middle variable matches direct enumeration."""
        x, y, z = (Variable.boolean(n, registry) for n in "XYZ")
        pxy = FactorTable.from_array([x, y], [[0.3, 0.2], [0.1, 0.4]])
        pyz = FactorTable.from_array([y, z], [[0.9, 0.1], [0.25, 0.75]])
        m = (pxy * pyz).marginalize([y])
        for xv, zv in itertools.product((True, False), repeat=2):
            direct = sum(pxy.get((xv, yv)) * pyz.get((yv, zv)) for yv in (True, False))
            assert math.isclose(m.get((xv, zv)), direct)

    def test_max_marginalize(self, abc):
        rng = np.random.default_rng(6)
        a, b, c = abc
        f = _random_factor(rng, [a, b, c])
        m, traceback = f.max_marginalize([b])
        arr = f.to_array()
        np.testing.assert_allclose(m.to_array(), arr.max(axis=1))
        assert traceback.parents == [a, c]
        for av, cv in itertools.product(a.domain.values, c.domain.values):
            (best,) = traceback.get((av, cv))
            assert best == b.domain.get(int(np.argmax(arr[a.index(av), :, c.index(cv)])))

    def test_max_marginalize_several(self, abc):
        rng = np.random.default_rng(7)
        a, b, c = abc
        f = _random_factor(rng, [a, b, c])
        m, traceback = f.max_marginalize([c, a])
        best = m.get((1,))
        cv, av = traceback.get((1,))
        assert math.isclose(best, f.get((av, 1, cv)))
        assert math.isclose(best, f.to_array()[:, 1, :].max())


# ------------------------------------------------------------------ #
#  Reduction and normalization
# ------------------------------------------------------------------ #

class TestReduceNormalize:
    """Tests for reduce, normalize and related helpers."""

    def test_reduce_is_slice(self, abc):
        rng = np.random.default_rng(8)
        a, b, c = abc
        f = _random_factor(rng, [a, b, c])
        r = f.reduce(b, 2)
        assert r.parents == [a, c]
        assert r.evidenced
        np.testing.assert_allclose(r.to_array(), f.to_array()[:, 2, :])

    def test_reduce_invalid_value(self, abc):
        a, b, _ = abc
        with pytest.raises(InvalidKeyError):
            FactorTable([a, b]).reduce(b, 5)

    def test_normalize(self, abc):
        rng = np.random.default_rng(9)
        f = _random_factor(rng, list(abc))
        n = f.normalize()
        assert math.isclose(n.get_sum(), 1.0)
        np.testing.assert_allclose(n.to_array(), f.to_array() / f.to_array().sum())

    def test_normalize_zero_raises(self, abc):
        a, b, _ = abc
        f = FactorTable.from_array([a, b], np.zeros((2, 3)))
        with pytest.raises(ZeroProbabilityError, match="all entries are zero"):
            f.normalize()

    def test_log_likelihood(self, abc):
        a, _, _ = abc
        f = FactorTable.from_array([a], [0.01, 0.02])
        assert math.isclose(f.log_likelihood(), math.log(0.03))
        with pytest.raises(ZeroProbabilityError):
            FactorTable([a]).log_likelihood()

    def test_argmax_lowest_on_ties(self, abc):
        a, b, _ = abc
        f = FactorTable.from_array([a, b], [[0.1, 0.4, 0.2], [0.4, 0.0, 0.3]])
        assert f.argmax() == 1
        with pytest.raises(ZeroProbabilityError):
            FactorTable([a]).argmax()

    def test_permute(self, abc):
        rng = np.random.default_rng(10)
        a, b, c = abc
        f = _random_factor(rng, [a, b, c])
        p = f.permute([c, a, b])
        assert p.parents == [c, a, b]
        np.testing.assert_allclose(p.to_array(), f.to_array().transpose(2, 0, 1))
        with pytest.raises(InvalidKeyError):
            f.permute([a, b])

    def test_point_mass(self, abc):
        _, b, _ = abc
        f = FactorTable.point_mass(b, 1)
        np.testing.assert_allclose(f.to_array(), [0.0, 1.0, 0.0])
        assert f.evidenced

    def test_display(self, abc):
        a, _, _ = abc
        f = FactorTable.from_array([a], [0.25, 0.75])
        text = f.display()
        assert "0.25000" in text
        assert "0.75000" in text


# ------------------------------------------------------------------ #
#  Wide factors
# ------------------------------------------------------------------ #

class TestWideFactors:
    """Products and reductions over many variables at once."""

    def test_product_and_sum_out_against_einsum(self, registry):
        rng = np.random.default_rng(11)
        xs = [Variable.number(f"X{i}", 3, registry) for i in range(12)]
        left, right = xs[:8], xs[4:]
        f1 = _random_factor(rng, left)
        f2 = _random_factor(rng, right)

        product = f1 * f2
        assert product.parents == xs
        assert product.size == 3 ** 12
        expected = np.einsum(
            f1.to_array(), list(range(8)), f2.to_array(), list(range(4, 12)), list(range(12))
        )
        np.testing.assert_allclose(product.to_array(), expected)

        m = product.marginalize(xs[2:10])
        assert m.parents == xs[:2] + xs[10:]
        np.testing.assert_allclose(m.to_array(), expected.sum(axis=tuple(range(2, 10))))

    def test_max_marginalize_ties_go_to_lowest_index(self, abc):
        a, b, _ = abc
        f = FactorTable([a, b])
        f.set((True, 2), 0.5)
        f.set((True, 0), 0.5)
        f.set((False, 1), 0.25)
        m, traceback = f.max_marginalize([b])
        np.testing.assert_allclose(m.to_array(), [0.5, 0.25])
        assert traceback.get((True,)) == (0,)
        assert traceback.get((False,)) == (1,)

    def test_max_marginalize_all_zero_rows_keep_traceback(self, abc):
        a, b, _ = abc
        f = FactorTable.from_array([a, b], [[0.0, 0.0, 0.0], [0.1, 0.3, 0.2]])
        m, traceback = f.max_marginalize([b])
        np.testing.assert_allclose(m.to_array(), [0.0, 0.3])
        assert traceback.get((True,)) == (0,)
        assert traceback.get((False,)) == (1,)

    def test_populated_entries_are_non_zero(self, abc):
        a, b, _ = abc
        f = FactorTable.from_array([a, b], [[0.0, 0.2, 0.0], [0.4, 0.0, 0.0]])
        assert len(f) == 2
        assert list(f) == [1, 3]
        assert dict(f.items()) == {1: 0.2, 3: 0.4}
        assert 1 in f
        assert 0 not in f
        assert f.get_values((False, None)) == [0.4]

    def test_from_array_copies_input(self, abc):
        a, _, _ = abc
        values = np.array([0.2, 0.8])
        f = FactorTable.from_array([a], values)
        values[0] = 0.9
        assert f.get((True,)) == 0.2
