"""Network construction utilities for exactbn."""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from ..core.context import VariableRegistry
from ..core.types import Domain, Variable
from ..distributions.conditional import CPT
from .dag import BNet


def _random_cpt(
    rng: np.random.Generator,
    variable: Variable,
    parents: List[Variable],
) -> CPT:
    shape = tuple(p.size for p in parents) + (variable.size,)
    rows = rng.dirichlet(np.ones(variable.size), size=int(np.prod(shape[:-1], dtype=int)))
    return CPT.from_array(variable, parents, rows.reshape(shape))


def build_tree(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    registry: Optional[VariableRegistry] = None,
) -> BNet:
    """Build a tree-structured Bayesian network.

    Node ``i``'s children are ``2i+1`` and ``2i+2``.  Every table is drawn
    from a flat Dirichlet.
    """
    rng = np.random.default_rng(seed)
    domain = Domain.number(num_states)
    variables = [Variable(domain, f"X{i}", registry) for i in range(num_nodes)]
    nodes = []
    for i, var in enumerate(variables):
        parents = [variables[(i - 1) // 2]] if i > 0 else []
        nodes.append(_random_cpt(rng, var, parents))
    return BNet(nodes, name=f"tree{num_nodes}")


def build_chain(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    registry: Optional[VariableRegistry] = None,
) -> BNet:
    """Build a chain-structured Bayesian network (Markov chain)."""
    rng = np.random.default_rng(seed)
    domain = Domain.number(num_states)
    variables = [Variable(domain, f"X{i}", registry) for i in range(num_nodes)]
    nodes = [
        _random_cpt(rng, var, [variables[i - 1]] if i > 0 else [])
        for i, var in enumerate(variables)
    ]
    return BNet(nodes, name=f"chain{num_nodes}")


def build_alarm(registry: Optional[VariableRegistry] = None) -> BNet:
    """The burglary alarm network (Russell & Norvig).

    Boolean nodes ``Burglary``, ``Earthquake``, ``Alarm``, ``JohnCalls``
    and ``MaryCalls``; values are ordered ``(True, False)``.
    """
    b = Variable.boolean("Burglary", registry)
    e = Variable.boolean("Earthquake", registry)
    a = Variable.boolean("Alarm", registry)
    j = Variable.boolean("JohnCalls", registry)
    m = Variable.boolean("MaryCalls", registry)
    alarm = CPT(a, [b, e])
    alarm.put((True, True), [0.95, 0.05])
    alarm.put((True, False), [0.94, 0.06])
    alarm.put((False, True), [0.29, 0.71])
    alarm.put((False, False), [0.001, 0.999])
    return BNet(
        [
            CPT(b, prior=[0.001, 0.999]),
            CPT(e, prior=[0.002, 0.998]),
            alarm,
            CPT.from_array(j, [a], [[0.90, 0.10], [0.05, 0.95]]),
            CPT.from_array(m, [a], [[0.70, 0.30], [0.01, 0.99]]),
        ],
        name="alarm",
    )


def build_sprinkler(registry: Optional[VariableRegistry] = None) -> BNet:
    """The cloudy/sprinkler/rain/wet-grass network.

    Contains an undirected cycle (Cloudy -> Sprinkler -> WetGrass and
    Cloudy -> Rain -> WetGrass), so it is not a polytree.
    """
    c = Variable.boolean("Cloudy", registry)
    s = Variable.boolean("Sprinkler", registry)
    r = Variable.boolean("Rain", registry)
    w = Variable.boolean("WetGrass", registry)
    return BNet(
        [
            CPT(c, prior=[0.5, 0.5]),
            CPT.from_array(s, [c], [[0.1, 0.9], [0.5, 0.5]]),
            CPT.from_array(r, [c], [[0.8, 0.2], [0.2, 0.8]]),
            CPT.from_array(
                w,
                [s, r],
                [[[0.99, 0.01], [0.90, 0.10]],
                 [[0.90, 0.10], [0.0, 1.0]]],
            ),
        ],
        name="sprinkler",
    )
