"""Exact inference for discrete Bayesian networks by variable elimination.

Provides:

* :class:`VarElim` – the engine.  ``instantiate`` binds a network and an
  evidence snapshot, ``make_query``/``make_mpe`` build immutable
  :class:`Query` handles and ``infer`` answers them.
* :func:`variable_elimination` – posterior marginals in one call.
* :func:`most_probable_explanation` – the MPE assignment in one call.

Belief queries prune nodes that cannot affect the posterior before any
factor is built; MPE queries use every node.  Evidence is held by the
engine, never written to the nodes, so separate engines can query one
network with different evidence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.config import InferenceConfig
from ..core.errors import InvalidKeyError
from ..core.table import EnumTable
from ..core.types import Assignment, Variable
from ..distributions.conditional import BNode
from ..networks.dag import BNet, NodeRef
from .factor import FactorTable
from .ordering import get_ordering
from .result import QueryResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Query:
    """Immutable query handle.

    Attributes
    ----------
    variables : tuple of Variable
        Variables kept in the result table, in result order.
    mpe : bool
        Max out the other variables instead of summing them out.
    normalize : bool
        Normalize the result table (belief queries).
    nominated : tuple of Variable
        For nominated MPE queries, the variables whose d-connected nodes
        make up the factors.  Empty for every other query.
    """

    variables: Tuple[Variable, ...]
    mpe: bool = False
    normalize: bool = True
    nominated: Tuple[Variable, ...] = ()


class VarElim:
    """Variable elimination engine.

    Parameters
    ----------
    config : InferenceConfig, optional
        Ordering heuristic, factor-width warning threshold and pruning.

    Examples
    --------
    >>> bn = build_alarm()
    >>> ve = VarElim().instantiate(bn, {"JohnCalls": True, "MaryCalls": True})
    >>> ve.infer(ve.make_query("Burglary")).query(bn.get_node("Burglary").variable)
    EnumDistrib({True: 0.2842, False: 0.7158})
    """

    def __init__(self, config: Optional[InferenceConfig] = None) -> None:
        self.config = config or InferenceConfig()
        self._ordering = get_ordering(self.config.ordering)
        self._network: Optional[BNet] = None
        self._evidence: Dict[Variable, Any] = {}

    # ------------------------------------------------------------------ #
    #  Setup
    # ------------------------------------------------------------------ #

    def instantiate(
        self,
        network: BNet,
        evidence: Optional[Mapping[NodeRef, Any]] = None,
    ) -> "VarElim":
        """Bind *network* and snapshot the evidence.

        Parameters
        ----------
        network : BNet
            The network to query; compiled if needed.
        evidence : mapping, optional
            ``{node reference: value}``.  Defaults to the current node
            instances.  ``None`` values are ignored.

        Raises
        ------
        UnknownVariableError
            If an evidence key is not in the network.
        InvalidKeyError
            If an evidence value is not in the variable's domain.
        """
        if not network.is_compiled:
            network.compile()
        if evidence is None:
            snapshot = network.get_evidence()
        else:
            snapshot = {}
            for ref, value in evidence.items():
                if value is None:
                    continue
                var = network.get_node(ref).variable
                var.index(value)
                snapshot[var] = value
        self._network = network
        self._evidence = snapshot
        logger.debug(
            "Instantiated %s with evidence %s",
            network.name, {v.name: x for v, x in snapshot.items()},
        )
        return self

    @property
    def network(self) -> BNet:
        if self._network is None:
            raise RuntimeError("No network; call instantiate() first")
        return self._network

    @property
    def evidence(self) -> Dict[Variable, Any]:
        return dict(self._evidence)

    def _variables(self, refs: Sequence[NodeRef]) -> Tuple[Variable, ...]:
        variables = tuple(self.network.get_node(r).variable for r in refs)
        if len(set(variables)) != len(variables):
            raise InvalidKeyError("Duplicate query variable")
        return variables

    def make_query(self, *variables: NodeRef, normalize: bool = True) -> Query:
        """Query for the joint of *variables* given the evidence.

        Raises
        ------
        UnknownVariableError
            If a variable is not in the network.
        """
        return Query(self._variables(variables), mpe=False, normalize=normalize)

    def make_mpe(self, *variables: NodeRef) -> Query:
        """Most-probable-explanation query.

        Every non-evidence variable not listed is maxed out; the listed
        ones are kept in the result table and maximised last.
        """
        return Query(self._variables(variables), mpe=True, normalize=False)

    def make_nominated_mpe(self, *variables: NodeRef) -> Query:
        """MPE query restricted to the nodes d-connected to *variables*.

        Only the nodes reachable from the nominated variables along
        active trails (evidence nodes on those trails included) contribute
        factors, and every non-evidence variable in them is maximised
        out.  The result table is atomic and holds the joint maximum.
        """
        return Query((), mpe=True, normalize=False, nominated=self._variables(variables))

    # ------------------------------------------------------------------ #
    #  Inference
    # ------------------------------------------------------------------ #

    def _select_nodes(self, query: Query) -> Tuple[List[BNode], bool]:
        """Nodes contributing a factor, and whether their product is exact mass."""
        network = self.network
        evidence = list(self._evidence)
        if query.nominated:
            return network.d_connected(query.nominated, evidence, include_evidence=True), False
        if query.mpe or not self.config.prune_irrelevant:
            return network.nodes, True
        if query.normalize:
            return network.requisite(query.variables, evidence), False
        return network.relevant(query.variables, evidence).nodes, True

    def _check_width(self, factor: FactorTable) -> None:
        if factor.n_parents > self.config.max_factor_variables:
            logger.warning(
                "Intermediate factor over %d variables (limit %d): %s",
                factor.n_parents, self.config.max_factor_variables, factor.labels,
            )

    def infer(self, query: Query) -> QueryResult:
        """Answer *query*.

        Raises
        ------
        UnknownVariableError
            If a query variable is not in the bound network.
        ZeroProbabilityError
            If the evidence has probability zero and the query normalizes
            or asks for an MPE.
        """
        network = self.network
        for var in query.variables:
            network.get_node(var)
        evidence = self._evidence

        nodes, exact_mass = self._select_nodes(query)
        factors = [node.make_factor(evidence) for node in nodes]
        rank = {node.variable: i for i, node in enumerate(network.nodes)}
        keep = set(query.variables)

        pending: List[Variable] = []
        for ft in factors:
            for var in ft.parents:
                if var not in keep and var not in pending:
                    pending.append(var)
        logger.debug(
            "%s query on %s: %d of %d nodes, %d to eliminate",
            "MPE" if query.mpe else "Belief", [v.name for v in query.variables],
            len(nodes), len(network), len(pending),
        )

        order: List[Variable] = []
        tracebacks: List[Tuple[Variable, EnumTable]] = []
        while pending:
            var = self._ordering(pending, factors, rank)
            pending.remove(var)
            related = [ft for ft in factors if ft.position(var) >= 0]
            factors = [ft for ft in factors if ft.position(var) < 0]
            product = FactorTable.product_all(related)
            self._check_width(product)
            if query.mpe:
                reduced, traceback = product.max_marginalize([var])
                tracebacks.append((var, traceback))
            else:
                reduced = product.marginalize([var])
            factors.append(reduced)
            order.append(var)
        logger.debug("Elimination order: %s", [v.name for v in order])

        for var in query.variables:
            if var in evidence:
                factors.append(FactorTable.point_mass(var, evidence[var]))
        if factors:
            joint = FactorTable.product_all(factors)
        else:
            joint = FactorTable([], function=True)
            joint.set_value(0, 1.0)
        joint = joint.permute(query.variables)

        if query.mpe:
            return self._backtrack(query, joint, tracebacks)
        likelihood = joint.get_sum() if exact_mass else None
        return QueryResult(query, joint, likelihood=likelihood)

    def _backtrack(
        self,
        query: Query,
        joint: FactorTable,
        tracebacks: List[Tuple[Variable, EnumTable]],
    ) -> QueryResult:
        index = joint.argmax()
        probability = joint.get_value(index)
        assignment: Dict[Variable, Any] = dict(zip(query.variables, joint.get_key(index)))
        for var, traceback in reversed(tracebacks):
            key = tuple(assignment[p] for p in traceback.parents)
            (assignment[var],) = traceback.get(key)
        assignment.update(self._evidence)
        mpe = [
            Assignment(node.variable, assignment[node.variable])
            for node in self.network.nodes
            if node.variable in assignment
        ]
        logger.debug("MPE %s with probability %g", [str(a) for a in mpe], probability)
        return QueryResult(query, joint, mpe=mpe, mpe_probability=probability)

    def log_likelihood(self) -> float:
        """Natural log of the probability of the evidence.

        Raises
        ------
        ZeroProbabilityError
            If the evidence is impossible.
        """
        result = self.infer(Query((), mpe=False, normalize=False))
        return result.factor.log_likelihood()


# ------------------------------------------------------------------ #
#  Functional interface
# ------------------------------------------------------------------ #

def variable_elimination(
    network: BNet,
    query: Union[NodeRef, Sequence[NodeRef]],
    evidence: Optional[Mapping[NodeRef, Any]] = None,
    config: Optional[InferenceConfig] = None,
) -> Dict[str, np.ndarray]:
    """Posterior marginals of one or more variables.

    Parameters
    ----------
    network : BNet
        The network.
    query : node reference or sequence of node references
        Variable(s) whose marginals are wanted.
    evidence : mapping, optional
        ``{node reference: value}``.  Defaults to the node instances.
    config : InferenceConfig, optional
        Engine settings.

    Returns
    -------
    dict of str -> numpy.ndarray
        Marginal distributions keyed by node name, in domain order.
    """
    engine = VarElim(config).instantiate(network, evidence)
    refs = [query] if isinstance(query, (str, Variable, BNode)) else list(query)
    out: Dict[str, np.ndarray] = {}
    for ref in refs:
        node = network.get_node(ref)
        result = engine.infer(engine.make_query(node.variable))
        out[node.name] = result.query(node.variable).probs
    return out


def most_probable_explanation(
    network: BNet,
    evidence: Optional[Mapping[NodeRef, Any]] = None,
    config: Optional[InferenceConfig] = None,
) -> Tuple[Dict[str, Any], float]:
    """Most probable joint assignment given *evidence*.

    Returns
    -------
    (dict, float)
        ``{node name: value}`` for every node, and the joint probability
        of that assignment.
    """
    engine = VarElim(config).instantiate(network, evidence)
    result = engine.infer(engine.make_mpe())
    return {a.variable.name: a.value for a in result.get_mpe()}, result.mpe_probability
