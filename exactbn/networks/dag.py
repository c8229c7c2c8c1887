"""Directed acyclic graph of conditional probability nodes.

Provides :class:`BNet`, the compiled Bayesian network consumed by the
inference engine.  Nodes are unique by name and by variable.  The graph
structure is derived lazily: adding or removing a node marks the network
uncompiled and the next structural query rebuilds the
:class:`networkx.DiGraph`, the parent/child indices and the topological
order.

Structural queries:

* :meth:`BNet.parents_of`, :meth:`BNet.children_of`,
  :meth:`BNet.ancestors_of`, :meth:`BNet.descendants_of`,
  :meth:`BNet.markov_blanket`.
* :meth:`BNet.d_connected` – nodes reachable from a query along active
  trails given evidence.
* :meth:`BNet.requisite` – nodes whose tables are needed to answer a
  query given evidence.
* :meth:`BNet.relevant` – the ancestral sub-network of a query.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple, Union

import networkx as nx

from ..core.errors import NetworkStructureError, UnknownVariableError
from ..core.types import Variable
from ..distributions.conditional import BNode

logger = logging.getLogger(__name__)

NodeRef = Union[str, Variable, BNode]
NodeRefs = Union[NodeRef, Iterable[NodeRef]]
EvidenceLike = Union[Mapping[NodeRef, Any], Iterable[NodeRef]]

_UP = "up"
_DOWN = "down"


class BNet:
    """Bayesian network over :class:`BNode` objects.

    Parameters
    ----------
    nodes : iterable of BNode, optional
        Initial nodes, in any order.
    name : str
        Display name.

    Examples
    --------
    >>> a, b = Variable.boolean("A"), Variable.boolean("B")
    >>> bn = BNet([CPT(a, prior=[0.4, 0.6]),
    ...            CPT.from_array(b, [a], [[0.9, 0.1], [0.3, 0.7]])])
    >>> [n.name for n in bn.children_of("A")]
    ['B']
    """

    def __init__(self, nodes: Iterable[BNode] = (), name: str = "BNet") -> None:
        self.name = name
        self._nodes: Dict[str, BNode] = {}
        self._by_var: Dict[Variable, BNode] = {}
        self._graph: nx.DiGraph = nx.DiGraph()
        self._order: List[BNode] = []
        self._rank: Dict[Variable, int] = {}
        self._compiled = False
        self.add(*nodes)

    # ------------------------------------------------------------------ #
    #  Construction
    # ------------------------------------------------------------------ #

    def add(self, *nodes: BNode) -> None:
        """Add nodes to the network.

        Raises
        ------
        NetworkStructureError
            If a node's name or variable is already in the network.
        """
        for node in nodes:
            if not isinstance(node, BNode):
                raise TypeError(f"Expected a BNode, got {type(node).__name__}")
            if node.variable in self._by_var:
                raise NetworkStructureError(
                    f"Variable {node.variable} already belongs to node "
                    f"'{self._by_var[node.variable].name}'"
                )
            if node.name in self._nodes:
                raise NetworkStructureError(f"Node '{node.name}' already exists")
            self._nodes[node.name] = node
            self._by_var[node.variable] = node
            self._compiled = False

    def remove(self, ref: NodeRef) -> BNode:
        """Remove and return a node.  Its children keep their parent references."""
        node = self._lookup(ref)
        del self._nodes[node.name]
        del self._by_var[node.variable]
        self._compiled = False
        return node

    @property
    def is_compiled(self) -> bool:
        return self._compiled

    def compile(self) -> None:
        """Rebuild the graph, the indices and the topological order.

        Raises
        ------
        NetworkStructureError
            If a node declares a parent variable that no node owns, or if
            the graph has a cycle.
        """
        graph = nx.DiGraph()
        for name, node in self._nodes.items():
            graph.add_node(name, node=node)
        for node in self._nodes.values():
            for pvar in node.parents:
                parent = self._by_var.get(pvar)
                if parent is None:
                    raise NetworkStructureError(
                        f"Dangling parent reference: {pvar} of node '{node.name}'"
                    )
                graph.add_edge(parent.name, node.name)

        if not nx.is_directed_acyclic_graph(graph):
            cycle = [u for u, _ in nx.find_cycle(graph)]
            raise NetworkStructureError(f"Network has a cycle: {' -> '.join(cycle)}")

        insertion = {name: i for i, name in enumerate(self._nodes)}
        names = nx.lexicographical_topological_sort(graph, key=insertion.__getitem__)
        self._graph = graph
        self._order = [self._nodes[n] for n in names]
        self._rank = {node.variable: i for i, node in enumerate(self._order)}
        self._compiled = True
        logger.debug(
            "Compiled %s: %d nodes, %d edges",
            self.name, graph.number_of_nodes(), graph.number_of_edges(),
        )

    def _ensure_compiled(self) -> None:
        if not self._compiled:
            self.compile()

    # ------------------------------------------------------------------ #
    #  Lookup
    # ------------------------------------------------------------------ #

    def _lookup(self, ref: NodeRef) -> BNode:
        if isinstance(ref, BNode):
            node = self._nodes.get(ref.name)
            if node is ref:
                return node
        elif isinstance(ref, Variable):
            node = self._by_var.get(ref)
            if node is not None:
                return node
        elif isinstance(ref, str):
            node = self._nodes.get(ref)
            if node is not None:
                return node
        else:
            raise TypeError(f"Cannot resolve {type(ref).__name__} to a node")
        raise UnknownVariableError(f"'{ref}' is not in network {self.name}")

    def get_node(self, ref: NodeRef) -> BNode:
        """Return the node identified by name, variable or node object.

        Raises
        ------
        UnknownVariableError
            If no such node is in the network.
        """
        return self._lookup(ref)

    def _resolve(self, refs: NodeRefs) -> List[BNode]:
        if isinstance(refs, (str, Variable, BNode)):
            return [self._lookup(refs)]
        return [self._lookup(r) for r in refs]

    def _resolve_evidence(self, evidence: Optional[EvidenceLike]) -> Set[str]:
        if evidence is None:
            return {node.name for node in self._nodes.values() if node.instance is not None}
        if isinstance(evidence, (str, Variable, BNode)):
            evidence = [evidence]
        return {self._lookup(r).name for r in evidence}

    def _in_order(self, names: Iterable[str]) -> List[BNode]:
        names = set(names)
        return [node for node in self._order if node.name in names]

    def __contains__(self, ref: object) -> bool:
        try:
            self._lookup(ref)  # type: ignore[arg-type]
        except (UnknownVariableError, TypeError):
            return False
        return True

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[BNode]:
        return iter(self.nodes)

    # ------------------------------------------------------------------ #
    #  Structure
    # ------------------------------------------------------------------ #

    @property
    def nodes(self) -> List[BNode]:
        """Nodes in topological order (parents before children)."""
        self._ensure_compiled()
        return list(self._order)

    @property
    def names(self) -> List[str]:
        return [node.name for node in self.nodes]

    @property
    def variables(self) -> List[Variable]:
        return [node.variable for node in self.nodes]

    @property
    def roots(self) -> List[BNode]:
        return [node for node in self.nodes if node.is_root()]

    def rank(self, ref: NodeRef) -> int:
        """Position of a node in the topological order."""
        self._ensure_compiled()
        return self._rank[self._lookup(ref).variable]

    def parents_of(self, ref: NodeRef) -> List[BNode]:
        self._ensure_compiled()
        return self._in_order(self._graph.predecessors(self._lookup(ref).name))

    def children_of(self, ref: NodeRef) -> List[BNode]:
        self._ensure_compiled()
        return self._in_order(self._graph.successors(self._lookup(ref).name))

    def ancestors_of(self, refs: NodeRefs) -> List[BNode]:
        """Strict ancestors of the given node(s), excluding the nodes themselves."""
        self._ensure_compiled()
        start = {n.name for n in self._resolve(refs)}
        found: Set[str] = set()
        for name in start:
            found |= nx.ancestors(self._graph, name)
        return self._in_order(found - start)

    def descendants_of(self, refs: NodeRefs) -> List[BNode]:
        """Strict descendants of the given node(s), excluding the nodes themselves."""
        self._ensure_compiled()
        start = {n.name for n in self._resolve(refs)}
        found: Set[str] = set()
        for name in start:
            found |= nx.descendants(self._graph, name)
        return self._in_order(found - start)

    def markov_blanket(self, ref: NodeRef) -> List[BNode]:
        """Parents, children and the children's other parents of a node."""
        self._ensure_compiled()
        name = self._lookup(ref).name
        blanket = set(self._graph.predecessors(name))
        for child in self._graph.successors(name):
            blanket.add(child)
            blanket.update(self._graph.predecessors(child))
        blanket.discard(name)
        return self._in_order(blanket)

    # ------------------------------------------------------------------ #
    #  Relevance
    # ------------------------------------------------------------------ #

    def _active_trails(self, sources: Iterable[str], observed: Set[str]) -> Set[Tuple[str, str]]:
        """Visit (node, direction) pairs along active trails from *sources*.

        ``"up"`` means the node was entered from a child, ``"down"`` from a
        parent.  Follows Koller & Friedman, Algorithm 3.1.
        """
        with_ancestors = set(observed)
        for name in observed:
            with_ancestors |= nx.ancestors(self._graph, name)

        pending: List[Tuple[str, str]] = [(name, _UP) for name in sources]
        visited: Set[Tuple[str, str]] = set()
        while pending:
            name, direction = pending.pop()
            if (name, direction) in visited:
                continue
            visited.add((name, direction))
            if direction == _UP and name not in observed:
                pending.extend((p, _UP) for p in self._graph.predecessors(name))
                pending.extend((c, _DOWN) for c in self._graph.successors(name))
            elif direction == _DOWN:
                if name not in observed:
                    pending.extend((c, _DOWN) for c in self._graph.successors(name))
                if name in with_ancestors:
                    pending.extend((p, _UP) for p in self._graph.predecessors(name))
        return visited

    def d_connected(
        self,
        query: NodeRefs,
        evidence: Optional[EvidenceLike] = None,
        include_evidence: bool = False,
    ) -> List[BNode]:
        """Nodes reachable from *query* along active trails given *evidence*.

        Parameters
        ----------
        query : node reference or iterable of node references
            Source node(s).
        evidence : mapping or iterable of node references, optional
            Observed nodes.  Defaults to the instantiated nodes.
        include_evidence : bool
            Also return the evidence nodes that an active trail reaches.

        Returns
        -------
        list of BNode
            Reachable nodes, query nodes included, in topological order.
        """
        self._ensure_compiled()
        sources = [n.name for n in self._resolve(query)]
        observed = self._resolve_evidence(evidence)
        visited = self._active_trails(sources, observed)
        return self._in_order(
            name for name, _ in visited if include_evidence or name not in observed
        )

    def requisite(self, query: NodeRefs, evidence: Optional[EvidenceLike] = None) -> List[BNode]:
        """Nodes whose tables are needed to compute P(query | evidence).

        A non-evidence node is requisite when an active trail enters it
        from a child; an evidence node when a trail enters it from a
        parent.  Every other node can be dropped without changing the
        normalized posterior.
        """
        self._ensure_compiled()
        sources = [n.name for n in self._resolve(query)]
        observed = self._resolve_evidence(evidence)
        visited = self._active_trails(sources, observed)
        needed = {
            name for name, direction in visited
            if (direction == _UP) != (name in observed)
        }
        return self._in_order(needed)

    def d_separated(
        self,
        x: NodeRefs,
        y: NodeRefs,
        z: Optional[NodeRefs] = None,
    ) -> bool:
        """Check whether *x* and *y* are d-separated given *z*.

        Uses :func:`networkx.is_d_separator`.
        """
        self._ensure_compiled()
        xs = {n.name for n in self._resolve(x)}
        ys = {n.name for n in self._resolve(y)}
        zs = {n.name for n in self._resolve(z)} if z is not None else set()
        return nx.is_d_separator(self._graph, xs, ys, zs)

    def relevant(self, query: NodeRefs, evidence: Optional[EvidenceLike] = None) -> "BNet":
        """Sub-network of the query, evidence and all their ancestors.

        Nodes outside it are barren and do not change P(query, evidence).
        """
        self._ensure_compiled()
        keep = {n.name for n in self._resolve(query)} | self._resolve_evidence(evidence)
        for name in list(keep):
            keep |= nx.ancestors(self._graph, name)
        return BNet(self._in_order(keep), name=f"{self.name}[relevant]")

    # ------------------------------------------------------------------ #
    #  Evidence
    # ------------------------------------------------------------------ #

    def get_evidence(self) -> Dict[Variable, Any]:
        """Snapshot of the node instances as ``{variable: value}``."""
        return {
            node.variable: node.instance
            for node in self._nodes.values()
            if node.instance is not None
        }

    def reset_instances(self) -> None:
        for node in self._nodes.values():
            node.reset_instance()

    # ------------------------------------------------------------------ #
    #  Export
    # ------------------------------------------------------------------ #

    def to_networkx(self) -> nx.DiGraph:
        """Copy of the compiled graph; each node carries a ``node`` attribute."""
        self._ensure_compiled()
        return self._graph.copy()

    def __repr__(self) -> str:
        return f"BNet({self.name!r}, nodes={list(self._nodes)})"
