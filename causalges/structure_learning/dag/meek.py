"""Meek's orientation rules, applied locally around a set of nodes to keep a graph a CPDAG after it is mutated.
"""

import itertools as itr
import logging
from typing import Iterable, List, Optional, Set
from causalges.classes.custom_types import Node
from causalges.classes.knowledge import Knowledge
from causalges.classes.mixed_graph import MixedGraph

logger = logging.getLogger(__name__)


class MeekRules:
    """
    Orientation propagator.

    Starting from a set of dirty nodes, arcs into and out of each dirty node that are not forced are first made
    undirected, moving on to the neighbors of every arc undirected until every arc left around the visited nodes is
    forced. An arc is forced when it is part of an unshielded collider, is required by the knowledge, or its reverse
    is forbidden. Meek's rules R1-R4 are then applied until no rule fires, visiting the neighborhoods of every node
    whose edges change along the way.

    Parameters
    ----------
    knowledge:
        Background knowledge. Arcs it forbids are never oriented.
    undirect_unforced_edges:
        If False, only orient undirected edges, never undirect existing arcs.
    verbose:
        If True, log every orientation at INFO level.

    Examples
    --------
    >>> import causalges as cg
    >>> from causalges.structure_learning.dag.meek import MeekRules
    >>> g = cg.MixedGraph(nodes=[1, 2, 3, 4], arcs={(1, 3), (2, 3)}, edges={(3, 4)})
    >>> MeekRules().orient_implied(g)
    {3, 4}
    >>> g.arcs
    {(1, 3), (2, 3), (3, 4)}
    """
    def __init__(self, knowledge: Optional[Knowledge] = None, undirect_unforced_edges=True, verbose=False):
        self.knowledge = knowledge if knowledge is not None else Knowledge()
        self.undirect_unforced_edges = undirect_unforced_edges
        self.verbose = verbose
        self._original_edges = dict()

    def orient_implied(self, graph: MixedGraph, nodes: Optional[Iterable[Node]] = None) -> Set[Node]:
        """
        Propagate orientations in ``graph`` starting from ``nodes`` (all nodes if None).

        Return
        ------
        Set[Node]
            Every node incident to an edge whose endpoints differ between the start and the end of the call. Empty
            if the graph was already closed under the rules.
        """
        if nodes is None:
            nodes = graph.nodes
        else:
            nodes = set(nodes)
            nodes = [node for node in graph.nodes if node in nodes]
        self._original_edges = dict()

        if self.undirect_unforced_edges:
            nodes = self._undirect_unforced_edges(graph, nodes)
        stack = []
        for node in nodes:
            self._run_meek_rules(graph, node, stack)
        while stack:
            self._run_meek_rules(graph, stack.pop(), stack)

        changed = set()
        for pair, before in self._original_edges.items():
            i, j = tuple(pair)
            if graph.get_edge(i, j) != before:
                changed.update(pair)
        return changed

    def _record(self, graph, i, j):
        pair = frozenset({i, j})
        if pair not in self._original_edges:
            self._original_edges[pair] = graph.get_edge(i, j)

    def _undirect_unforced_edges(self, graph, nodes) -> List[Node]:
        """
        Undirect the unforced arcs at ``nodes``, then at both endpoints of every arc undirected and their neighbors.
        Return every node visited, in graph order.
        """
        visited = set()
        queue = list(nodes)
        while queue:
            y = queue.pop()
            visited.add(y)
            arcs = [(x, y) for x in graph.parents_of(y)] + [(y, z) for z in graph.children_of(y)]
            for i, j in arcs:
                if self._is_forced(graph, i, j):
                    continue
                self._record(graph, i, j)
                graph.replace_arc_with_edge(i, j)
                for node in (i, j):
                    queue.append(node)
                    queue.extend(graph.neighbors_of(node))
        return [node for node in graph.nodes if node in visited]

    def _is_forced(self, graph, x, y) -> bool:
        if self.knowledge.is_required(x, y) or self.knowledge.is_forbidden(y, x):
            return True
        return any(not graph.is_adjacent(x, z) for z in graph.parents_of(y) if z != x)

    def _run_meek_rules(self, graph, node, stack):
        for other in graph.undirected_neighbors_of(node):
            if not graph.has_edge(node, other):
                continue
            for b, c in ((node, other), (other, node)):
                if self.knowledge.is_forbidden(b, c):
                    continue
                rule = self._implied_rule(graph, b, c)
                if rule is not None:
                    self._direct(graph, b, c, rule, stack)
                    break

    def _implied_rule(self, graph, b, c) -> Optional[str]:
        """
        Return the name of a rule that orients the undirected edge ``b``-``c`` as ``b``->``c``, if any.
        """
        # R1: a->b-c, a and c not adjacent
        if any(not graph.is_adjacent(a, c) for a in graph.parents_of(b)):
            return 'R1'

        # R2: b->k->c and b-c
        if graph.children_of(b) & graph.parents_of(c):
            return 'R2'

        # R3: b-k->c, b-l->c, k and l not adjacent
        undirected_nbrs = graph.undirected_neighbors_of(b)
        parents_c = graph.parents_of(c)
        for k, l in itr.combinations(undirected_nbrs & parents_c, 2):
            if not graph.is_adjacent(k, l):
                return 'R3'

        # R4: b-k->l->c, b adjacent to l, k and c not adjacent
        for l in parents_c:
            if not graph.is_adjacent(b, l):
                continue
            for k in graph.parents_of(l) & undirected_nbrs:
                if k != c and not graph.is_adjacent(k, c):
                    return 'R4'

        return None

    def _direct(self, graph, b, c, rule, stack):
        self._record(graph, b, c)
        graph.replace_edge_with_arc(b, c)
        if self.verbose:
            logger.info('Meek %s: %s --> %s', rule, b, c)
        stack.append(b)
        stack.append(c)
        stack.extend(graph.neighbors_of(c))
