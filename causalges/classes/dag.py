# Author: Chandler Squires
"""Directed acyclic graphs, used as DAG extensions of search results and as ground truth for oracle scores.
"""

from collections import deque
import itertools as itr
from causalges.utils import core_utils
from causalges.classes.custom_types import Node, DirectedEdge, NodeSet
from typing import Set, Iterable, FrozenSet, List, Tuple, Optional
import networkx as nx


class CycleError(Exception):
    def __init__(self, cycle):
        self.cycle = cycle
        super().__init__('Arc would close the directed cycle %s' % '->'.join(map(str, cycle)))


class DAG:
    """
    Directed acyclic graph, stored as parent and child sets per node.

    Parameters
    ----------
    nodes:
        Nodes of the graph. Endpoints of ``arcs`` are added automatically.
    arcs:
        Arcs (i, j), meaning i->j. A ``CycleError`` is raised if they contain a directed cycle.

    Examples
    --------
    >>> import causalges as cg
    >>> d = cg.DAG(arcs={(1, 2), (3, 2)})
    >>> d.parents_of(2)
    {1, 3}
    """
    def __init__(self, nodes: Iterable[Node] = frozenset(), arcs: Iterable[DirectedEdge] = frozenset()):
        self._parents = {node: set() for node in nodes}
        self._children = {node: set() for node in nodes}
        self._arcs = set()
        self.add_arcs_from(arcs)

    def __eq__(self, other):
        if not isinstance(other, DAG):
            return False
        return self._parents.keys() == other._parents.keys() and self._arcs == other._arcs

    def __str__(self):
        return ''.join(
            '[%s|%s]' % (node, ','.join(map(str, self._parents[node]))) if self._parents[node] else '[%s]' % node
            for node in self.topological_sort()
        )

    def __repr__(self):
        return str(self)

    # === PROPERTIES
    @property
    def nodes(self) -> Set[Node]:
        return set(self._parents)

    @property
    def arcs(self) -> Set[DirectedEdge]:
        return set(self._arcs)

    @property
    def skeleton(self) -> Set[FrozenSet]:
        return {frozenset(arc) for arc in self._arcs}

    # === NODE PROPERTIES
    def parents_of(self, nodes: NodeSet) -> Set[Node]:
        """
        Return the parents of the node, or the union of the parents of the set of nodes, ``nodes``.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(1, 2), (2, 3)})
        >>> g.parents_of({2, 3})
        {1, 2}
        """
        if isinstance(nodes, set):
            return set().union(*(self._parents[node] for node in nodes))
        return set(self._parents[nodes])

    def children_of(self, nodes: NodeSet) -> Set[Node]:
        if isinstance(nodes, set):
            return set().union(*(self._children[node] for node in nodes))
        return set(self._children[nodes])

    def neighbors_of(self, node: Node) -> Set[Node]:
        return self._parents[node] | self._children[node]

    def markov_blanket_of(self, node: Node) -> Set[Node]:
        """
        Return the parents of ``node``, its children, and the other parents of its children.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(0, 1), (1, 3), (2, 3), (3, 4)})
        >>> g.markov_blanket_of(1)
        {0, 2, 3}
        """
        children = self._children[node]
        return (self._parents[node] | children | self.parents_of(set(children))) - {node}

    def ancestors_of(self, nodes: NodeSet) -> Set[Node]:
        """
        Return every node with a directed path into one of ``nodes``.
        """
        return self._reachable(core_utils.to_set(nodes), self._parents)

    def descendants_of(self, nodes: NodeSet) -> Set[Node]:
        return self._reachable(core_utils.to_set(nodes), self._children)

    def is_ancestor_of(self, anc: Node, desc: Node) -> bool:
        return self._directed_path(anc, desc) is not None

    def has_arc(self, source: Node, target: Node) -> bool:
        return (source, target) in self._arcs

    @staticmethod
    def _reachable(start, step) -> Set[Node]:
        reached = set()
        frontier = list(start)
        while frontier:
            for other in step[frontier.pop()]:
                if other not in reached:
                    reached.add(other)
                    frontier.append(other)
        return reached

    def _directed_path(self, source, target) -> Optional[List[Node]]:
        if source not in self._children or target not in self._children:
            return None
        previous = {source: None}
        queue = deque([source])
        while queue:
            node = queue.popleft()
            for child in self._children[node]:
                if child in previous:
                    continue
                previous[child] = node
                if child == target:
                    path = [child]
                    while previous[path[-1]] is not None:
                        path.append(previous[path[-1]])
                    return path[::-1]
                queue.append(child)
        return None

    # === MUTATORS
    def add_node(self, node: Node):
        self._parents.setdefault(node, set())
        self._children.setdefault(node, set())

    def add_arc(self, i: Node, j: Node):
        """
        Add the arc ``i``->``j``, raising a ``CycleError`` and leaving the graph unchanged if it would close a
        directed cycle.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG({1, 2})
        >>> g.add_arc(1, 2)
        >>> g.arcs
        {(1, 2)}
        """
        if i == j:
            raise CycleError([i, i])
        path = self._directed_path(j, i)
        if path is not None:
            raise CycleError(path + [j])
        self.add_node(i)
        self.add_node(j)
        self._arcs.add((i, j))
        self._parents[j].add(i)
        self._children[i].add(j)

    def add_arcs_from(self, arcs: Iterable[DirectedEdge]):
        for i, j in arcs:
            self.add_arc(i, j)

    # === ORDERS
    def topological_sort(self) -> List[Node]:
        """
        Return the nodes ordered so that every arc points forward.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(1, 2), (2, 3)})
        >>> g.topological_sort()
        [1, 2, 3]
        """
        num_parents = {node: len(parents) for node, parents in self._parents.items()}
        sources = [node for node, num in num_parents.items() if num == 0]
        order = []
        while sources:
            node = sources.pop()
            order.append(node)
            for child in self._children[node]:
                num_parents[child] -= 1
                if num_parents[child] == 0:
                    sources.append(child)
        return order

    # === STRUCTURE
    def vstructures(self) -> Set[Tuple]:
        """
        Return all triples (``i``, ``k``, ``j``) such that ``i``->``k``<-``j`` and ``i`` is not adjacent to ``j``.
        The outer nodes of each triple are ordered by their string representation.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(1, 3), (2, 3)})
        >>> g.vstructures()
        {(1, 3, 2)}
        """
        vstructs = set()
        for node, parents in self._parents.items():
            for p1, p2 in itr.combinations(sorted(parents, key=str), 2):
                if not self.has_arc(p1, p2) and not self.has_arc(p2, p1):
                    vstructs.add((p1, node, p2))
        return vstructs

    def dsep(self, A: NodeSet, B: NodeSet, C: NodeSet = frozenset()) -> bool:
        """
        Check if ``A`` and ``B`` are d-separated given ``C``.

        Explores the trails leaving ``A``, tracking for each visited node whether the trail entered it along an
        arc out of it (moving up) or into it (moving down). A trail passes a collider only if the collider is in
        ``C`` or has a descendant in ``C``.

        Example
        -------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(1, 2), (3, 2)})
        >>> g.dsep(1, 3)
        True
        >>> g.dsep(1, 3, 2)
        False
        """
        A, B, C = core_utils.to_set(A), core_utils.to_set(B), core_utils.to_set(C)
        opens_collider = C | self.ancestors_of(C)

        up, down = 'up', 'down'
        visited = set()
        stack = [(node, up) for node in A]
        while stack:
            node, direction = stack.pop()
            if (node, direction) in visited:
                continue
            visited.add((node, direction))
            if node in B:
                return False

            if direction == up:
                if node in C:
                    continue
                stack.extend((parent, up) for parent in self._parents[node])
                stack.extend((child, down) for child in self._children[node])
            else:
                if node not in C:
                    stack.extend((child, down) for child in self._children[node])
                if node in opens_collider:
                    stack.extend((parent, up) for parent in self._parents[node])

        return True

    def cpdag(self):
        """
        Return the CPDAG representing the Markov equivalence class of this DAG, as a ``MixedGraph``.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.DAG(arcs={(1, 2), (2, 4), (3, 4)})
        >>> cpdag = g.cpdag()
        >>> cpdag.edges
        {frozenset({1, 2})}
        >>> cpdag.arcs
        {(2, 4), (3, 4)}
        """
        from causalges.classes.mixed_graph import MixedGraph
        from causalges.structure_learning.dag.meek import MeekRules

        graph = MixedGraph(nodes=self._parents, arcs=self._arcs)
        MeekRules().orient_implied(graph)
        return graph

    # === NETWORKX CONVERSION
    @classmethod
    def from_nx(cls, nx_graph: nx.DiGraph):
        if not isinstance(nx_graph, nx.DiGraph):
            raise ValueError("Must be a DiGraph")
        return cls(nodes=nx_graph.nodes, arcs=nx_graph.edges)

    def to_nx(self) -> nx.DiGraph:
        g = nx.DiGraph()
        g.add_nodes_from(self._parents)
        g.add_edges_from(self._arcs)
        return g
