# Author: Chandler Squires
"""Mixed graphs with tail, arrow and circle endpoints. Search results (CPDAGs) are represented as mixed graphs.
"""

from collections import defaultdict, deque
import numpy as np
import networkx as nx
from typing import Set, Iterable, List, Optional
from causalges.classes.custom_types import Node, DirectedEdge, UndirectedEdge
from causalges.classes.edge import Edge, Endpoint
from causalges.classes.dag import DAG


class MixedGraph:
    """
    A graph with at most one edge between any pair of nodes, where each edge carries an endpoint mark
    (``Endpoint.TAIL``, ``Endpoint.ARROW`` or ``Endpoint.CIRCLE``) at each of its two ends.

    Nodes keep their insertion order, so iteration over a graph is reproducible.

    Examples
    --------
    >>> import causalges as cg
    >>> g = cg.MixedGraph(nodes=[1, 2, 3], arcs={(1, 2)}, edges={(2, 3)})
    >>> g.parents_of(2)
    {1}
    >>> g.undirected_neighbors_of(2)
    {3}
    """
    def __init__(self, nodes: Iterable = (), arcs: Iterable = frozenset(), edges: Iterable = frozenset(), graph=None):
        if graph is not None:
            self._nodes = dict.fromkeys(graph._nodes)
            self._adjacency = defaultdict(dict, {node: dict(adj) for node, adj in graph._adjacency.items()})
        else:
            self._nodes = dict.fromkeys(nodes)
            self._adjacency = defaultdict(dict)
            for i, j in arcs:
                self.add_arc(i, j)
            for i, j in edges:
                self.add_edge(i, j)

    def __eq__(self, other):
        if not isinstance(other, MixedGraph):
            return False
        return set(self._nodes) == set(other._nodes) and set(self.all_edges()) == set(other.all_edges())

    def __str__(self):
        lines = ['Graph Nodes:', ';'.join(map(str, self._nodes)), '', 'Graph Edges:']
        lines.extend('%d. %s' % (ix+1, edge) for ix, edge in enumerate(self.all_edges()))
        return '\n'.join(lines)

    def __repr__(self):
        return 'MixedGraph(nnodes=%d, nedges=%d)' % (self.nnodes, self.num_edges)

    def copy(self):
        """Return a copy of the graph
        """
        return MixedGraph(graph=self)

    def induced_subgraph(self, nodes: Iterable[Node]):
        """
        Return the subgraph over ``nodes`` containing every edge of this graph with both endpoints in ``nodes``.
        Node order follows this graph.
        """
        nodes = set(nodes)
        subgraph = MixedGraph(nodes=[node for node in self._nodes if node in nodes])
        for edge in self.all_edges():
            if edge.node1 in nodes and edge.node2 in nodes:
                subgraph.add_mixed_edge(edge)
        return subgraph

    # === PROPERTIES
    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def nnodes(self) -> int:
        return len(self._nodes)

    @property
    def arcs(self) -> Set[DirectedEdge]:
        return {(edge.source, edge.target) for edge in self.all_edges() if edge.is_directed()}

    @property
    def edges(self) -> Set[UndirectedEdge]:
        return {frozenset(edge.nodes) for edge in self.all_edges() if edge.is_undirected()}

    @property
    def skeleton(self) -> Set[UndirectedEdge]:
        return {frozenset(edge.nodes) for edge in self.all_edges()}

    @property
    def num_edges(self) -> int:
        return sum(len(adj) for adj in self._adjacency.values()) // 2

    def all_edges(self) -> List[Edge]:
        """
        Return every edge of the graph exactly once, in node insertion order.
        """
        seen = set()
        edges = []
        for node in self._nodes:
            for other, edge in self._adjacency.get(node, {}).items():
                if other not in seen:
                    edges.append(edge)
            seen.add(node)
        return edges

    # === NODE PROPERTIES
    def get_edge(self, i: Node, j: Node) -> Optional[Edge]:
        return self._adjacency.get(i, {}).get(j)

    def is_adjacent(self, i: Node, j: Node) -> bool:
        return j in self._adjacency.get(i, {})

    def has_arc(self, source: Node, target: Node) -> bool:
        edge = self.get_edge(source, target)
        return edge is not None and edge.is_directed() and edge.target == target

    def has_edge(self, i: Node, j: Node) -> bool:
        """
        Check if the undirected edge ``i``-``j`` is in the graph.
        """
        edge = self.get_edge(i, j)
        return edge is not None and edge.is_undirected()

    def neighbors_of(self, node: Node) -> Set[Node]:
        """
        Return all nodes adjacent to ``node``, regardless of endpoints.
        """
        return set(self._adjacency.get(node, {}))

    def parents_of(self, node: Node) -> Set[Node]:
        return {other for other, edge in self._adjacency.get(node, {}).items() if edge.points_towards(node)}

    def children_of(self, node: Node) -> Set[Node]:
        return {other for other, edge in self._adjacency.get(node, {}).items() if edge.points_towards(other)}

    def undirected_neighbors_of(self, node: Node) -> Set[Node]:
        return {other for other, edge in self._adjacency.get(node, {}).items() if edge.is_undirected()}

    def degree_of(self, node: Node) -> int:
        return len(self._adjacency.get(node, {}))

    @property
    def max_degree(self) -> int:
        return max((self.degree_of(node) for node in self._nodes), default=0)

    def is_def_collider(self, a: Node, b: Node, c: Node) -> bool:
        """
        Check if ``a``*->``b``<-*``c``, i.e. both edges into ``b`` have an arrowhead at ``b``.
        """
        edge1 = self.get_edge(a, b)
        edge2 = self.get_edge(c, b)
        if edge1 is None or edge2 is None:
            return False
        return edge1.endpoint_at(b) == Endpoint.ARROW and edge2.endpoint_at(b) == Endpoint.ARROW

    def ancestors_of(self, nodes: Iterable[Node]) -> Set[Node]:
        """
        Return ``nodes`` together with every node that has a directed path into one of them.
        """
        ancestors = set(nodes)
        frontier = list(ancestors)
        while frontier:
            node = frontier.pop()
            for parent in self.parents_of(node):
                if parent not in ancestors:
                    ancestors.add(parent)
                    frontier.append(parent)
        return ancestors

    def is_ancestor_of(self, anc: Node, desc: Node) -> bool:
        return anc in self.ancestors_of({desc})

    def has_directed_cycle(self) -> bool:
        in_degrees = {node: len(self.parents_of(node)) for node in self._nodes}
        queue = deque(node for node, degree in in_degrees.items() if degree == 0)
        nvisited = 0
        while queue:
            node = queue.popleft()
            nvisited += 1
            for child in self.children_of(node):
                in_degrees[child] -= 1
                if in_degrees[child] == 0:
                    queue.append(child)
        return nvisited != len(self._nodes)

    def d_connected_to(self, node: Node, given: Iterable[Node] = frozenset()) -> Set[Node]:
        """
        Return all nodes outside ``given`` that are d-connected to ``node`` given ``given``.

        A node on a path is a collider when both path edges carry an arrowhead at it. Colliders are open when they
        are in ``given`` or are ancestors of a node in ``given``; every other node is open when it is not in
        ``given``.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.MixedGraph(nodes=[1, 2, 3], arcs={(1, 2), (3, 2)})
        >>> g.d_connected_to(1)
        {2}
        >>> g.d_connected_to(1, given={2})
        {3}
        """
        given = set(given)
        open_colliders = self.ancestors_of(given)

        # states are (node, whether the path arrived with an arrowhead at node)
        schedule = []
        for other, edge in self._adjacency.get(node, {}).items():
            schedule.append((other, edge.endpoint_at(other) == Endpoint.ARROW))
        visited = set()
        reached = set()
        while schedule:
            current, into = schedule.pop()
            if (current, into) in visited:
                continue
            visited.add((current, into))
            reached.add(current)
            for other, edge in self._adjacency.get(current, {}).items():
                collider = into and edge.endpoint_at(current) == Endpoint.ARROW
                if collider and current not in open_colliders:
                    continue
                if not collider and current in given:
                    continue
                schedule.append((other, edge.endpoint_at(other) == Endpoint.ARROW))
        reached.discard(node)
        reached -= given
        return reached

    # === MUTATORS
    def add_node(self, node: Node):
        self._nodes[node] = None

    def add_nodes_from(self, nodes: Iterable[Node]):
        for node in nodes:
            self._nodes[node] = None

    def remove_node(self, node: Node):
        for other in list(self._adjacency.get(node, {})):
            del self._adjacency[other][node]
        self._adjacency.pop(node, None)
        del self._nodes[node]

    def add_mixed_edge(self, edge: Edge):
        """
        Add ``edge`` to the graph, adding its nodes if necessary. Raises a ``ValueError`` if its nodes are already
        adjacent.
        """
        i, j = edge.nodes
        if self.is_adjacent(i, j):
            raise ValueError('%s and %s are already adjacent' % (i, j))
        self._nodes.setdefault(i, None)
        self._nodes.setdefault(j, None)
        self._adjacency[i][j] = edge
        self._adjacency[j][i] = edge

    def add_arc(self, i: Node, j: Node):
        self.add_mixed_edge(Edge.directed(i, j))

    def add_edge(self, i: Node, j: Node):
        self.add_mixed_edge(Edge.undirected(i, j))

    def add_endpoint_edge(self, i: Node, j: Node, endpoint_i: Endpoint, endpoint_j: Endpoint):
        self.add_mixed_edge(Edge(i, j, endpoint_i, endpoint_j))

    def remove_edge(self, i: Node, j: Node, ignore_error=False):
        """
        Remove the edge between ``i`` and ``j``, whatever its endpoints.

        Parameters
        ----------
        i:
            first endpoint of the edge.
        j:
            second endpoint of the edge.
        ignore_error:
            if True, ignore the KeyError raised when ``i`` and ``j`` are not adjacent.
        """
        try:
            del self._adjacency[i][j]
            del self._adjacency[j][i]
        except KeyError as e:
            if ignore_error:
                pass
            else:
                raise e

    def replace_edge_with_arc(self, i: Node, j: Node):
        """
        Orient the existing edge between ``i`` and ``j`` as ``i``->``j``.
        """
        self.remove_edge(i, j)
        self.add_arc(i, j)

    def replace_arc_with_edge(self, i: Node, j: Node):
        self.remove_edge(i, j)
        self.add_edge(i, j)

    # === CONVERSIONS
    def to_dag(self) -> DAG:
        """
        Return a DAG in the equivalence class of this graph, by repeatedly removing a sink whose undirected
        neighbors are adjacent to all of its other neighbors.

        Examples
        --------
        >>> import causalges as cg
        >>> g = cg.MixedGraph(nodes=[1, 2, 3], arcs={(1, 2)}, edges={(2, 3)})
        >>> g.to_dag().arcs
        {(1, 2), (2, 3)}
        """
        remaining = self.copy()
        arcs = set()
        while remaining.num_edges != 0:
            is_sink = lambda n: not remaining.children_of(n)
            no_vstructs = lambda n: all(
                (remaining.neighbors_of(n) - {u_nbr}).issubset(remaining.neighbors_of(u_nbr))
                for u_nbr in remaining.undirected_neighbors_of(n)
            )
            sink = next((n for n in remaining._nodes if is_sink(n) and no_vstructs(n)), None)
            if sink is None:
                # not a valid CPDAG; fall back to any node without children
                sink = next(n for n in remaining._nodes if is_sink(n))
            arcs.update((nbr, sink) for nbr in remaining.neighbors_of(sink))
            remaining.remove_node(sink)

        return DAG(nodes=set(self._nodes), arcs=arcs)

    def to_amat(self, node_list=None, mode='dataframe'):
        """
        Return an adjacency matrix for the graph, with a 1 in entry (i, j) if there is an arc i->j or an
        undirected edge i-j.
        """
        if node_list is None:
            node_list = self.nodes
        node2ix = {node: i for i, node in enumerate(node_list)}

        amat = np.zeros((len(node_list), len(node_list)), dtype=int)
        for source, target in self.arcs:
            amat[node2ix[source], node2ix[target]] = 1
        for i, j in self.edges:
            amat[node2ix[i], node2ix[j]] = 1
            amat[node2ix[j], node2ix[i]] = 1

        if mode == 'dataframe':
            from pandas import DataFrame
            return DataFrame(amat, index=node_list, columns=node_list)
        else:
            return amat, node_list

    def to_nx(self) -> nx.DiGraph:
        """
        Convert to a networkx DiGraph, with an arc in both directions for each undirected edge.
        """
        g = nx.DiGraph()
        g.add_nodes_from(self._nodes)
        g.add_edges_from(self.arcs)
        for i, j in self.edges:
            g.add_edge(i, j)
            g.add_edge(j, i)
        return g
