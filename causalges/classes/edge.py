"""Edges with endpoint marks, as used by mixed graphs.
"""

from enum import Enum
from causalges.classes.custom_types import Node


class Endpoint(Enum):
    TAIL = '-'
    ARROW = '>'
    CIRCLE = 'o'


class Edge:
    """
    An edge between ``node1`` and ``node2`` carrying one endpoint mark per side.

    ``Edge(1, 2, Endpoint.TAIL, Endpoint.ARROW)`` is the directed edge 1->2, and
    ``Edge(1, 2, Endpoint.TAIL, Endpoint.TAIL)`` is the undirected edge 1-2.

    Examples
    --------
    >>> from causalges import Edge
    >>> e = Edge.directed(1, 2)
    >>> e.points_towards(2)
    True
    >>> e.distal_node(2)
    1
    """
    __slots__ = ('node1', 'node2', 'endpoint1', 'endpoint2')

    def __init__(self, node1: Node, node2: Node, endpoint1: Endpoint, endpoint2: Endpoint):
        if node1 == node2:
            raise ValueError('Self-loops are not allowed: %s' % node1)
        self.node1 = node1
        self.node2 = node2
        self.endpoint1 = endpoint1
        self.endpoint2 = endpoint2

    @classmethod
    def directed(cls, source: Node, target: Node):
        return cls(source, target, Endpoint.TAIL, Endpoint.ARROW)

    @classmethod
    def undirected(cls, i: Node, j: Node):
        return cls(i, j, Endpoint.TAIL, Endpoint.TAIL)

    @property
    def nodes(self):
        return self.node1, self.node2

    def is_directed(self) -> bool:
        return {self.endpoint1, self.endpoint2} == {Endpoint.TAIL, Endpoint.ARROW}

    def is_undirected(self) -> bool:
        return self.endpoint1 == Endpoint.TAIL and self.endpoint2 == Endpoint.TAIL

    def endpoint_at(self, node: Node) -> Endpoint:
        if node == self.node1:
            return self.endpoint1
        if node == self.node2:
            return self.endpoint2
        raise KeyError(node)

    def distal_node(self, node: Node) -> Node:
        if node == self.node1:
            return self.node2
        if node == self.node2:
            return self.node1
        raise KeyError(node)

    def points_towards(self, node: Node) -> bool:
        """
        Return True if this edge is directed with its arrowhead at ``node``.
        """
        return self.is_directed() and self.endpoint_at(node) == Endpoint.ARROW

    @property
    def source(self):
        """Tail node of a directed edge, None otherwise."""
        if not self.is_directed():
            return None
        return self.node1 if self.endpoint1 == Endpoint.TAIL else self.node2

    @property
    def target(self):
        """Head node of a directed edge, None otherwise."""
        if not self.is_directed():
            return None
        return self.node2 if self.endpoint2 == Endpoint.ARROW else self.node1

    def _key(self):
        # edges are equal up to swapping the two sides
        return frozenset({(self.node1, self.endpoint1), (self.node2, self.endpoint2)})

    def __eq__(self, other):
        if not isinstance(other, Edge):
            return False
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self):
        left = '<' if self.endpoint1 == Endpoint.ARROW else self.endpoint1.value
        return '%s %s-%s %s' % (self.node1, left, self.endpoint2.value, self.node2)

    def __repr__(self):
        return 'Edge(%s)' % str(self)
