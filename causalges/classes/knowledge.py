"""Background knowledge: forbidden and required directed edges, optionally organized into temporal tiers.
"""

from collections import defaultdict
from typing import Set, Iterable, Dict, Optional
from causalges.classes.custom_types import Node, DirectedEdge


class Knowledge:
    """
    Constraints on which directed edges may or must appear in a learned graph.

    Edges are forbidden either explicitly or through tiers: a node in a later tier may never be a cause of a node in
    an earlier tier, and nodes in a tier marked as forbidden-within may not cause each other.

    Parameters
    ----------
    forbidden:
        Directed edges (i, j) such that i->j may not appear.
    required:
        Directed edges (i, j) such that i->j must appear.
    tiers:
        Optional list of node collections, from earliest to latest.

    Examples
    --------
    >>> import causalges as cg
    >>> knowledge = cg.Knowledge(required={(1, 2)}, tiers=[{0}, {1, 2}])
    >>> knowledge.is_forbidden(1, 0)
    True
    >>> knowledge.is_required(1, 2)
    True
    >>> knowledge.no_edge_required(0, 1)
    True
    """
    def __init__(
            self,
            forbidden: Iterable[DirectedEdge] = frozenset(),
            required: Iterable[DirectedEdge] = frozenset(),
            tiers: Optional[Iterable[Iterable[Node]]] = None
    ):
        self._forbidden = set()
        self._required = set()
        self._tier_of = dict()
        self._forbidden_within = set()
        for i, j in forbidden:
            self.set_forbidden(i, j)
        for i, j in required:
            self.set_required(i, j)
        if tiers is not None:
            for tier, nodes in enumerate(tiers):
                for node in nodes:
                    self.add_to_tier(tier, node)

    def __str__(self):
        lines = []
        tiers = self.tiers
        for tier in sorted(tiers):
            forbidden_within = '*' if tier in self._forbidden_within else ''
            lines.append('%d%s: %s' % (tier, forbidden_within, ' '.join(map(str, tiers[tier]))))
        lines.extend('forbidden %s->%s' % (i, j) for i, j in self._forbidden)
        lines.extend('required %s->%s' % (i, j) for i, j in self._required)
        return '\n'.join(lines)

    def copy(self):
        knowledge = Knowledge(forbidden=self._forbidden, required=self._required)
        knowledge._tier_of = dict(self._tier_of)
        knowledge._forbidden_within = set(self._forbidden_within)
        return knowledge

    # === PROPERTIES
    @property
    def forbidden_edges(self) -> Set[DirectedEdge]:
        return set(self._forbidden)

    @property
    def required_edges(self) -> Set[DirectedEdge]:
        return set(self._required)

    @property
    def tiers(self) -> Dict[int, Set[Node]]:
        tiers = defaultdict(set)
        for node, tier in self._tier_of.items():
            tiers[tier].add(node)
        return dict(tiers)

    def is_empty(self) -> bool:
        return not self._forbidden and not self._required and not self._tier_of

    # === QUERIES
    def is_forbidden(self, i: Node, j: Node) -> bool:
        """
        Check if the edge ``i``->``j`` is forbidden, explicitly or by the tier ordering.
        """
        if (i, j) in self._forbidden:
            return True
        tier_i = self._tier_of.get(i)
        tier_j = self._tier_of.get(j)
        if tier_i is None or tier_j is None:
            return False
        if tier_i > tier_j:
            return True
        return tier_i == tier_j and tier_i in self._forbidden_within

    def is_required(self, i: Node, j: Node) -> bool:
        return (i, j) in self._required

    def no_edge_required(self, i: Node, j: Node) -> bool:
        """
        Check that neither ``i``->``j`` nor ``j``->``i`` is required.
        """
        return not (self.is_required(i, j) or self.is_required(j, i))

    # === MUTATORS
    def set_forbidden(self, i: Node, j: Node):
        if (i, j) in self._required:
            raise ValueError('%s->%s is already required' % (i, j))
        self._forbidden.add((i, j))

    def remove_forbidden(self, i: Node, j: Node):
        self._forbidden.discard((i, j))

    def set_required(self, i: Node, j: Node):
        if (i, j) in self._forbidden:
            raise ValueError('%s->%s is already forbidden' % (i, j))
        self._required.add((i, j))

    def remove_required(self, i: Node, j: Node):
        self._required.discard((i, j))

    def add_to_tier(self, tier: int, node: Node):
        if tier < 0:
            raise ValueError('Tiers must be non-negative, got %d' % tier)
        self._tier_of[node] = tier

    def set_tier_forbidden_within(self, tier: int, forbidden=True):
        if forbidden:
            self._forbidden_within.add(tier)
        else:
            self._forbidden_within.discard(tier)
