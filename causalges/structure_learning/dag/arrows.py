"""Candidate operators ("arrows") of greedy equivalence search, and the sorted store that holds them.
"""

import heapq
import itertools as itr
import threading
from collections import namedtuple
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple
from causalges.classes.custom_types import Node, DirectedEdge


@dataclass(frozen=True)
class Arrow:
    """
    A candidate insertion or deletion of the edge ``a``->``b``.

    ``h_or_t`` is the set T of undirected neighbors of ``b`` to orient into ``b`` for an insertion, or the set H
    of neighbors to orient away from ``a`` and ``b`` for a deletion. ``na_yx``, ``t_neighbors`` and ``parents`` are
    snapshots of the neighborhood of ``b`` at creation time; the arrow is stale once they no longer match the graph.
    """
    a: Node
    b: Node
    bump: float
    h_or_t: FrozenSet[Node]
    na_yx: FrozenSet[Node]
    parents: FrozenSet[Node]
    t_neighbors: Optional[FrozenSet[Node]] = None
    index: int = -1

    @property
    def sort_key(self) -> Tuple[float, int]:
        # higher bumps first, then earlier arrows
        return -self.bump, self.index

    def __str__(self):
        return 'Arrow(%s->%s, bump=%.4f, h_or_t=%s, index=%d)' % (
            self.a, self.b, self.bump, sorted(self.h_or_t, key=str), self.index
        )


ArrowConfig = namedtuple('ArrowConfig', ['t_neighbors', 'na_yx', 'parents'])
BackwardArrowConfig = namedtuple('BackwardArrowConfig', ['na_yx', 'parents'])


class SequenceGenerator:
    """
    Thread-safe source of increasing integers, used to break ties between arrows with equal bumps.
    """
    def __init__(self, start=0):
        self._start = start
        self._counter = itr.count(start)
        self._lock = threading.Lock()

    def __next__(self) -> int:
        with self._lock:
            return next(self._counter)

    def __iter__(self):
        return self

    def reset(self):
        with self._lock:
            self._counter = itr.count(self._start)


class ArrowStore:
    """
    Forward (insertion) and backward (deletion) candidate arrows, each kept in order of decreasing bump with ties
    broken by creation order, together with the last neighborhood configuration each directed edge was evaluated
    under.

    Examples
    --------
    >>> from causalges.structure_learning.dag.arrows import ArrowStore
    >>> store = ArrowStore()
    >>> _ = store.add_forward('x', 'y', 1., frozenset(), frozenset(), frozenset(), frozenset())
    >>> _ = store.add_forward('z', 'y', 2., frozenset(), frozenset(), frozenset(), frozenset())
    >>> store.pop_best_forward().a
    'z'
    """
    def __init__(self):
        self._forward = []
        self._backward = []
        self._forward_configs = dict()
        self._backward_configs = dict()
        self._sequence = SequenceGenerator()
        self._lock = threading.Lock()

    def clear(self):
        with self._lock:
            self._forward = []
            self._backward = []
            self._forward_configs = dict()
            self._backward_configs = dict()
            self._sequence.reset()

    # === ARROWS
    def add_forward(self, a, b, bump, h_or_t, na_yx, parents, t_neighbors) -> Arrow:
        arrow = Arrow(a, b, bump, frozenset(h_or_t), frozenset(na_yx), frozenset(parents),
                      t_neighbors=frozenset(t_neighbors), index=next(self._sequence))
        with self._lock:
            heapq.heappush(self._forward, (arrow.sort_key, arrow))
        return arrow

    def add_backward(self, a, b, bump, h_or_t, na_yx, parents) -> Arrow:
        arrow = Arrow(a, b, bump, frozenset(h_or_t), frozenset(na_yx), frozenset(parents),
                      index=next(self._sequence))
        with self._lock:
            heapq.heappush(self._backward, (arrow.sort_key, arrow))
        return arrow

    def peek_best_forward(self) -> Optional[Arrow]:
        with self._lock:
            return self._forward[0][1] if self._forward else None

    def pop_best_forward(self) -> Arrow:
        with self._lock:
            return heapq.heappop(self._forward)[1]

    def peek_best_backward(self) -> Optional[Arrow]:
        with self._lock:
            return self._backward[0][1] if self._backward else None

    def pop_best_backward(self) -> Arrow:
        with self._lock:
            return heapq.heappop(self._backward)[1]

    @property
    def num_forward(self) -> int:
        return len(self._forward)

    @property
    def num_backward(self) -> int:
        return len(self._backward)

    # === CONFIGURATION MEMO
    def forward_config_changed(self, edge: DirectedEdge, config: ArrowConfig) -> bool:
        return self._forward_configs.get(edge) != config

    def record_forward_config(self, edge: DirectedEdge, config: ArrowConfig):
        self._forward_configs[edge] = config

    def forget_forward_config(self, edge: DirectedEdge):
        self._forward_configs.pop(edge, None)

    def backward_config_changed(self, edge: DirectedEdge, config: BackwardArrowConfig) -> bool:
        return self._backward_configs.get(edge) != config

    def record_backward_config(self, edge: DirectedEdge, config: BackwardArrowConfig):
        self._backward_configs[edge] = config
