"""Fast Greedy Equivalence Search.

Chickering, D. M. (2002). Optimal structure identification with greedy search. Journal of Machine Learning
Research, 3, 507-554.

Ramsey, J., Glymour, M., Sanchez-Romero, R., & Glymour, C. (2017). A million variables and more: the fast greedy
equivalence search algorithm for learning high-dimensional graphical causal models. International Journal of Data
Science and Analytics, 3(2), 121-129.
"""

import logging
import math
import time
from collections import defaultdict, deque, namedtuple
from enum import Enum
from typing import Iterable, Optional, Dict, Set, List
from tqdm import tqdm
from causalges.classes.custom_types import Node, DirectedEdge
from causalges.classes.knowledge import Knowledge
from causalges.classes.mixed_graph import MixedGraph
from causalges.classes.edge import Endpoint
from causalges.utils import core_utils
from causalges.utils.cancellation import CancellationToken
from causalges.utils.scores.score import DecomposableScore, SupportsPenaltyDiscount, score_dag
from causalges.structure_learning.dag.arrows import ArrowStore, ArrowConfig, BackwardArrowConfig
from causalges.structure_learning.dag.meek import MeekRules
from causalges.structure_learning.dag.scheduler import ChunkScheduler

logger = logging.getLogger(__name__)


class SearchMode(Enum):
    """
    How candidate parents of a node are generated during the forward phase.
    """
    # pairs with a positive unconditional score difference
    HEURISTIC_SPEEDUP = 'heuristic_speedup'
    # nodes two steps away that would not form a collider
    COVER_NONCOLLIDERS = 'cover_noncolliders'
    # every node d-connected to the node in the current graph
    ALLOW_UNFAITHFULNESS = 'allow_unfaithfulness'


Move = namedtuple('Move', ['kind', 'a', 'b', 'subset', 'bump'])
_Candidate = namedtuple('_Candidate', ['edge', 'config', 'bump', 'subset', 'na_yx', 'parents', 't_neighbors'])


class _EffectEdgeTask:
    """
    Finds the pairs (``x``, ``y``) with ``y`` in a chunk of nodes and a positive unconditional score difference for
    ``x``->``y``, or in either direction if the search uses a symmetric first step. If ``later_only`` is True, only
    ``x`` after ``y`` in variable order is considered, so each pair is scored once when every variable is scanned.
    """
    def __init__(self, search, later_only: bool):
        self.search = search
        self.later_only = later_only

    def __call__(self, chunk):
        search = self.search
        pairs = []
        for y in chunk:
            if search.cancel_token.cancelled:
                break
            for x in search.variables:
                if x == y or (self.later_only and search._node2ix[x] <= search._node2ix[y]):
                    continue
                if not search._pair_allowed(x, y):
                    continue
                bump = search._score_diff(x, y, ())
                if search.symmetric_first_step:
                    bump = max(bump, search._score_diff(y, x, ()))
                if bump > 0:
                    pairs.append((x, y))
        return pairs


class _ForwardTask:
    """
    Evaluates insertions into every node of a chunk, from the candidate parents given by the current search mode.
    """
    def __init__(self, search):
        self.search = search

    def __call__(self, chunk):
        search = self.search
        candidates = []
        for y in chunk:
            for x in search._order(search._forward_candidates(y)):
                if search.cancel_token.cancelled:
                    return candidates
                candidate = search._evaluate_forward(x, y)
                if candidate is not None:
                    candidates.append(candidate)
        return candidates


class _BackwardTask:
    """
    Evaluates deletions of the edges between each node of a chunk and its adjacents in ``nodes``.
    """
    def __init__(self, search, nodes: Set[Node]):
        self.search = search
        self.nodes = frozenset(nodes)

    def __call__(self, chunk):
        search = self.search
        graph = search.graph
        candidates = []
        for r in chunk:
            for w in search._order(graph.neighbors_of(r)):
                if search.cancel_token.cancelled:
                    return candidates
                if w not in self.nodes:
                    continue
                edge = graph.get_edge(w, r)
                if edge.points_towards(r):
                    directions = [(w, r)]
                elif edge.points_towards(w):
                    directions = [(r, w)]
                else:
                    directions = [(w, r), (r, w)]
                for a, b in directions:
                    candidate = search._evaluate_backward(a, b)
                    if candidate is not None:
                        candidates.append(candidate)
        return candidates


class Fges:
    """
    Fast Greedy Equivalence Search over CPDAGs, for a decomposable score.

    The search adds edges greedily (forward phase) and then removes them greedily (backward phase), applying at each
    step the valid insertion or deletion operator with the largest score increase. After every step, Meek's rules
    restore the graph to a CPDAG, and candidate operators are re-scored only around the nodes whose neighborhoods
    changed. Both phases are run once per search mode; see ``SearchMode``.

    Parameters
    ----------
    score:
        Decomposable score over the variables ``score.variables``.
    knowledge:
        Forbidden and required edges.
    external_graph:
        Graph to start the search from, instead of the empty graph. Its nodes must be the score's variables.
    bound_graph:
        Graph whose adjacencies bound those of the result: nodes not adjacent in it are never made adjacent.
    parallelism:
        Number of threads used to re-score candidate operators.
    max_degree:
        Largest degree of any node in the result, or -1 if unbounded. The smaller of this and ``score.max_degree``
        is used.
    faithfulness_assumed:
        If False, after the other modes, also search with every d-connected node as a candidate parent.
    symmetric_first_step:
        If True, a pair is an effect edge when adding an arc between them in either direction improves the score of
        the empty graph. If False, only the arc from the later variable to the earlier one is scored, which suffices
        for score-equivalent scores.
    penalty_discount:
        If given, set as the penalty discount of the score, which must then implement ``SupportsPenaltyDiscount``.
    cancel_token:
        Token that can be used to stop the search early. The graph returned is then the last CPDAG reached.
    verbose:
        If True, log every insertion and deletion at INFO level.
    meek_verbose:
        If True, log every orientation made by Meek's rules at INFO level.
    progress:
        If True, show a progress bar counting the operators applied in each phase.

    Examples
    --------
    >>> import causalges as cg
    >>> dag = cg.DAG(arcs={(0, 2), (1, 2)})
    >>> search = cg.Fges(cg.DSeparationScore(dag))
    >>> est = search.search()
    >>> est.arcs
    {(0, 2), (1, 2)}
    """
    def __init__(
            self,
            score: DecomposableScore,
            knowledge: Optional[Knowledge] = None,
            external_graph: Optional[MixedGraph] = None,
            bound_graph: Optional[MixedGraph] = None,
            parallelism: int = 1,
            max_degree: int = -1,
            faithfulness_assumed: bool = True,
            symmetric_first_step: bool = True,
            penalty_discount: Optional[float] = None,
            cancel_token: Optional[CancellationToken] = None,
            verbose: bool = False,
            meek_verbose: bool = False,
            progress: bool = False
    ):
        if score is None:
            raise ValueError('A score must be provided')
        if isinstance(parallelism, bool) or not isinstance(parallelism, int) or parallelism < 1:
            raise ValueError('parallelism must be an integer of at least 1, got %s' % parallelism)
        if max_degree < -1:
            raise ValueError('max_degree must be -1 (unbounded) or non-negative, got %s' % max_degree)

        variables = list(score.variables)
        if len(set(variables)) != len(variables):
            raise ValueError('The score has duplicate variables')
        if external_graph is not None and set(external_graph.nodes) != set(variables):
            raise ValueError("Variables aren't the same.")
        if bound_graph is not None and not set(bound_graph.nodes) <= set(variables):
            raise ValueError('The bound graph has nodes that are not variables of the score')
        if penalty_discount is not None:
            if not isinstance(score, SupportsPenaltyDiscount):
                raise ValueError('%s does not support a penalty discount' % type(score).__name__)
            score.penalty_discount = penalty_discount

        self.score = score
        self.variables = variables
        self._node2ix = core_utils.ix_map_from_list(variables)
        self.knowledge = knowledge if knowledge is not None else Knowledge()
        self.external_graph = external_graph
        self.bound_graph = bound_graph
        self.parallelism = parallelism
        self.max_degree = _min_degree_bound(max_degree, score.max_degree)
        self.faithfulness_assumed = faithfulness_assumed
        self.symmetric_first_step = symmetric_first_step
        self.cancel_token = cancel_token if cancel_token is not None else CancellationToken()
        self.verbose = verbose
        self.progress = progress

        self.graph = None
        self.model_score = None
        self.elapsed_time = None
        self.trace: List[Move] = []
        self.mode = SearchMode.HEURISTIC_SPEEDUP
        self._meek = MeekRules(knowledge=self.knowledge, verbose=meek_verbose)
        self._store = ArrowStore()
        self._effect_edges = defaultdict(set)
        self._scheduler = None

    def cancel(self):
        self.cancel_token.cancel()

    # === SEARCH
    def search(self, targets: Optional[Iterable[Node]] = None) -> MixedGraph:
        """
        Run the search and return the estimated CPDAG.

        Parameters
        ----------
        targets:
            If given, only search for the Markov blankets of these variables: candidate edges start from the
            targets and their neighbors, and the subgraph over the targets, their adjacents, and the parents of
            their children is returned.

        Return
        ------
        MixedGraph
            The estimated CPDAG. Its score is stored in ``model_score``.
        """
        start = time.time()
        if targets is not None:
            targets = self._check_targets(targets)

        self._store.clear()
        self._effect_edges = defaultdict(set)
        self.trace = []
        self.graph = MixedGraph(nodes=self.variables)
        if self.external_graph is not None:
            for edge in self.external_graph.all_edges():
                self.graph.add_mixed_edge(edge)
        self._add_required_edges()
        self._meek.orient_implied(self.graph)

        with ChunkScheduler(self.parallelism, cancel_token=self.cancel_token) as scheduler:
            self._scheduler = scheduler
            try:
                if targets is None:
                    self._initialize_effect_edges()
                else:
                    self._initialize_markov_blanket_effect_edges(targets)

                modes = [SearchMode.HEURISTIC_SPEEDUP, SearchMode.COVER_NONCOLLIDERS]
                if not self.faithfulness_assumed:
                    modes.append(SearchMode.ALLOW_UNFAITHFULNESS)
                for mode in modes:
                    self.mode = mode
                    self._fes()
                    self._bes()
            finally:
                self._scheduler = None

        self.model_score = score_dag(self.score, self.graph.to_dag())
        self.elapsed_time = time.time() - start
        logger.debug('Search finished in %.3fs with %d edges, score %s', self.elapsed_time,
                     self.graph.num_edges, self.model_score)

        if targets is not None:
            return self._markov_blanket_subgraph(targets)
        return self.graph

    def _check_targets(self, targets) -> List[Node]:
        targets = list(targets)
        if not targets:
            raise ValueError('At least one target must be given')
        for target in targets:
            if target not in self._node2ix:
                raise ValueError('Target %s is not a variable of the score' % (target,))
        return self._order(set(targets))

    def _add_required_edges(self):
        graph = self.graph
        for a, b in sorted(self.knowledge.required_edges, key=lambda edge: self._order_key(edge)):
            if a not in self._node2ix or b not in self._node2ix:
                continue
            if graph.has_arc(a, b):
                continue
            if graph.is_ancestor_of(b, a):
                logger.warning('Required edge %s --> %s would create a cycle and was not added', a, b)
                continue
            graph.remove_edge(a, b, ignore_error=True)
            graph.add_arc(a, b)
            if self.verbose:
                logger.info('Adding required edge %s --> %s', a, b)

        # reverse seeded edges whose orientation is forbidden
        for edge in graph.all_edges():
            if edge.is_directed():
                source, target = edge.source, edge.target
                if not self.knowledge.is_forbidden(source, target):
                    continue
            elif edge.is_undirected():
                source, target = edge.nodes
                if self.knowledge.is_forbidden(target, source):
                    source, target = target, source
                elif not self.knowledge.is_forbidden(source, target):
                    continue
            else:
                continue

            graph.remove_edge(source, target)
            if self.knowledge.is_forbidden(target, source) or graph.is_ancestor_of(source, target):
                logger.warning('Removing the edge between %s and %s, which knowledge forbids in both directions '
                               'or which cannot be reversed without a cycle', source, target)
                continue
            graph.add_arc(target, source)

    # === EFFECT EDGES
    def _initialize_effect_edges(self):
        pairs = self._scheduler.map_chunks(self.variables, _EffectEdgeTask(self, later_only=True))
        self._add_effect_edges(pairs)
        logger.debug('Found %d effect edges', len(pairs))

    def _initialize_markov_blanket_effect_edges(self, targets):
        pairs = self._scheduler.map_chunks(targets, _EffectEdgeTask(self, later_only=False))
        self._add_effect_edges(pairs)
        first_step = self._order({x for x, _ in pairs} - set(targets))
        second_step_pairs = self._scheduler.map_chunks(first_step, _EffectEdgeTask(self, later_only=False))
        self._add_effect_edges(second_step_pairs)
        logger.debug('Found %d effect edges around %d targets', len(pairs) + len(second_step_pairs), len(targets))

    def _add_effect_edges(self, pairs):
        for x, y in pairs:
            self._effect_edges[x].add(y)
            self._effect_edges[y].add(x)

    def _pair_allowed(self, x, y) -> bool:
        if self.bound_graph is not None and not self.bound_graph.is_adjacent(x, y):
            return False
        return not (self.knowledge.is_forbidden(x, y) and self.knowledge.is_forbidden(y, x))

    # === FORWARD
    def _fes(self):
        logger.debug('** FORWARD EQUIVALENCE SEARCH (%s)', self.mode.value)
        graph = self.graph
        self._reevaluate_forward(self.variables)

        with tqdm(desc='FES (%s)' % self.mode.value, unit='insertion', disable=not self.progress) as bar:
            while self._store.num_forward and not self.cancel_token.cancelled:
                arrow = self._store.pop_best_forward()
                x, y = arrow.a, arrow.b

                if graph.is_adjacent(x, y):
                    continue
                if self._degree_exceeded(x) or self._degree_exceeded(y):
                    continue
                if arrow.na_yx != self._get_na_yx(x, y):
                    continue
                if arrow.t_neighbors != self._get_t_neighbors(x, y):
                    continue
                if arrow.parents != frozenset(graph.parents_of(y)):
                    continue
                if not self._valid_insert(x, y, arrow.h_or_t, arrow.na_yx):
                    # paths elsewhere in the graph changed; score the edge again on its next visit
                    self._store.forget_forward_config((x, y))
                    continue

                self._insert(x, y, arrow.h_or_t, arrow.bump)
                bar.update()

                changed = self._meek.orient_implied(graph)
                to_process = changed | {x, y} | (graph.neighbors_of(x) & graph.neighbors_of(y))
                self._reevaluate_forward(to_process)

    def _forward_candidates(self, y) -> Set[Node]:
        graph = self.graph
        if self.mode == SearchMode.HEURISTIC_SPEEDUP:
            return set(self._effect_edges[y])
        elif self.mode == SearchMode.COVER_NONCOLLIDERS:
            candidates = set()
            for n in graph.neighbors_of(y):
                for m in graph.neighbors_of(n):
                    if m == y or graph.is_adjacent(m, y):
                        continue
                    if graph.is_def_collider(m, n, y):
                        continue
                    candidates.add(m)
            return candidates
        else:
            return graph.d_connected_to(y)

    def _reevaluate_forward(self, nodes):
        candidates = self._scheduler.map_chunks(self._order(nodes), _ForwardTask(self))
        for candidate in candidates:
            if not self._store.forward_config_changed(candidate.edge, candidate.config):
                continue
            self._store.record_forward_config(candidate.edge, candidate.config)
            if candidate.bump > 0:
                a, b = candidate.edge
                self._store.add_forward(a, b, candidate.bump, candidate.subset, candidate.na_yx,
                                        candidate.parents, candidate.t_neighbors)

    def _evaluate_forward(self, a, b) -> Optional[_Candidate]:
        """
        Find the subset T of the T-neighbors of ``b`` maximizing the score increase of inserting ``a``->``b``, among
        the subsets for which the insertion is valid. Ties go to the larger subset. Returns None if the insertion is
        impossible or was already evaluated in the same neighborhood.
        """
        graph = self.graph
        if a == b or graph.is_adjacent(a, b):
            return None
        if self.bound_graph is not None and not self.bound_graph.is_adjacent(a, b):
            return None
        if self.knowledge.is_forbidden(a, b):
            return None

        na_yx = self._get_na_yx(a, b)
        t_neighbors = self._get_t_neighbors(a, b)
        parents = frozenset(graph.parents_of(b))
        config = ArrowConfig(t_neighbors, na_yx, parents)
        if not self._store.forward_config_changed((a, b), config):
            return None

        best_bump, best_t = -math.inf, frozenset()
        for t in core_utils.powerset(self._order(t_neighbors)):
            if self.cancel_token.cancelled:
                break
            if any(self.knowledge.is_forbidden(node, b) for node in t):
                continue
            union = t | na_yx
            if not self._is_clique(union):
                continue
            bump = self._insert_eval(a, b, t, na_yx, parents)
            if bump <= 0 or bump < best_bump or (bump == best_bump and len(t) <= len(best_t)):
                continue
            if not self._semidirected_paths_blocked(b, a, union):
                continue
            if self._undefined_score(b, union | parents | {a}):
                continue
            best_bump, best_t = bump, t

        return _Candidate((a, b), config, best_bump, best_t, na_yx, parents, t_neighbors)

    def _insert_eval(self, x, y, t, na_yx, parents) -> float:
        return self._score_diff(x, y, na_yx | t | parents)

    def _valid_insert(self, x, y, t, na_yx) -> bool:
        if self.knowledge.is_forbidden(x, y):
            return False
        if any(self.knowledge.is_forbidden(node, y) for node in t):
            return False
        union = t | na_yx
        if not self._is_clique(union) or not self._semidirected_paths_blocked(y, x, union):
            return False
        return not self._undefined_score(y, union | self.graph.parents_of(y) | {x})

    def _insert(self, x, y, t, bump):
        graph = self.graph
        graph.add_arc(x, y)
        for node in self._order(t):
            graph.replace_edge_with_arc(node, y)
        self.trace.append(Move('insert', x, y, t, bump))
        if self.verbose:
            logger.info('Inserting %s --> %s T = %s bump = %.4f', x, y, self._format(t), bump)

    # === BACKWARD
    def _bes(self):
        logger.debug('** BACKWARD EQUIVALENCE SEARCH (%s)', self.mode.value)
        graph = self.graph
        self._reevaluate_backward(set(self.variables))

        with tqdm(desc='BES (%s)' % self.mode.value, unit='deletion', disable=not self.progress) as bar:
            while self._store.num_backward and not self.cancel_token.cancelled:
                arrow = self._store.pop_best_backward()
                x, y = arrow.a, arrow.b

                if not graph.is_adjacent(x, y):
                    continue
                if graph.get_edge(x, y).points_towards(x):
                    continue
                na_yx = self._get_na_yx(x, y)
                if arrow.na_yx != na_yx:
                    continue
                if arrow.parents != frozenset(graph.parents_of(y)):
                    continue
                if not self._valid_delete(x, y, arrow.h_or_t, na_yx):
                    continue

                bump = self._delete_eval(x, y, na_yx - arrow.h_or_t, arrow.parents)
                self._delete(x, y, arrow.h_or_t, bump)
                bar.update()

                changed = self._meek.orient_implied(graph)
                to_process = changed | {x, y} | graph.neighbors_of(x) | graph.neighbors_of(y)
                self._reevaluate_backward(to_process)

        self._meek.orient_implied(graph)

    def _reevaluate_backward(self, nodes):
        candidates = self._scheduler.map_chunks(self._order(nodes), _BackwardTask(self, nodes))
        for candidate in candidates:
            if not self._store.backward_config_changed(candidate.edge, candidate.config):
                continue
            self._store.record_backward_config(candidate.edge, candidate.config)
            if candidate.bump > 0:
                a, b = candidate.edge
                self._store.add_backward(a, b, candidate.bump, candidate.subset, candidate.na_yx, candidate.parents)

    def _evaluate_backward(self, a, b) -> Optional[_Candidate]:
        """
        Find the subset H of naYX(``a``, ``b``) maximizing the score increase of deleting the edge ``a``->``b``.
        Returns None if the deletion is impossible or was already evaluated in the same neighborhood.
        """
        if not self.knowledge.no_edge_required(a, b):
            return None

        na_yx = self._get_na_yx(a, b)
        parents = frozenset(self.graph.parents_of(b))
        config = BackwardArrowConfig(na_yx, parents)
        if not self._store.backward_config_changed((a, b), config):
            return None

        best_bump, best_complement = -math.inf, frozenset()
        for complement in core_utils.powerset(self._order(na_yx)):
            if self.cancel_token.cancelled:
                break
            if not self._is_clique(complement):
                continue
            bump = self._delete_eval(a, b, complement, parents)
            if bump <= best_bump:
                continue
            if self._delete_orients_into_undefined(a, b, na_yx - complement):
                continue
            best_bump, best_complement = bump, complement

        return _Candidate((a, b), config, best_bump, na_yx - best_complement, na_yx, parents, None)

    def _delete_eval(self, x, y, complement, parents) -> float:
        diff = self._score_diff(x, y, (complement | parents) - {x})
        return -diff if diff > -math.inf else -math.inf

    def _valid_delete(self, x, y, h, na_yx) -> bool:
        graph = self.graph
        if not self.knowledge.no_edge_required(x, y):
            return False
        if not self.knowledge.is_empty():
            for node in h:
                if node in graph.parents_of(y) or node in graph.parents_of(x):
                    continue
                if self.knowledge.is_forbidden(y, node):
                    return False
                if graph.has_edge(x, node) and self.knowledge.is_forbidden(x, node):
                    return False
        return self._is_clique(na_yx - h) and not self._delete_orients_into_undefined(x, y, h)

    def _delete_orients_into_undefined(self, x, y, h) -> bool:
        """
        Check if deleting ``x``-``y`` with subset ``h`` gives some node of ``h`` a parent set it cannot be scored
        under.
        """
        graph = self.graph
        for node in h:
            if node in graph.parents_of(y) or node in graph.parents_of(x):
                continue
            parents = graph.parents_of(node) | {y}
            if graph.has_edge(x, node):
                parents.add(x)
            if self._undefined_score(node, parents):
                return True
        return False

    def _delete(self, x, y, h, bump):
        graph = self.graph
        graph.remove_edge(x, y)
        for node in self._order(h):
            if node in graph.parents_of(y) or node in graph.parents_of(x):
                continue
            graph.remove_edge(y, node)
            graph.add_arc(y, node)
            if graph.has_edge(x, node):
                graph.replace_edge_with_arc(x, node)
        self.trace.append(Move('delete', x, y, h, bump))
        if self.verbose:
            logger.info('Deleting %s --- %s H = %s bump = %.4f', x, y, self._format(h), bump)

    # === GRAPH CONDITIONS
    def _get_na_yx(self, x, y) -> frozenset:
        """
        Return the undirected neighbors of ``y`` that are adjacent to ``x``.
        """
        graph = self.graph
        return frozenset(z for z in graph.undirected_neighbors_of(y) if graph.is_adjacent(z, x))

    def _get_t_neighbors(self, x, y) -> frozenset:
        """
        Return the undirected neighbors of ``y``, other than ``x``, that are not adjacent to ``x``.
        """
        graph = self.graph
        return frozenset(z for z in graph.undirected_neighbors_of(y) if z != x and not graph.is_adjacent(z, x))

    def _is_clique(self, nodes) -> bool:
        nodes = self._order(nodes)
        for ix, i in enumerate(nodes):
            if self.cancel_token.cancelled:
                return False
            for j in nodes[ix+1:]:
                if not self.graph.is_adjacent(i, j):
                    return False
        return True

    def _semidirected_paths_blocked(self, from_node, to_node, cond) -> bool:
        """
        Check that every semi-directed path from ``from_node`` to ``to_node`` passes through ``cond``.
        """
        graph = self.graph
        queue = deque([from_node])
        visited = {from_node}
        while queue:
            if self.cancel_token.cancelled:
                return False
            node = queue.popleft()
            if node in cond:
                continue
            if node == to_node:
                return False
            for other in graph.neighbors_of(node):
                if other in visited:
                    continue
                if graph.get_edge(node, other).endpoint_at(node) == Endpoint.TAIL:
                    visited.add(other)
                    queue.append(other)
        return True

    def _degree_exceeded(self, node) -> bool:
        return self.max_degree != -1 and self.graph.degree_of(node) >= self.max_degree

    # === SCORING
    def _score_diff(self, x, y, cond) -> float:
        """
        Score change of adding ``x`` to the parents ``cond`` of ``y``, with NaN mapped to -inf.
        """
        parents = sorted(self._node2ix[node] for node in cond)
        diff = self.score.local_score_diff(self._node2ix[x], self._node2ix[y], parents)
        if math.isnan(diff):
            return -math.inf
        return diff

    def _undefined_score(self, node, parents) -> bool:
        parents = sorted(self._node2ix[p] for p in parents)
        return math.isnan(self.score.local_score(self._node2ix[node], parents))

    def log_edge_bayes_factors(self, dag) -> Dict[DirectedEdge, float]:
        """
        For each arc ``x``->``y`` of ``dag``, return the local score of ``y`` given its parents minus its local
        score without ``x``. Under a BIC score, this is twice the log Bayes factor in favor of keeping the arc.
        """
        factors = dict()
        for x, y in dag.arcs:
            parents = sorted(self._node2ix[node] for node in dag.parents_of(y))
            without_x = [p for p in parents if p != self._node2ix[x]]
            yix = self._node2ix[y]
            factors[(x, y)] = self.score.local_score(yix, parents) - self.score.local_score(yix, without_x)
        return factors

    # === UTILITIES
    def _order(self, nodes) -> List[Node]:
        return sorted(nodes, key=self._node2ix.__getitem__)

    def _order_key(self, edge):
        return self._node2ix.get(edge[0], -1), self._node2ix.get(edge[1], -1)

    def _format(self, nodes) -> str:
        return '[%s]' % ', '.join(map(str, self._order(nodes)))

    def _markov_blanket_subgraph(self, targets) -> MixedGraph:
        graph = self.graph
        blanket = set(targets)
        for target in targets:
            blanket.update(graph.neighbors_of(target))
            for child in graph.children_of(target):
                blanket.update(graph.parents_of(child))
        return graph.induced_subgraph(blanket)


def _min_degree_bound(*bounds) -> int:
    bounds = [bound for bound in bounds if bound is not None and bound != -1]
    return min(bounds) if bounds else -1


def fges(
        score: DecomposableScore,
        knowledge: Optional[Knowledge] = None,
        parallelism: int = 1,
        max_degree: int = -1,
        faithfulness_assumed: bool = True,
        verbose: bool = False,
        **kwargs
) -> MixedGraph:
    """
    Estimate a CPDAG with Fast Greedy Equivalence Search.

    Parameters
    ----------
    score:
        Decomposable score over the variables ``score.variables``.
    knowledge:
        Forbidden and required edges.
    parallelism:
        Number of threads used to re-score candidate operators.
    max_degree:
        Largest degree of any node in the result, or -1 if unbounded.
    faithfulness_assumed:
        If False, run an additional phase that considers every d-connected pair.
    verbose:
        If True, log every insertion and deletion.
    kwargs:
        Other arguments of ``Fges``.

    See Also
    --------
    Fges, fges_mb

    Examples
    --------
    >>> import causalges as cg
    >>> dag = cg.DAG(arcs={(0, 1), (1, 2)})
    >>> est = cg.fges(cg.DSeparationScore(dag))
    >>> est.edges == {frozenset({0, 1}), frozenset({1, 2})}
    True
    """
    search = Fges(
        score,
        knowledge=knowledge,
        parallelism=parallelism,
        max_degree=max_degree,
        faithfulness_assumed=faithfulness_assumed,
        verbose=verbose,
        **kwargs
    )
    return search.search()


def fges_mb(score: DecomposableScore, targets: Iterable[Node], **kwargs) -> MixedGraph:
    """
    Estimate the part of the CPDAG over the Markov blankets of ``targets``, starting the search from the targets.

    Examples
    --------
    >>> import causalges as cg
    >>> dag = cg.DAG(arcs={(0, 1), (1, 2), (3, 2), (2, 4), (4, 5)})
    >>> mb = cg.fges_mb(cg.DSeparationScore(dag), targets=[1])
    >>> sorted(mb.nodes)
    [0, 1, 2, 3]
    """
    return Fges(score, **kwargs).search(targets=targets)
