from typing import Sequence, Hashable, Optional
from causalges.utils.scores.score import DecomposableScore


class DSeparationScore(DecomposableScore):
    """
    Oracle score read off a known DAG: adding ``x`` to the parents of ``y`` gains 1 if ``x`` and ``y`` are
    d-connected given the other parents, and loses 1 if they are d-separated.

    Searching with this score recovers the CPDAG of the DAG, which makes it useful for checking search
    correctness without sampling noise.

    Examples
    --------
    >>> import causalges as cg
    >>> score = cg.DSeparationScore(cg.DAG(arcs={(0, 1), (2, 1)}))
    >>> score.local_score_diff(0, 2, [])
    -1.0
    >>> score.local_score_diff(0, 2, [1])
    1.0
    """
    def __init__(self, dag, variables: Optional[Sequence[Hashable]] = None, max_degree: int = -1):
        if variables is None:
            variables = sorted(dag.nodes)
        if set(variables) != dag.nodes:
            raise ValueError("Variables aren't the same as the nodes of the DAG")
        super().__init__(variables, max_degree=max_degree)
        self.dag = dag
        self._cache = dict()

    def local_score_diff(self, x: int, y: int, parents: Sequence[int] = ()) -> float:
        key = (x, y, frozenset(parents) - {x})
        if key not in self._cache:
            conditioning_set = {self._variables[p] for p in key[2]}
            dsep = self.dag.dsep(self._variables[x], self._variables[y], conditioning_set)
            self._cache[key] = -1. if dsep else 1.
        return self._cache[key]

    def local_score(self, node: int, parents: Sequence[int]) -> float:
        # add parents one at a time, in index order
        score = 0.
        added = []
        for parent in sorted(parents):
            score += self.local_score_diff(parent, node, added)
            added.append(parent)
        return score
