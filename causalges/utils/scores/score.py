from abc import ABC, abstractmethod
from typing import Sequence, Hashable, List, Callable, Protocol, runtime_checkable
from causalges.utils import core_utils


@runtime_checkable
class SupportsPenaltyDiscount(Protocol):
    """
    Optional capability of a score whose complexity penalty can be scaled by a multiplicative discount.
    """
    penalty_discount: float


class DecomposableScore(ABC):
    """
    A score that decomposes as a sum over variables of a local score of each variable given its parents.

    Local scores are indexed by the position of each variable in ``variables``. Implementations may return NaN
    for degenerate configurations, such as a singular covariance matrix; searches never select a move whose score
    change is NaN.

    Parameters
    ----------
    variables:
        The variables being scored. Each variable's index is its position in this list.
    max_degree:
        Largest degree the score supports for any node in a graph, or -1 if unbounded.
    """
    def __init__(self, variables: Sequence[Hashable], max_degree: int = -1):
        self._variables = list(variables)
        self._max_degree = max_degree

    @property
    def variables(self) -> List[Hashable]:
        return list(self._variables)

    @property
    def max_degree(self) -> int:
        return self._max_degree

    @abstractmethod
    def local_score(self, node: int, parents: Sequence[int]) -> float:
        raise NotImplementedError

    def local_score_diff(self, x: int, y: int, parents: Sequence[int] = ()) -> float:
        """
        Return the change in the local score of ``y`` when ``x`` is added to the parent set ``parents``.

        Subclasses may override this to compute the difference directly.
        """
        parents = list(parents)
        return self.local_score(y, parents + [x]) - self.local_score(y, parents)


class MemoizedDecomposableScore(DecomposableScore):
    """
    Decomposable score computed by the function ``local_score(node, parents, suffstat, **kwargs)``, caching one
    value per node and parent set.

    Examples
    --------
    >>> import causalges as cg
    >>> local_score = lambda node, parents, suffstat: float(len(set(parents) & suffstat[node]))
    >>> score = cg.MemoizedDecomposableScore(local_score, {0: set(), 1: {0}}, variables=['a', 'b'])
    >>> score.local_score_diff(0, 1)
    1.0
    """
    def __init__(self, local_score: Callable, suffstat, variables: Sequence[Hashable], max_degree: int = -1,
                 **kwargs):
        super().__init__(variables, max_degree=max_degree)
        self._local_score_fn = local_score
        self.suffstat = suffstat
        self.kwargs = kwargs
        self.score_dict = dict()

    def local_score(self, node: int, parents: Sequence[int]) -> float:
        key = (node, frozenset(parents))
        if key in self.score_dict:
            return self.score_dict[key]
        score = self._local_score_fn(node, sorted(key[1]), self.suffstat, **self.kwargs)
        self.score_dict[key] = score
        return score


def score_dag(score: DecomposableScore, dag) -> float:
    """
    Return the total score of ``dag``, i.e. the sum of the local score of each node given its parents in ``dag``.
    """
    node2ix = core_utils.ix_map_from_list(score.variables)
    total_score = 0
    for node in dag.nodes:
        parents = sorted(node2ix[parent] for parent in dag.parents_of(node))
        total_score += score.local_score(node2ix[node], parents)
    return total_score
