import numpy as np
from scipy import linalg
from typing import Sequence, Hashable, Optional
from causalges.utils.scores.score import DecomposableScore


def gaussian_bic_suffstat(samples) -> dict:
    """
    Return the sufficient statistics of a linear Gaussian BIC score: the maximum likelihood covariance matrix
    ``C`` and the number of samples ``n``.
    """
    samples = np.asarray(samples, dtype=float)
    n = samples.shape[0]
    S = np.cov(samples, rowvar=False)
    return dict(C=np.atleast_2d(S) * (n-1) / n, n=n)


def local_gaussian_bic_score(node, parents, suffstat, penalty_discount=1.):
    """
    BIC of the linear Gaussian regression of ``node`` on ``parents``.

    Returns NaN when the parents' covariance is singular or the residual variance is not positive.
    """
    n = suffstat['n']
    C, i, p = suffstat['C'], node, list(parents)
    if p:
        try:
            coefs = linalg.solve(C[np.ix_(p, p)], C[p, i], assume_a='pos')
        except (linalg.LinAlgError, ValueError):
            return np.nan
        var = C[i, i] - C[i, p] @ coefs
    else:
        var = C[i, i]
    if not var > 0:
        return np.nan
    log_prob = -.5*n*(1 + np.log(2*np.pi*var))
    penalty_term = -.5*penalty_discount*np.log(n)*(2 + len(p))

    return log_prob + penalty_term


class GaussianBicScore(DecomposableScore):
    """
    Linear Gaussian BIC score, with a penalty discount that scales the complexity penalty.

    Parameters
    ----------
    suffstat:
        Dictionary with the maximum likelihood covariance ``C`` and the sample size ``n``, as returned by
        ``gaussian_bic_suffstat``.
    variables:
        Names of the variables, one per row of ``C``. Defaults to ``0, ..., p-1``.
    penalty_discount:
        Multiplier of the ``log(n)/2`` penalty per parameter.
    max_degree:
        Largest degree allowed for any node, or -1 if unbounded.

    Examples
    --------
    >>> import numpy as np
    >>> import causalges as cg
    >>> samples = np.random.normal(size=(100, 3))
    >>> score = cg.GaussianBicScore.from_samples(samples)
    >>> score.variables
    [0, 1, 2]
    """
    def __init__(self, suffstat: dict, variables: Optional[Sequence[Hashable]] = None, penalty_discount=1.,
                 max_degree: int = -1):
        nvariables = suffstat['C'].shape[0]
        if variables is None:
            variables = list(range(nvariables))
        if len(variables) != nvariables:
            raise ValueError('Got %d variable names for %d variables' % (len(variables), nvariables))
        super().__init__(variables, max_degree=max_degree)
        self.suffstat = suffstat
        self.penalty_discount = penalty_discount

    @classmethod
    def from_samples(cls, samples, variables=None, **kwargs):
        return cls(gaussian_bic_suffstat(samples), variables=variables, **kwargs)

    @property
    def sample_size(self) -> int:
        return self.suffstat['n']

    def local_score(self, node: int, parents: Sequence[int]) -> float:
        return local_gaussian_bic_score(node, parents, self.suffstat, penalty_discount=self.penalty_discount)

    def local_score_diff(self, x: int, y: int, parents: Sequence[int] = ()) -> float:
        parents = [p for p in parents if p != x]
        return self.local_score(y, parents + [x]) - self.local_score(y, parents)
