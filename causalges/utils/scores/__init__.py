from .score import DecomposableScore, MemoizedDecomposableScore, SupportsPenaltyDiscount, score_dag
from .gaussian_bic_score import GaussianBicScore, gaussian_bic_suffstat, local_gaussian_bic_score
from .dsep_score import DSeparationScore
