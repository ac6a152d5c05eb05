"""Chunked, optionally parallel evaluation of per-node work.
"""

from typing import Callable, List, Sequence
from joblib import Parallel, delayed
from causalges.utils import core_utils
from causalges.utils.cancellation import CancellationToken

MIN_CHUNK_SIZE = 10


def chunk_nodes(nodes: Sequence, parallelism: int) -> List[list]:
    """
    Split ``nodes`` into contiguous chunks of ``max(10, len(nodes) // parallelism)`` nodes.

    Examples
    --------
    >>> from causalges.structure_learning.dag.scheduler import chunk_nodes
    >>> [len(chunk) for chunk in chunk_nodes(range(45), 2)]
    [22, 22, 1]
    """
    chunk_size = max(MIN_CHUNK_SIZE, len(nodes) // parallelism)
    return core_utils.chunks(nodes, chunk_size)


class ChunkScheduler:
    """
    Runs a task over chunks of nodes, sequentially when ``parallelism`` is 1 and on a pool of ``parallelism``
    threads otherwise.

    ``map_chunks`` blocks until every chunk is done and returns the concatenated results in chunk order, so its
    output does not depend on how the chunks were scheduled. Tasks stop early, returning partial results, once
    the cancellation token is set.

    Examples
    --------
    >>> from causalges.structure_learning.dag.scheduler import ChunkScheduler
    >>> with ChunkScheduler(parallelism=2) as scheduler:
    ...     scheduler.map_chunks(list(range(25)), lambda chunk: [node**2 for node in chunk])[:4]
    [0, 1, 4, 9]
    """
    def __init__(self, parallelism: int = 1, cancel_token: CancellationToken = None):
        if parallelism < 1:
            raise ValueError('parallelism must be at least 1, got %s' % parallelism)
        self.parallelism = parallelism
        self.cancel_token = cancel_token if cancel_token is not None else CancellationToken()
        self._parallel = None

    def __enter__(self):
        if self.parallelism > 1:
            self._parallel = Parallel(n_jobs=self.parallelism, prefer='threads')
            self._parallel.__enter__()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self._parallel is not None:
            self._parallel.__exit__(exc_type, exc_value, traceback)
            self._parallel = None

    def map_chunks(self, nodes: Sequence, task: Callable[[list], list]) -> list:
        """
        Apply ``task`` to each chunk of ``nodes`` and concatenate the lists it returns.
        """
        chunks = chunk_nodes(nodes, self.parallelism)
        if self.parallelism == 1 or len(chunks) == 1:
            results = []
            for chunk in chunks:
                if self.cancel_token.cancelled:
                    break
                results.extend(task(chunk))
            return results

        if self._parallel is not None:
            chunk_results = self._parallel(delayed(task)(chunk) for chunk in chunks)
        else:
            chunk_results = Parallel(n_jobs=self.parallelism, prefer='threads')(
                delayed(task)(chunk) for chunk in chunks
            )
        return [result for chunk_result in chunk_results for result in chunk_result]
