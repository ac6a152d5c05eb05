import itertools as itr
from typing import Iterable, Sequence, List


def ix_map_from_list(l):
    return {e: i for i, e in enumerate(l)}


def powerset(s: Sequence, r_min=0, r_max=None) -> Iterable[frozenset]:
    """
    Iterate over the subsets of ``s`` by increasing size, and lexicographically in the order of ``s`` within
    each size.
    """
    s = list(s)
    if r_max is None or r_max > len(s):
        r_max = len(s)
    return map(frozenset, itr.chain(*(itr.combinations(s, r) for r in range(r_min, r_max+1))))


def chunks(items: Sequence, chunk_size: int) -> List[list]:
    items = list(items)
    return [items[start:start+chunk_size] for start in range(0, len(items), chunk_size)]


def to_set(o) -> set:
    if isinstance(o, set):
        return o
    if o is None:
        return set()
    if isinstance(o, (frozenset, list, tuple)):
        return set(o)
    return {o}
