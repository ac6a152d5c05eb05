from typing import Set, Hashable, Tuple, FrozenSet, Union
Node = Hashable
DirectedEdge = Tuple[Node, Node]
UndirectedEdge = FrozenSet[Node]
NodeSet = Union[Hashable, Set[Hashable]]
