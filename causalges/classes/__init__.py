from .edge import Edge, Endpoint
from .dag import DAG, CycleError
from .mixed_graph import MixedGraph
from .knowledge import Knowledge
from . import dag, mixed_graph
