from .fges import Fges, SearchMode, Move, fges, fges_mb
from .meek import MeekRules
from .arrows import Arrow, ArrowConfig, BackwardArrowConfig, ArrowStore, SequenceGenerator
from .scheduler import ChunkScheduler, chunk_nodes
