from .dag import Fges, SearchMode, Move, fges, fges_mb, MeekRules

__all__ = ['Fges', 'SearchMode', 'Move', 'fges', 'fges_mb', 'MeekRules']
