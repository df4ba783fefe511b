"""
Symbol matching and resolution.
"""

from .preferences import PreferenceTracker, normalize_query
from .resolver import SymbolResolver

__all__ = [
    "PreferenceTracker",
    "normalize_query",
    "SymbolResolver",
]
