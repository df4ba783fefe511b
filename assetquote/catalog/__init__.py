"""
Symbol catalog.
"""

from .catalog import SymbolCatalog, merge_aliases

__all__ = ["SymbolCatalog", "merge_aliases"]
