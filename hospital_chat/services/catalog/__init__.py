"""
Template catalog and seeded conversation graph.
"""

from .catalog import TemplateCatalog
from . import seed

__all__ = [
    "TemplateCatalog",
    "seed",
]
