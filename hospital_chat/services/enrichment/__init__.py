"""
Dynamic template enrichment.
"""

from .enricher import TemplateEnricher, is_active, slot_label

__all__ = ["TemplateEnricher", "is_active", "slot_label"]
