"""
Flow services.
"""

from .service import FlowService

__all__ = ["FlowService"]
