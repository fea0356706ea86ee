"""
Trigger resolution.
"""

from .signal import Signal
from .resolver import TriggerResolver, Resolution

__all__ = [
    "Signal",
    "TriggerResolver",
    "Resolution",
]
