"""
Booking conversation: state machine, effect execution and check-in.
"""

from .checkin import CheckInService
from .service import ConversationService
from .state import transition, derive_phase, Transition

__all__ = ["ConversationService", "CheckInService", "transition", "derive_phase", "Transition"]
