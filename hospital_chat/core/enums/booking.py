"""
Booking and conversation enums.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Lifecycle status of a persisted booking."""

    SCHEDULED = "scheduled"
    ARRIVED = "arrived"


class BookingPhase(str, Enum):
    """Per-phone booking conversation phase."""

    NONE = "none"
    DOCTOR_CHOSEN = "doctor_chosen"
    SLOT_CHOSEN = "slot_chosen"
    AWAITING_PAYMENT = "awaiting_payment"
    FINALIZED = "finalized"
    ABANDONED = "abandoned"


class Gender(str, Enum):
    """Gender captured from registration forms."""

    MALE = "male"
    FEMALE = "female"

    @classmethod
    def from_form_value(cls, value) -> "Gender":
        """Map a form choice to a gender.

        Choices such as ``0_Yes``, ``yes``, ``male`` or ``m`` mean male,
        anything else is female.
        """
        s = str(value).strip().lower()
        if "0_" in s or "yes" in s or s == "m" or ("male" in s and "female" not in s):
            return cls.MALE
        return cls.FEMALE
