"""
Phone number normalization utilities.
"""

import re
from typing import Optional


class PhoneNumberParser:
    """Phone number helpers for WhatsApp recipients."""

    @staticmethod
    def digits(phone) -> str:
        """Strip every non-digit character."""
        if phone is None:
            return ""
        return re.sub(r"\D", "", str(phone))

    @classmethod
    def last_ten(cls, phone) -> str:
        """Last 10 digits, the part shared across country-code variants."""
        return cls.digits(phone)[-10:]

    @classmethod
    def same_number(cls, a, b) -> bool:
        """True when both numbers end in the same 10 digits."""
        left = cls.last_ten(a)
        return bool(left) and left == cls.last_ten(b)

    @classmethod
    def to_whatsapp_format(cls, phone: str, country_code: str = "91") -> Optional[str]:
        """
        Format a number for the WhatsApp Cloud API.

        Bare 10-digit numbers get the country code prepended; anything else
        is passed through with formatting characters removed.

        Args:
            phone: Phone number in any format
            country_code: Code prepended to bare local numbers

        Returns:
            Digits-only number or None if no digits are present
        """
        digits = cls.digits(phone)
        if not digits:
            return None
        if not digits.startswith(country_code) and len(digits) == 10:
            return country_code + digits
        return digits
