"""
Utility modules for the hospital chat backend.
"""

from .phone import PhoneNumberParser
from .date import DateParser, now_iso, now_utc, parse_iso
from .text import (
    normalize_inbound,
    strip_emoji,
    truncate_title,
    format_doctor_name,
    rewrite_header_doctor,
    inject_doctor_name,
    normalize_body_to_header,
    extract_doctor_name,
)
from .validation import require_fields, missing_fields, coerce_limit
from .logging import get_logger, configure_logging

__all__ = [
    "PhoneNumberParser",
    "DateParser",
    "now_iso",
    "now_utc",
    "parse_iso",
    "normalize_inbound",
    "strip_emoji",
    "truncate_title",
    "format_doctor_name",
    "rewrite_header_doctor",
    "inject_doctor_name",
    "normalize_body_to_header",
    "extract_doctor_name",
    "require_fields",
    "missing_fields",
    "coerce_limit",
    "get_logger",
    "configure_logging",
]
