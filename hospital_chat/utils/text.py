"""
Text processing utilities for template personalization.
"""

import re
from typing import Optional

# Pictographs, dingbats, misc symbols, variation selectors and joiners
_EMOJI_RE = re.compile(
    "["
    "\U0001F300-\U0001F6FF"
    "\U0001F900-\U0001FAFF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\u2B00-\u2BFF"
    "\uFE0F"
    "\u200D"
    "]+"
)

DOCTOR_REF_RE = re.compile(r"Dr\.?\s+[^\n\r]*", re.IGNORECASE)
DOCTOR_MARKER_RE = re.compile(r"Dr\.?\s+", re.IGNORECASE)
DOCTOR_NAME_RE = re.compile(r"Dr\.?\s+([A-Z][a-zA-Z-']+)")

ELLIPSIS = "…"


def normalize_inbound(text: Optional[str]) -> str:
    """Lower-case and trim inbound free text before keyword matching."""
    return (text or "").lower().strip()


def strip_emoji(text: Optional[str]) -> str:
    """Remove emoji and collapse the whitespace they leave behind."""
    if not text:
        return ""
    cleaned = _EMOJI_RE.sub("", text)
    return re.sub(r"\s+", " ", cleaned).strip()


def truncate_title(text: Optional[str], limit: int = 24) -> str:
    """Truncate to at most ``limit`` characters, marking the cut with an ellipsis."""
    value = (text or "").strip()
    if len(value) <= limit:
        return value
    return value[: limit - 1].rstrip() + ELLIPSIS


def format_doctor_name(name: str) -> str:
    """Ensure a doctor name carries the ``Dr.`` prefix."""
    name = name.strip()
    if DOCTOR_MARKER_RE.match(name):
        return name
    return f"Dr. {name}"


def doctor_portion(header: str) -> str:
    """Doctor part of a header like ``Dr. X - Available Slots``."""
    header = header.strip()
    if " - " in header:
        return header.split(" - ", 1)[0].strip()
    if "\n" in header:
        return header.split("\n", 1)[0].strip()
    return header


def rewrite_header_doctor(header: Optional[str], doctor_name: str) -> str:
    """Replace the doctor-name portion of a header, keeping any `` - suffix``."""
    if header and " - " in header:
        suffix = header.split(" - ", 1)[1]
        return f"{doctor_name} - {suffix}"
    return doctor_name


def inject_doctor_name(body: str, doctor_name: str) -> str:
    """Replace the first ``Dr. <name>`` reference in a body or prepend one."""
    display = format_doctor_name(doctor_name)
    if DOCTOR_REF_RE.search(body):
        return DOCTOR_REF_RE.sub(lambda _m: display, body, count=1)
    return f"{display}\n{body}"


def normalize_body_to_header(header: Optional[str], body: Optional[str]) -> Optional[str]:
    """Make the body's doctor reference agree with the header's.

    Only applies when the header itself names a doctor and the body names a
    different one.
    """
    if not header or not body or not DOCTOR_MARKER_RE.search(header):
        return body
    match = DOCTOR_REF_RE.search(body)
    if not match:
        return body
    doctor_only = doctor_portion(header)
    if match.group(0).strip() == doctor_only:
        return body
    return DOCTOR_REF_RE.sub(lambda _m: doctor_only, body, count=1)


def extract_doctor_name(text: Optional[str]) -> Optional[str]:
    """Find a ``Dr. Surname`` mention in free text."""
    if not text:
        return None
    match = DOCTOR_NAME_RE.search(text)
    if not match:
        return None
    return f"Dr. {match.group(1)}"
