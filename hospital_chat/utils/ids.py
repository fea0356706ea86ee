"""
Identifier minting.
"""

import random
import string
import time
import uuid

_BASE36 = string.ascii_lowercase + string.digits


def _millis() -> int:
    return int(time.time() * 1000)


def random_suffix(length: int = 6) -> str:
    return "".join(random.choices(_BASE36, k=length))


def unique_suffix() -> str:
    """Timestamp plus random suffix, unique enough for per-transaction ids."""
    return f"{_millis()}_{random_suffix()}"


def new_document_id() -> str:
    """Auto id for a stored document."""
    return uuid.uuid4().hex[:20]


def mint_template_id() -> str:
    return f"msg_{unique_suffix()}"


def mint_flow_token() -> str:
    """Correlation token echoed back when an external form completes."""
    return f"flow_token_{unique_suffix()}"
