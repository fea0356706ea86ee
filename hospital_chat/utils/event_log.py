"""
Conversation event log.

Each line of the log is one JSON record. A record always carries the
inbound WhatsApp message id it belongs to (``event_id``), the record kind
(``event``) and the time it was written (``at``); those three keys are set
last so payload fields can never replace them.
"""

import contextvars
import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .date import now_iso

_log_path = Path(os.environ.get("EVENT_LOG_PATH", "hospital_event_log.jsonl"))

_inbound_message_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "inbound_message_id", default=None
)


def set_log_path(path: Union[str, Path]) -> None:
    global _log_path
    _log_path = Path(path)


def get_log_path() -> Path:
    return _log_path


def set_event_id(message_id: Optional[str]) -> None:
    """Tie subsequent records in this task to an inbound message id."""
    _inbound_message_id.set(message_id)


def log_event(event: str, data: Dict[str, Any], *, event_id: Optional[str] = None) -> Dict[str, Any]:
    """Append one record and return it as written."""
    record = dict(data)
    record["event_id"] = event_id if event_id is not None else _inbound_message_id.get()
    record["event"] = event
    record["at"] = now_iso()
    _log_path.parent.mkdir(parents=True, exist_ok=True)
    with _log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False, default=str))
        f.write("\n")
    return record


def log_transition(
    phone: str,
    signal: Optional[str],
    trigger_id: Optional[str],
    conversation_event: str,
    phase: str,
    effects: Iterable[str],
    reinterpreted: bool = False,
) -> Dict[str, Any]:
    """Record which state machine event a signal became and what it produced."""
    return log_event("transition", {
        "phone": phone,
        "signal": signal,
        "trigger": trigger_id,
        "conversation_event": conversation_event,
        "reinterpreted": reinterpreted,
        "phase": phase,
        "effects": list(effects),
    })


def log_effect_failure(phone: str, effect: str, error: BaseException) -> Dict[str, Any]:
    return log_event("effect_failed", {"phone": phone, "effect": effect, "error": str(error)})
