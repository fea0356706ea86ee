"""
Outbound rendering and dispatch.
"""

from .dispatcher import OutboundDispatcher
from .render import render_payload, render_text_payload, render_flow_payload, template_to_text

__all__ = [
    "OutboundDispatcher",
    "render_payload",
    "render_text_payload",
    "render_flow_payload",
    "template_to_text",
]
