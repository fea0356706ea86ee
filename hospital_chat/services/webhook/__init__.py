"""
Webhook processing.
"""

from .processor import WebhookProcessor, signal_from_message
from .flow_completion import FlowCompletionHandler, parse_form_data, find_flow_token

__all__ = [
    "WebhookProcessor",
    "signal_from_message",
    "FlowCompletionHandler",
    "parse_form_data",
    "find_flow_token",
]
