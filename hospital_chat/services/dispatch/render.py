"""
Template to wire-payload rendering.
"""

from typing import Any, Dict, Optional

from ...core.enums import TemplateKind
from ...core.exceptions import UnsupportedTemplateKind
from ...core.models import Template
from ...utils.date import now_iso
from ...utils.text import normalize_body_to_header

MAX_REPLY_BUTTONS = 3
DEFAULT_LIST_BUTTON = "View Options"


def _envelope(to: str, message_type: str, **body) -> Dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": message_type,
        **body,
    }


def _decorate(interactive: Dict[str, Any], header: Optional[str], footer: Optional[str]) -> Dict[str, Any]:
    if header:
        interactive["header"] = {"type": "text", "text": header}
    if footer:
        interactive["footer"] = {"text": footer}
    return interactive


def render_text_payload(to: str, body: str) -> Dict[str, Any]:
    return _envelope(to, "text", text={"preview_url": False, "body": body})


def render_payload(template: Template, to: str) -> Dict[str, Any]:
    """Render a template into the payload the messages endpoint accepts.

    The header is treated as the source of truth for the doctor name: a body
    naming a different doctor is rewritten before rendering. Button menus are
    cut to three buttons.
    """
    content = template.content
    body = normalize_body_to_header(content.header, content.body) or ""

    if template.kind == TemplateKind.PLAIN_TEXT:
        return render_text_payload(to, body)

    if template.kind == TemplateKind.BUTTON_MENU:
        interactive = {
            "type": "button",
            "body": {"text": body},
            "action": {
                "buttons": [
                    {"type": "reply", "reply": {"id": button.id, "title": button.label}}
                    for button in content.buttons[:MAX_REPLY_BUTTONS]
                ]
            },
        }
        return _envelope(to, "interactive", interactive=_decorate(interactive, content.header, content.footer))

    if template.kind == TemplateKind.LIST_MENU:
        interactive = {
            "type": "list",
            "body": {"text": body},
            "action": {
                "button": content.button_text or DEFAULT_LIST_BUTTON,
                "sections": [
                    {
                        "title": section.title,
                        "rows": [
                            {"id": row.id, "title": row.label, "description": row.description}
                            for row in section.rows
                        ],
                    }
                    for section in content.sections
                ],
            },
        }
        return _envelope(to, "interactive", interactive=_decorate(interactive, content.header, content.footer))

    raise UnsupportedTemplateKind(template.kind)


def render_flow_payload(to: str, flow_id: str, flow_token: str, body: str) -> Dict[str, Any]:
    """Interactive payload that opens an external form on the user's device."""
    interactive = {
        "type": "flow",
        "header": {"type": "text", "text": "Complete Form"},
        "body": {"text": body},
        "footer": {"text": "Powered by WhatsApp Flows"},
        "action": {
            "name": "flow",
            "parameters": {
                "flow_message_version": "3",
                "flow_token": flow_token,
                "flow_id": flow_id,
                "flow_cta": "Open Form",
                "flow_action": "navigate",
                "flow_action_payload": {
                    "screen": "RECOMMEND",
                    "data": {
                        "user_name": "",
                        "user_phone": to,
                        "form_type": "registration",
                        "flow_id": flow_id,
                        "flow_token": flow_token,
                        "timestamp": now_iso(),
                    },
                },
            },
        },
    }
    return _envelope(to, "interactive", interactive=interactive)


def template_to_text(template: Template) -> str:
    """Flatten a template into readable text for fallbacks and message records."""
    content = template.content
    parts = []
    if content.header:
        parts.append(content.header)
    parts.append(normalize_body_to_header(content.header, content.body) or "")
    options = [button.label for button in content.buttons[:MAX_REPLY_BUTTONS]]
    options.extend(row.label for row in template.rows())
    if options:
        parts.append("\n".join(f"{index}. {label}" for index, label in enumerate(options, start=1)))
    if content.footer:
        parts.append(content.footer)
    return "\n\n".join(part for part in parts if part)
