"""
Outbound dispatch with plain-text and persist-only fallbacks.
"""

from typing import Any, Dict, Optional

from ...core.enums import DeliveryStatus, MessageDirection
from ...core.exceptions import ExternalAPIError, TransportNotConfigured, UnsupportedTemplateKind
from ...core.models import DeliveryOutcome, SendResult, Template
from ...utils.logging import get_logger
from .render import render_flow_payload, render_payload, render_text_payload, template_to_text

logger = get_logger("hospital.dispatch")


class OutboundDispatcher:
    """Sends templates and texts, keeping a message record of each attempt.

    ``transport`` is anything exposing ``async send_message(payload) -> SendResult``.
    """

    def __init__(self, transport, flows=None):
        self.transport = transport
        self.flows = flows

    async def send(self, template: Template, to: str) -> SendResult:
        """Render and send, raising on any transport failure."""
        return await self.transport.send_message(render_payload(template, to))

    async def send_text(self, to: str, body: str) -> SendResult:
        return await self.transport.send_message(render_text_payload(to, body))

    async def start_flow(self, to: str, flow_id: str, flow_token: str, body: str) -> SendResult:
        return await self.transport.send_message(render_flow_payload(to, flow_id, flow_token, body))

    async def deliver(self, template: Template, to: str, **record_fields) -> DeliveryOutcome:
        """Send a template; on failure try plain text, then keep the content as a record."""
        content = template_to_text(template)
        try:
            result = await self.send(template, to)
        except (ExternalAPIError, UnsupportedTemplateKind) as e:
            logger.warning("Template %s to %s failed: %s", template.id, to, e)
            return await self._fall_back(to, content, e, template_id=template.id, **record_fields)

        await self._record(to, content, DeliveryStatus.SENT, result, messageType="interactive",
                           templateId=template.id, **record_fields)
        return DeliveryOutcome(status=DeliveryStatus.SENT, result=result)

    async def deliver_text(self, to: Optional[str], body: str, **record_fields) -> DeliveryOutcome:
        """Send plain text, or only record it when there is no recipient."""
        if not to:
            recorded = await self._record(to, body, DeliveryStatus.RECORDED, None, **record_fields)
            status = DeliveryStatus.RECORDED if recorded else DeliveryStatus.FAILED
            return DeliveryOutcome(status=status)
        try:
            result = await self.send_text(to, body)
        except ExternalAPIError as e:
            logger.warning("Text to %s failed: %s", to, e)
            recorded = await self._record(to, body, DeliveryStatus.FAILED, None, error=str(e), **record_fields)
            status = DeliveryStatus.RECORDED if recorded else DeliveryStatus.FAILED
            return DeliveryOutcome(status=status, error=str(e))

        await self._record(to, body, DeliveryStatus.SENT, result, **record_fields)
        return DeliveryOutcome(status=DeliveryStatus.SENT, result=result)

    async def _fall_back(self, to: str, content: str, cause: Exception, template_id: str, **record_fields) -> DeliveryOutcome:
        error = str(cause)
        if not isinstance(cause, TransportNotConfigured):
            try:
                result = await self.send_text(to, content)
            except ExternalAPIError as e:
                logger.warning("Plain-text fallback to %s failed: %s", to, e)
            else:
                await self._record(to, content, DeliveryStatus.FALLBACK, result,
                                   templateId=template_id, **record_fields)
                return DeliveryOutcome(status=DeliveryStatus.FALLBACK, result=result, error=error)

        recorded = await self._record(to, content, DeliveryStatus.FAILED, None,
                                      templateId=template_id, error=error, **record_fields)
        status = DeliveryStatus.RECORDED if recorded else DeliveryStatus.FAILED
        return DeliveryOutcome(status=status, error=error)

    async def _record(
        self,
        to: Optional[str],
        content: str,
        status: DeliveryStatus,
        result: Optional[SendResult],
        **fields,
    ) -> bool:
        if self.flows is None:
            return False
        record: Dict[str, Any] = {
            "userPhone": to,
            "messageType": "text",
            "content": content,
            "direction": MessageDirection.OUTBOUND.value,
            "status": status.value,
        }
        if result is not None:
            record["whatsappMessageId"] = result.message_id
        record.update({key: value for key, value in fields.items() if value is not None})
        try:
            await self.flows.create_message(record)
            return True
        except Exception:
            logger.exception("Failed to persist outbound message for %s", to)
            return False
