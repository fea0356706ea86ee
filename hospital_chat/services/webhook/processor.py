"""
Webhook envelope processing.
"""

from collections import OrderedDict
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ...core.enums import MessageDirection
from ...core.models import InboundMessage, WebhookEnvelope
from ...utils.logging import get_logger
from ..resolver import Signal

logger = get_logger("hospital.webhook")

BUSINESS_ACCOUNT_OBJECT = "whatsapp_business_account"
MAX_TRACKED_SENDERS = 10_000


def signal_from_message(message: InboundMessage) -> Optional[Signal]:
    """Signal for text, button and list replies; None for anything else."""
    if message.type == "text" and message.text is not None:
        return Signal.text(message.text.body)
    interactive = message.interactive
    if message.type == "interactive" and interactive is not None:
        if interactive.button_reply is not None:
            return Signal.button(interactive.button_reply.id, interactive.button_reply.title)
        if interactive.list_reply is not None:
            return Signal.list_row(interactive.list_reply.id, interactive.list_reply.title)
    return None


def describe_message(message: InboundMessage) -> Any:
    if message.text is not None:
        return message.text.body
    if message.interactive is not None:
        return message.interactive.model_dump(exclude_none=True)
    return None


class WebhookProcessor:
    """Routes each message of a webhook envelope to the right handler."""

    def __init__(self, conversation, flow_completion, flows=None, max_tracked_senders: int = MAX_TRACKED_SENDERS):
        self.conversation = conversation
        self.flow_completion = flow_completion
        self.flows = flows
        self.max_tracked_senders = max_tracked_senders
        # Last message id per sender, least recently seen first.
        self._last_msgid: "OrderedDict[str, str]" = OrderedDict()

    def parse(self, body: Dict[str, Any]) -> Optional[WebhookEnvelope]:
        try:
            envelope = WebhookEnvelope.model_validate(body)
        except ValidationError as e:
            logger.warning("Malformed webhook envelope: %s", e)
            return None
        if envelope.object_type != BUSINESS_ACCOUNT_OBJECT:
            logger.info("Ignoring webhook object %r", envelope.object_type)
            return None
        return envelope

    async def process(self, body: Dict[str, Any]) -> int:
        """Handle every message in order. Returns how many were handled."""
        envelope = self.parse(body)
        if envelope is None:
            return 0

        handled = 0
        for entry in envelope.entry:
            for change in entry.changes:
                if change.field != "messages":
                    continue
                for status in change.value.statuses:
                    logger.info("Message %s to %s is %s", status.id, status.recipient_id, status.status)
                for message in change.value.messages:
                    try:
                        if await self.process_message(message):
                            handled += 1
                    except Exception:
                        logger.exception("Failed to process message %s from %s", message.id, message.sender)
        return handled

    async def process_message(self, message: InboundMessage) -> bool:
        if self._is_duplicate_message(message):
            logger.info("Skipping duplicate message %s from %s", message.id, message.sender)
            return False
        if message.id:
            self._remember(message)

        await self._record_inbound(message)

        if message.interactive is not None and message.interactive.nfm_reply is not None:
            await self.flow_completion.handle(message)
            return True

        signal = signal_from_message(message)
        if signal is None:
            logger.info("Unsupported message type %r from %s", message.type, message.sender)
            return False

        await self.conversation.handle(message.sender, signal, message.id)
        return True

    def _is_duplicate_message(self, message: InboundMessage) -> bool:
        return bool(message.id) and self._last_msgid.get(message.sender) == message.id

    def _remember(self, message: InboundMessage) -> None:
        self._last_msgid[message.sender] = message.id
        self._last_msgid.move_to_end(message.sender)
        while len(self._last_msgid) > self.max_tracked_senders:
            self._last_msgid.popitem(last=False)

    async def _record_inbound(self, message: InboundMessage) -> None:
        if self.flows is None:
            return
        try:
            await self.flows.create_message({
                "userPhone": message.sender,
                "messageType": message.type,
                "content": describe_message(message),
                "direction": MessageDirection.INBOUND.value,
                "isResponse": True,
                "whatsappMessageId": message.id,
                "status": "received",
            })
        except Exception:
            logger.exception("Failed to record inbound message %s", message.id)

