"""
WhatsApp Cloud webhook handler.
"""

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Request, Response, status
from fastapi.responses import PlainTextResponse

from ...config import Settings
from ...services.webhook import WebhookProcessor
from ...utils.logging import get_logger

logger = get_logger("hospital.webhook.http")


class WhatsAppWebhook:
    """Handler for WhatsApp webhook verification and events."""

    def __init__(self, settings: Settings, processor: WebhookProcessor):
        self.settings = settings
        self.processor = processor
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup WhatsApp webhook routes."""

        @self.router.get("")
        async def verify_webhook(request: Request):
            """Echo the challenge when the verify token matches."""
            params = request.query_params
            mode = params.get("hub.mode")
            token = params.get("hub.verify_token")
            challenge = params.get("hub.challenge", "")
            if mode == "subscribe" and self.settings.whatsapp_verify_token and token == self.settings.whatsapp_verify_token:
                logger.info("Webhook verified")
                return PlainTextResponse(challenge)
            logger.warning("Webhook verification failed (mode=%s)", mode)
            return Response(status_code=status.HTTP_403_FORBIDDEN)

        @self.router.post("")
        async def receive_whatsapp_event(request: Request, background_tasks: BackgroundTasks):
            """Acknowledge immediately and process the envelope in the background."""
            try:
                body = await request.json()
            except ValueError:
                return Response(status_code=status.HTTP_400_BAD_REQUEST)
            if not isinstance(body, dict):
                return Response(status_code=status.HTTP_400_BAD_REQUEST)

            background_tasks.add_task(self._process, body)
            return {"status": "ok"}

    async def _process(self, body: Dict[str, Any]) -> None:
        try:
            handled = await self.processor.process(body)
            logger.debug("Webhook envelope handled %d message(s)", handled)
        except Exception:
            logger.exception("Webhook processing failed")
