"""
WhatsApp Cloud API client.
"""

from typing import Any, Dict, Optional

import httpx

from ...config import WhatsAppConfig
from ...core.exceptions import TransportNotConfigured, WhatsAppAPIError
from ...core.models import SendResult
from ...utils.date import now_iso
from ...utils.logging import get_logger

logger = get_logger("hospital.whatsapp")


class WhatsAppCloudClient:
    """Sends prepared message payloads to the Graph API messages endpoint."""

    def __init__(
        self,
        config: WhatsAppConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.timeout = config.timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return self.config.is_configured()

    async def _make_request(
        self,
        method: str,
        url: str,
        json: Optional[Dict] = None,
    ) -> Dict[str, Any]:
        """Make HTTP request with error handling."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    json=json,
                    headers=self.config.auth_headers(),
                )
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException:
            raise WhatsAppAPIError("Request timed out")
        except httpx.HTTPStatusError as e:
            error = _error_body(e.response)
            raise WhatsAppAPIError(
                error.get("message") or f"HTTP error {e.response.status_code}",
                status_code=e.response.status_code,
                code=error.get("code"),
            )
        except httpx.HTTPError as e:
            raise WhatsAppAPIError(f"Request failed: {str(e)}")
        except ValueError as e:
            raise WhatsAppAPIError(f"Malformed response: {str(e)}")

    async def send_message(self, payload: Dict[str, Any]) -> SendResult:
        """POST a complete message payload and return the provider message id."""
        url = self.config.get_messages_url()
        if url is None:
            raise TransportNotConfigured("WhatsApp credentials are not configured")

        result = await self._make_request("POST", url, json=payload)
        messages = result.get("messages") or [{}]
        message_id = messages[0].get("id")
        logger.info("WhatsApp %s message sent to %s: %s", payload.get("type"), payload.get("to"), message_id)
        return SendResult(message_id=message_id, timestamp=now_iso())


def _error_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}
