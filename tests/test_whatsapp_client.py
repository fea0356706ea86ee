import json

import httpx
import pytest

from hospital_chat.config import Settings, WhatsAppConfig
from hospital_chat.core.exceptions import TransportNotConfigured, WhatsAppAPIError
from hospital_chat.services.dispatch import render_text_payload
from hospital_chat.services.external import WhatsAppCloudClient

CONFIG = WhatsAppConfig(access_token="token-123", phone_number_id="555", api_version="v22.0")
HELLO = render_text_payload("919876543210", "Hello")


def client_with(handler) -> WhatsAppCloudClient:
    return WhatsAppCloudClient(CONFIG, transport=httpx.MockTransport(handler))


def test_config_urls():
    assert CONFIG.get_messages_url() == "https://graph.facebook.com/v22.0/555/messages"
    assert WhatsAppConfig().get_messages_url() is None


def test_config_from_settings():
    settings = Settings(_env_file=None, whatsapp_access_token="t", whatsapp_phone_number_id="9")
    config = WhatsAppConfig.from_settings(settings)
    assert config.is_configured()
    assert config.auth_headers()["Authorization"] == "Bearer t"


@pytest.mark.asyncio
async def test_send_message_posts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"messages": [{"id": "wamid.HBg"}]})

    result = await client_with(handler).send_message(HELLO)

    assert result.message_id == "wamid.HBg"
    assert result.timestamp
    assert seen["url"] == "https://graph.facebook.com/v22.0/555/messages"
    assert seen["auth"] == "Bearer token-123"
    assert seen["body"]["to"] == "919876543210"
    assert seen["body"]["text"]["body"] == "Hello"


@pytest.mark.asyncio
async def test_provider_error_message_is_surfaced():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Invalid parameter", "code": 100}})

    with pytest.raises(WhatsAppAPIError) as exc_info:
        await client_with(handler).send_message(HELLO)

    assert str(exc_info.value) == "Invalid parameter"
    assert exc_info.value.status_code == 400
    assert exc_info.value.code == 100


@pytest.mark.asyncio
async def test_http_error_without_body():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(WhatsAppAPIError, match="HTTP error 502"):
        await client_with(handler).send_message(HELLO)


@pytest.mark.asyncio
async def test_timeout_becomes_api_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(WhatsAppAPIError, match="timed out"):
        await client_with(handler).send_message(HELLO)


@pytest.mark.asyncio
async def test_connection_failure_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(WhatsAppAPIError, match="Request failed"):
        await client_with(handler).send_message(HELLO)


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_to_send():
    client = WhatsAppCloudClient(WhatsAppConfig())
    assert not client.is_configured()
    with pytest.raises(TransportNotConfigured):
        await client.send_message({"to": "1"})
