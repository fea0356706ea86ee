"""
Pytest configuration and fixtures.
"""

import pytest
from unittest.mock import Mock, AsyncMock

from hospital_chat.config import Settings
from hospital_chat.core.models import SendResult
from hospital_chat.services import ServiceContainer
from hospital_chat.services.catalog import TemplateCatalog
from hospital_chat.services.store import InMemoryDocumentStore
from hospital_chat.utils.event_log import set_log_path


@pytest.fixture(autouse=True)
def event_log(tmp_path):
    """Keep conversation events out of the working directory."""
    path = tmp_path / "events.jsonl"
    set_log_path(path)
    return path


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def catalog():
    """Fresh seeded catalog; dynamic triggers never leak between tests."""
    return TemplateCatalog()


@pytest.fixture
def transport():
    """Messaging transport that accepts every payload."""
    mock = Mock()
    mock.is_configured = Mock(return_value=True)
    mock.send_message = AsyncMock(
        return_value=SendResult(message_id="wamid.test", timestamp="2025-01-15T09:00:00+00:00")
    )
    return mock


@pytest.fixture
def settings(event_log):
    return Settings(
        _env_file=None,
        whatsapp_verify_token="verify-me",
        event_log_path=str(event_log),
    )


@pytest.fixture
def container(settings, store, transport, catalog):
    return ServiceContainer(settings=settings, store=store, transport=transport, catalog=catalog)


@pytest.fixture
def sent_payloads(transport):
    """Payloads handed to the transport so far, in order."""
    def _payloads():
        return [call.args[0] for call in transport.send_message.await_args_list]
    return _payloads
