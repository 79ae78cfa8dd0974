import pytest

from askai_core.api.service import AskAIService, create_service
from askai_core.domain.exceptions import ValidationError
from askai_core.stream.config import RetryPolicy, SessionConfig


class SettingsStub:
    askai_base_url = "http://askai.test/api/v1/"
    askai_language = "ar"
    http_connect_timeout = 5.0
    stream_retry_enabled = False
    stream_retry_delay = 1.0
    stream_retry_max_attempts = None


def test_subscribe_url_encodes_search_id():
    service = AskAIService("http://askai.test/api/v1/")
    assert service.subscribe_url("abc 1") == "http://askai.test/api/v1/askai/subscribe?searchId=abc+1"


def test_subscribe_connects_session(monkeypatch):
    service = AskAIService("http://askai.test/api/v1", SessionConfig(retry=RetryPolicy(enabled=False)))
    captured = {}

    def fake_connect(endpoint, credentials=None, **handlers):
        captured["endpoint"] = endpoint
        captured["credentials"] = credentials
        captured["handlers"] = handlers

    monkeypatch.setattr(service.session, "connect", fake_connect)
    service.subscribe_to_events("s-1", "token-abcdefghij", on_event=print, on_error=print)

    assert captured["endpoint"] == "http://askai.test/api/v1/askai/subscribe?searchId=s-1"
    assert captured["credentials"] == "token-abcdefghij"
    assert captured["handlers"]["on_event"] is print


def test_subscribe_requires_search_id():
    service = AskAIService("http://askai.test/api/v1")
    with pytest.raises(ValidationError):
        service.subscribe_to_events("", None, on_event=print, on_error=print)


def test_empty_base_url_is_rejected():
    with pytest.raises(ValidationError):
        AskAIService("")


def test_create_service_builds_config_from_settings():
    service = create_service(SettingsStub(), domain="hotel")
    config = service.session.config
    assert service.base_url == "http://askai.test/api/v1"
    assert config.domain == "hotel"
    assert config.connect_timeout == 5.0
    assert config.retry == RetryPolicy(enabled=False, delay=1.0, max_attempts=None)
    assert config.headers == {"Accept-Language": "ar"}


def test_create_service_returns_new_instances():
    assert create_service(SettingsStub()) is not create_service(SettingsStub())
