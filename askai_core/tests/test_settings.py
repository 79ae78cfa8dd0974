import pytest
from pydantic import ValidationError as PydanticValidationError

from askai_core.config.settings import Settings
from askai_core.stream.config import RetryPolicy, SessionConfig


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ASKAI_CONFIG_FILE", raising=False)
    monkeypatch.setenv("ASKAI_BASE_URL", "http://env.test/api/v1")
    monkeypatch.setenv("STREAM_RETRY_DELAY", "0.5")
    s = Settings()
    assert s.askai_base_url == "http://env.test/api/v1"
    assert s.stream_retry_delay == 0.5


def test_settings_from_yaml_file(monkeypatch, tmp_path):
    cfg = tmp_path / "askai.yaml"
    cfg.write_text("stream_retry_max_attempts: 4\naskai_language: ar\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ASKAI_CONFIG_FILE", str(cfg))
    monkeypatch.delenv("STREAM_RETRY_MAX_ATTEMPTS", raising=False)
    monkeypatch.delenv("ASKAI_LANGUAGE", raising=False)
    s = Settings()
    assert s.stream_retry_max_attempts == 4
    assert s.askai_language == "ar"


def test_short_auth_token_is_rejected():
    with pytest.raises(PydanticValidationError):
        Settings(askai_auth_token="short")


def test_session_config_from_settings():
    s = Settings(stream_retry_enabled=True, stream_retry_delay=0, stream_retry_max_attempts=2)
    config = SessionConfig.from_settings(s, domain="flight")
    assert config.retry == RetryPolicy(enabled=True, delay=0, max_attempts=2)
    assert config.domain == "flight"


def test_retry_policy_attempts():
    policy = RetryPolicy(delay=-1, max_attempts=2)
    assert policy.delay == 0.0
    assert policy.should_retry(1)
    assert policy.should_retry(2)
    assert not policy.should_retry(3)
    assert not RetryPolicy(enabled=False).should_retry(1)
    assert RetryPolicy().should_retry(1000)
