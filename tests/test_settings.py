from insider_monitor.settings import Settings
from insider_monitor.storage.factory import build_storage
from insider_monitor.storage.memory import LiveStorage
from insider_monitor.storage.mock import MockStorage


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_storage_mode_priority():
    assert _settings().storage_mode == "live"
    assert _settings(MOCK_DATA=True).storage_mode == "mock"
    assert _settings(MOCK_DATA=True, USE_POSTGRES=True).storage_mode == "postgres"


def test_build_storage_follows_mode():
    assert isinstance(build_storage(_settings(MOCK_DATA=True)), MockStorage)
    assert isinstance(build_storage(_settings()), LiveStorage)


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("FMP_API_KEY", "  ")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.test, https://b.test,")
    monkeypatch.setenv("DATA_REFRESH_INTERVAL_SECONDS", "-5")
    config = _settings()
    assert config.FMP_API_KEY is None
    assert config.CORS_ALLOW_ORIGINS == ["https://a.test", "https://b.test"]
    assert config.DATA_REFRESH_INTERVAL_SECONDS == 0
