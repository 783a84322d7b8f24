import pytest

from assist_core.providers import create_provider, create_translator
from assist_core.providers.ollama_client import OllamaClient
from assist_core.providers.registry import OLLAMA_CONFIG, get_provider_config
from assist_core.providers.translate_client import GoogleTranslateClient


def test_create_provider_default(monkeypatch):
    class DummySettings:
        ollama_base_url = "http://127.0.0.1:11434"
        http_timeout = 1.0

    monkeypatch.setattr("assist_core.providers.settings", DummySettings())
    assert isinstance(create_provider(), OllamaClient)
    assert isinstance(create_translator(), GoogleTranslateClient)


def test_create_provider_unknown():
    with pytest.raises(KeyError):
        create_provider("kimi")


def test_registry_urls():
    assert get_provider_config("OLLAMA") is OLLAMA_CONFIG
    assert OLLAMA_CONFIG.url("chat") == "http://127.0.0.1:11434/api/chat"
    assert OLLAMA_CONFIG.url("tags", "http://remote:11434/") == "http://remote:11434/api/tags"
    with pytest.raises(KeyError):
        get_provider_config("nope")
