from pathlib import Path

import pytest

from toolloop.config import get_settings
from toolloop.errors import ConfigurationError


class TestSettings:
    """Test settings configuration."""

    def test_defaults(self) -> None:
        settings = get_settings()
        assert settings.mcp_url == "http://localhost:9011/mcp"
        assert settings.mcp_transport == "streamable-http"
        assert settings.chat_url == "http://localhost:12434/engines/llama.cpp/v1/"
        assert settings.model == "hf.co/menlo/jan-nano-gguf:q4_k_m"
        assert settings.api_key == ""
        assert settings.max_turns == 25
        assert settings.lenient_arguments is True
        assert settings.client_name == "micro agent"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLLOOP_MODEL", "openai/gpt-4o-mini")
        monkeypatch.setenv("TOOLLOOP_MAX_TURNS", "5")
        settings = get_settings()
        assert settings.model == "openai/gpt-4o-mini"
        assert settings.max_turns == 5

    def test_dotenv_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("TOOLLOOP_MCP_URL=http://tools.local/mcp\n", encoding="utf-8")
        assert get_settings().mcp_url == "http://tools.local/mcp"

    def test_none_overrides_are_ignored(self) -> None:
        settings = get_settings(model=None, max_turns=3)
        assert settings.model == "hf.co/menlo/jan-nano-gguf:q4_k_m"
        assert settings.max_turns == 3

    def test_invalid_turn_cap(self) -> None:
        with pytest.raises(ConfigurationError):
            get_settings(max_turns=0)

    def test_invalid_transport(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLLOOP_MCP_TRANSPORT", "websocket")
        with pytest.raises(ConfigurationError):
            get_settings()

    def test_temperature_is_not_configurable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLLOOP_TEMPERATURE", "0.9")
        settings = get_settings()
        assert not hasattr(settings, "temperature")
