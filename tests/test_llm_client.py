"""
Tests for the LLM client.

Tests cover:
- Provider resolution (Zhipu first, then HEALTH_LLM_*)
- call_llm_chat / call_llm_with_tools against a mocked AsyncOpenAI
- Content extraction
- Prompt logging to markdown files
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from homemate.config import ZHIPU_DEFAULT_BASE_URL, ZHIPU_DEFAULT_MODEL, get_settings
from homemate.llm import prompt_logger
from homemate.llm.client import (
    call_llm_chat,
    call_llm_with_tools,
    extract_text,
    get_llm_config,
    invoke_generation_model,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _make_chat_completion(content=None, tool_calls=None) -> MagicMock:
    """Build a mock ChatCompletion response."""
    choice = MagicMock()
    choice.message.content = content
    choice.message.tool_calls = tool_calls
    resp = MagicMock()
    resp.choices = [choice]
    return resp


@pytest.fixture
def generic_provider(monkeypatch):
    monkeypatch.delenv("ZHIPUAI_API_KEY", raising=False)
    monkeypatch.setenv("HEALTH_LLM_API_KEY", "generic-key")
    monkeypatch.setenv("HEALTH_LLM_MODEL", "gpt-4.1-mini")
    monkeypatch.setenv("HEALTH_LLM_API_BASE", "https://llm.example.com/v1/")
    get_settings.cache_clear()


class TestGetLlmConfig:
    def test_zhipu_defaults(self):
        config = get_llm_config()

        assert config.provider == "zhipu"
        assert config.api_key == "zhipu-key-not-real"
        assert config.model == ZHIPU_DEFAULT_MODEL
        assert config.base_url == ZHIPU_DEFAULT_BASE_URL

    def test_zhipu_overrides(self, monkeypatch):
        monkeypatch.setenv("ZHIPUAI_MODEL", "glm-4-flash")
        monkeypatch.setenv("ZHIPUAI_API_BASE", "https://proxy.example.com/v4/")
        get_settings.cache_clear()

        config = get_llm_config()
        assert config.model == "glm-4-flash"
        assert config.base_url == "https://proxy.example.com/v4"

    def test_zhipu_wins_over_generic(self, monkeypatch):
        monkeypatch.setenv("HEALTH_LLM_API_KEY", "generic-key")
        monkeypatch.setenv("HEALTH_LLM_MODEL", "gpt-4.1-mini")
        monkeypatch.setenv("HEALTH_LLM_API_BASE", "https://llm.example.com/v1")
        get_settings.cache_clear()

        assert get_llm_config().provider == "zhipu"

    def test_generic_provider(self, generic_provider):
        config = get_llm_config()

        assert config.provider == "openai_compatible"
        assert config.model == "gpt-4.1-mini"
        assert config.base_url == "https://llm.example.com/v1"

    def test_generic_requires_all_three(self, monkeypatch):
        monkeypatch.delenv("ZHIPUAI_API_KEY", raising=False)
        monkeypatch.setenv("HEALTH_LLM_API_KEY", "generic-key")
        monkeypatch.setenv("HEALTH_LLM_MODEL", "gpt-4.1-mini")
        get_settings.cache_clear()

        assert get_llm_config() is None

    def test_blank_zhipu_overrides_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("ZHIPUAI_API_BASE", "  ")
        monkeypatch.setenv("ZHIPUAI_MODEL", "")
        get_settings.cache_clear()

        config = get_llm_config()
        assert config.base_url == ZHIPU_DEFAULT_BASE_URL
        assert config.model == ZHIPU_DEFAULT_MODEL

    def test_blank_zhipu_key_is_ignored(self, monkeypatch):
        monkeypatch.setenv("ZHIPUAI_API_KEY", "   ")
        get_settings.cache_clear()

        assert get_llm_config() is None


class TestExtractText:
    def test_string(self):
        assert extract_text("hello") == "hello"

    def test_parts(self):
        parts = ["a", {"type": "text", "text": "b"}, SimpleNamespace(text="c"), {"type": "image"}]
        assert extract_text(parts) == "abc"

    def test_empty(self):
        assert extract_text(None) is None
        assert extract_text([]) is None
        assert extract_text(12) is None


class TestCallLlmChat:
    def test_returns_content(self):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.return_value = _make_chat_completion('{"meals": []}')

        with patch("homemate.llm.client.get_raw_async_client", return_value=mock_client), \
             patch("homemate.llm.client.log_prompt"):
            result = _run(invoke_generation_model([{"role": "user", "content": "plan"}]))

        assert result == '{"meals": []}'
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == ZHIPU_DEFAULT_MODEL
        assert call_kwargs["temperature"] == 0.0

    def test_logs_on_error(self):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = Exception("API error")

        with patch("homemate.llm.client.get_raw_async_client", return_value=mock_client), \
             patch("homemate.llm.client.log_prompt") as mock_log:
            with pytest.raises(Exception, match="API error"):
                _run(call_llm_chat(messages=[{"role": "user", "content": "test"}]))

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs["error"] == "API error"

    def test_missing_configuration(self, monkeypatch):
        monkeypatch.delenv("ZHIPUAI_API_KEY", raising=False)
        get_settings.cache_clear()

        with pytest.raises(RuntimeError, match="Missing LLM configuration"):
            _run(call_llm_chat(messages=[{"role": "user", "content": "test"}]))


class TestCallLlmWithTools:
    def test_passes_tools_and_returns_message(self, generic_provider):
        tool_call = SimpleNamespace(id="call_1", function=SimpleNamespace(name="update_meal_day", arguments="{}"))
        mock_client = AsyncMock()
        mock_client.chat.completions.create.return_value = _make_chat_completion(None, [tool_call])
        tools = [{"type": "function", "function": {"name": "update_meal_day", "parameters": {}}}]

        with patch("homemate.llm.client.get_raw_async_client", return_value=mock_client), \
             patch("homemate.llm.client.log_prompt") as mock_log:
            message = _run(call_llm_with_tools(messages=[{"role": "user", "content": "hi"}], tools=tools))

        assert message.tool_calls == [tool_call]
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["tools"] == tools
        assert call_kwargs["model"] == "gpt-4.1-mini"
        assert call_kwargs["temperature"] == 0.3
        assert mock_log.call_args.kwargs["response"]["tool_calls"] == [{"name": "update_meal_day", "arguments": "{}"}]


class TestPromptLogger:
    def test_disabled_by_default(self, monkeypatch):
        monkeypatch.setattr(prompt_logger, "LOG_PROMPTS", False)
        assert prompt_logger.log_prompt(node="x", model="m", messages=[]) is None

    def test_writes_markdown(self, monkeypatch, tmp_path):
        monkeypatch.setattr(prompt_logger, "LOG_DIR", tmp_path / "prompt_logs")
        monkeypatch.setattr(prompt_logger, "LOG_PROMPTS", False)
        prompt_logger.reset_session()
        prompt_logger.enable_prompt_logging(True)

        path = prompt_logger.log_prompt(
            node="weekly_generate",
            model="glm-4.7",
            messages=[{"role": "user", "content": "Plan my week"}],
            temperature=0.0,
            response='{"meals": []}',
        )
        prompt_logger.reset_session()

        assert path.name == "01_weekly_generate.md"
        text = path.read_text(encoding="utf-8")
        assert "# LLM Call: weekly_generate" in text
        assert "Plan my week" in text
        assert '{\\"meals\\": []}' in text

    def test_records_errors(self, monkeypatch, tmp_path):
        monkeypatch.setattr(prompt_logger, "LOG_DIR", tmp_path)
        monkeypatch.setattr(prompt_logger, "LOG_PROMPTS", True)
        prompt_logger.reset_session()

        path = prompt_logger.log_prompt(node="agent_chat", model="m", messages=[], error="timeout")
        prompt_logger.reset_session()

        assert "**ERROR:** timeout" in path.read_text(encoding="utf-8")
