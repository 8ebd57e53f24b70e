"""Tests for LLM client module."""

from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from studyreview.llm.client import (
    LLMClient,
    LLMConfig,
    LLMConfigurationError,
    LLMConnectionError,
    LLMError,
    LLMResponseError,
    Message,
    apply_proxy,
    extract_json_object,
)


_REQUEST = httpx.Request("POST", "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions")


def _completion(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.model = "gemini-2.5-flash-lite"
    response.usage.prompt_tokens = 10
    response.usage.completion_tokens = 5
    response.usage.total_tokens = 15
    return response


@pytest.fixture
def config() -> LLMConfig:
    return LLMConfig(api_keys=["test-key"], chat_model="chat-model")


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_from_app_config_defaults(self, monkeypatch):
        """Gemini through its OpenAI-compatible endpoint."""
        monkeypatch.setenv("GEMINI_API_KEY", "a,b")
        config = LLMConfig.from_app_config()

        assert config.provider == "gemini"
        assert config.base_url == "https://generativelanguage.googleapis.com/v1beta/openai/"
        assert config.model == "gemini-2.5-flash-lite"
        assert config.chat_model == "gemini-3-flash-preview"
        assert config.api_keys == ["a", "b"]

    def test_from_app_config_without_keys(self):
        assert LLMConfig.from_app_config().api_keys == []

    def test_lmstudio_needs_no_key(self):
        config = LLMConfig.from_app_config("lmstudio")
        assert config.api_keys == ["lm-studio"]

    def test_proxy_rewrites_host(self, monkeypatch):
        monkeypatch.setenv("STUDYREVIEW_PROXY_URL", "https://mirror.example.com/")
        config = LLMConfig.from_app_config()
        assert config.base_url == "https://mirror.example.com/v1beta/openai/"

    def test_apply_proxy_other_hosts_untouched(self):
        url = "https://api.openai.com/v1"
        assert apply_proxy(url, "https://mirror.example.com") == url

    def test_apply_proxy_none(self):
        url = "https://generativelanguage.googleapis.com/v1beta/openai/"
        assert apply_proxy(url, None) == url


class TestLLMClient:
    """Tests for LLMClient."""

    def test_has_credentials(self, config):
        assert LLMClient(config=config).has_credentials
        assert not LLMClient(config=LLMConfig()).has_credentials

    def test_no_key_raises_configuration_error(self):
        client = LLMClient(config=LLMConfig())
        with pytest.raises(LLMConfigurationError):
            client.chat([Message(role="user", content="hi")])

    def test_model_override(self, config):
        assert LLMClient(config=config, model="other").config.model == "other"

    @patch("studyreview.llm.client.OpenAI")
    def test_chat_success(self, mock_openai, config):
        mock_openai.return_value.chat.completions.create.return_value = _completion("你好")

        response = LLMClient(config=config).chat([Message(role="user", content="hi")])

        assert response.content == "你好"
        assert response.total_tokens == 15
        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-lite"
        assert "response_format" not in kwargs

    @patch("studyreview.llm.client.OpenAI")
    def test_chat_model_override_and_json_mode(self, mock_openai, config):
        create = mock_openai.return_value.chat.completions.create
        create.return_value = _completion("{}")

        LLMClient(config=config).chat(
            [Message(role="user", content="hi")], json_mode=True, model="chat-model"
        )

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "chat-model"
        assert kwargs["response_format"] == {"type": "json_object"}

    @patch("studyreview.llm.client.OpenAI")
    def test_key_picked_from_pool(self, mock_openai):
        """Each request uses one of the configured keys."""
        mock_openai.return_value.chat.completions.create.return_value = _completion("x")
        client = LLMClient(config=LLMConfig(api_keys=["k1", "k2"]))

        for _ in range(5):
            client.chat([Message(role="user", content="hi")])

        used = {c.kwargs["api_key"] for c in mock_openai.call_args_list}
        assert used <= {"k1", "k2"}

    @patch("studyreview.llm.client.OpenAI")
    def test_connection_error(self, mock_openai, config):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIConnectionError(
            request=_REQUEST
        )
        with pytest.raises(LLMConnectionError):
            LLMClient(config=config).chat([Message(role="user", content="hi")])

    @patch("studyreview.llm.client.OpenAI")
    def test_other_error(self, mock_openai, config):
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIStatusError(
            "quota exceeded",
            response=httpx.Response(429, request=_REQUEST),
            body=None,
        )
        with pytest.raises(LLMError):
            LLMClient(config=config).chat([Message(role="user", content="hi")])

    @patch("studyreview.llm.client.OpenAI")
    def test_empty_choices(self, mock_openai, config):
        response = _completion("")
        response.choices = []
        mock_openai.return_value.chat.completions.create.return_value = response
        with pytest.raises(LLMResponseError):
            LLMClient(config=config).chat([Message(role="user", content="hi")])


class TestJsonParsing:
    """Tests for JSON extraction and repair."""

    def test_parse_direct(self):
        assert extract_json_object('{"score": 90}') == {"score": 90}

    def test_parse_fenced_block(self):
        assert extract_json_object('```json\n{"score": 1}\n```') == {"score": 1}

    def test_parse_embedded_object_after_think(self):
        text = '<think>{"no": 1}</think>结果：{"score": 2} 完'
        assert extract_json_object(text) == {"score": 2}

    def test_parse_rejects_arrays(self):
        assert extract_json_object("[1, 2]") is None

    @patch("studyreview.llm.client.OpenAI")
    def test_chat_json_repairs_once(self, mock_openai, config):
        create = mock_openai.return_value.chat.completions.create
        create.side_effect = [_completion("not json"), _completion('{"score": 80}')]

        result = LLMClient(config=config).chat_json([Message(role="user", content="grade")])

        assert result == {"score": 80}
        assert create.call_count == 2
        repair = create.call_args.kwargs["messages"][-1]
        assert repair["role"] == "user"
        assert "not json" in repair["content"]

    @patch("studyreview.llm.client.OpenAI")
    def test_chat_json_gives_up(self, mock_openai, config):
        mock_openai.return_value.chat.completions.create.return_value = _completion("nope")
        with pytest.raises(LLMResponseError):
            LLMClient(config=config).chat_json([Message(role="user", content="grade")])

    @patch("studyreview.llm.client.OpenAI")
    def test_simple_chat_sends_system_prompt(self, mock_openai, config):
        create = mock_openai.return_value.chat.completions.create
        create.return_value = _completion("回答")

        reply = LLMClient(config=config).simple_chat("你是纲哥", "问题")

        assert reply == "回答"
        messages = create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "你是纲哥"}
        assert messages[1] == {"role": "user", "content": "问题"}
