"""Tests for DeepSeek provider integration."""

import json
from unittest.mock import MagicMock, Mock, patch

import httpx
import openai
import pytest

from quizbooth.exceptions import (
    InvalidResponseError,
    LLMProviderError,
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderTimeoutError,
    UnexpectedResponseShapeError,
)
from quizbooth.providers.deepseek_provider import DeepSeekProvider

DEEPSEEK_URL = "https://api.deepseek.com/v1/chat/completions"


def _completion(content):
    mock_message = Mock()
    mock_message.content = content

    mock_choice = Mock()
    mock_choice.message = mock_message

    mock_response = Mock()
    mock_response.choices = [mock_choice]
    return mock_response


def _client_returning(content) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.return_value = _completion(content)
    return client


def _status_error(status: int, text: str) -> openai.APIStatusError:
    request = httpx.Request("POST", DEEPSEEK_URL)
    response = httpx.Response(status, request=request, text=text)
    return openai.APIStatusError(f"Error code: {status}", response=response, body=None)


class TestDeepSeekProvider:
    """Test suite for DeepSeekProvider."""

    def test_identity(self, mock_deepseek_api_key):
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key)

        assert provider.name == "DeepSeek"
        assert provider.priority == 1
        assert provider.model == "deepseek-chat"

    def test_custom_model(self, mock_deepseek_api_key):
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, model="deepseek-reasoner")

        assert provider.model == "deepseek-reasoner"

    @patch("quizbooth.providers.base.OpenAI")
    def test_client_uses_deepseek_base_url(self, mock_openai_class, mock_deepseek_api_key):
        """Test that the SDK client targets DeepSeek with SDK retries disabled."""
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, timeout=12.0)

        assert provider.client is mock_openai_class.return_value
        mock_openai_class.assert_called_once_with(
            api_key=mock_deepseek_api_key,
            base_url="https://api.deepseek.com/v1",
            timeout=12.0,
            max_retries=0,
        )

    def test_availability_follows_environment(self, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        provider = DeepSeekProvider()
        assert provider.is_available() is False

        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-env")
        assert provider.is_available() is True

    def test_client_without_key_raises(self, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        provider = DeepSeekProvider()

        with pytest.raises(LLMProviderError, match="API key not configured"):
            _ = provider.client

    def test_generate_questions_from_questions_object(
        self, mock_deepseek_api_key, sample_prompt, make_questions
    ):
        items = make_questions(2)
        client = _client_returning(json.dumps({"questions": items}))
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        result = provider.generate_questions(sample_prompt, 2)

        assert result == items
        client.chat.completions.create.assert_called_once_with(
            model="deepseek-chat",
            messages=[{"role": "user", "content": sample_prompt}],
            response_format={"type": "json_object"},
        )

    def test_generate_questions_from_bare_array(
        self, mock_deepseek_api_key, sample_prompt, make_questions
    ):
        items = make_questions(3)
        client = _client_returning(json.dumps(items))
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        assert provider.generate_questions(sample_prompt, 3) == items

    def test_single_question_object_is_wrapped(
        self, mock_deepseek_api_key, sample_prompt, make_question
    ):
        item = make_question()
        client = _client_returning(json.dumps(item))
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        assert provider.generate_questions(sample_prompt, 1) == [item]
        assert provider.generate_single_question(sample_prompt) == item

    def test_unexpected_shape_raises(self, mock_deepseek_api_key, sample_prompt):
        client = _client_returning(json.dumps({"foo": "bar"}))
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(UnexpectedResponseShapeError):
            provider.generate_questions(sample_prompt, 1)

    def test_invalid_json_raises(self, mock_deepseek_api_key, sample_prompt):
        client = _client_returning("not json at all")
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(InvalidResponseError, match="Invalid JSON"):
            provider.generate_questions(sample_prompt, 1)

    def test_empty_content_raises(self, mock_deepseek_api_key, sample_prompt):
        client = _client_returning(None)
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(InvalidResponseError, match="No content"):
            provider.generate_questions(sample_prompt, 1)

    def test_plain_text_is_trimmed(self, mock_deepseek_api_key):
        client = _client_returning('  "Bean There Trivia"  \n')
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        assert provider.generate_plain_text("title please") == '"Bean There Trivia"'
        client.chat.completions.create.assert_called_once_with(
            model="deepseek-chat",
            messages=[{"role": "user", "content": "title please"}],
            max_tokens=100,
            temperature=0.7,
        )


class TestDeepSeekProviderErrors:
    """Transport errors are mapped onto the provider error hierarchy."""

    def test_status_error_keeps_status_and_body(self, mock_deepseek_api_key, sample_prompt):
        client = MagicMock()
        client.chat.completions.create.side_effect = _status_error(
            402, '{"error": {"message": "Insufficient Balance"}}'
        )
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(ProviderHTTPError) as exc_info:
            provider.generate_questions(sample_prompt, 1)

        assert exc_info.value.status == 402
        assert "Insufficient Balance" in exc_info.value.body
        assert exc_info.value.provider == "DeepSeek"

    def test_timeout_maps_to_timeout_error(self, mock_deepseek_api_key, sample_prompt):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", DEEPSEEK_URL)
        )
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(ProviderTimeoutError):
            provider.generate_questions(sample_prompt, 1)

    def test_connection_error_maps_to_connection_error(
        self, mock_deepseek_api_key, sample_prompt
    ):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", DEEPSEEK_URL)
        )
        provider = DeepSeekProvider(api_key=mock_deepseek_api_key, client=client)

        with pytest.raises(ProviderConnectionError):
            provider.generate_questions(sample_prompt, 1)
