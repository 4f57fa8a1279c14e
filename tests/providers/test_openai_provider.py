"""Tests for OpenAI provider integration."""

import json
from unittest.mock import MagicMock, Mock, patch

import httpx
import openai
import pytest

from quizbooth.error_classifier import ErrorType, classify_exception
from quizbooth.exceptions import ProviderHTTPError
from quizbooth.providers.openai_provider import OpenAIProvider


def _completion(content):
    mock_message = Mock()
    mock_message.content = content
    mock_choice = Mock()
    mock_choice.message = mock_message
    mock_response = Mock()
    mock_response.choices = [mock_choice]
    return mock_response


class TestOpenAIProvider:
    """Test suite for OpenAIProvider."""

    def test_identity(self, mock_openai_api_key):
        provider = OpenAIProvider(api_key=mock_openai_api_key)

        assert provider.name == "OpenAI"
        assert provider.priority == 2
        assert provider.model == "gpt-4o-mini"
        assert repr(provider) == "OpenAIProvider(model='gpt-4o-mini', priority=2)"

    @patch("quizbooth.providers.base.OpenAI")
    def test_client_uses_openai_base_url(self, mock_openai_class, mock_openai_api_key):
        provider = OpenAIProvider(api_key=mock_openai_api_key)

        _ = provider.client
        _ = provider.client

        mock_openai_class.assert_called_once_with(
            api_key=mock_openai_api_key,
            base_url="https://api.openai.com/v1",
            timeout=30.0,
            max_retries=0,
        )

    def test_structured_request_sends_sampling_parameters(
        self, mock_openai_api_key, sample_prompt, make_questions
    ):
        client = MagicMock()
        client.chat.completions.create.return_value = _completion(
            json.dumps({"questions": make_questions(2)})
        )
        provider = OpenAIProvider(api_key=mock_openai_api_key, client=client)

        provider.generate_questions(sample_prompt, 2)

        client.chat.completions.create.assert_called_once_with(
            model="gpt-4o-mini",
            messages=[{"role": "user", "content": sample_prompt}],
            response_format={"type": "json_object"},
            temperature=0.7,
            max_tokens=2048,
            top_p=1.0,
            frequency_penalty=0.0,
            presence_penalty=0.0,
        )

    def test_count_mismatch_is_returned_as_is(
        self, mock_openai_api_key, sample_prompt, make_questions
    ):
        items = make_questions(3)
        client = MagicMock()
        client.chat.completions.create.return_value = _completion(json.dumps(items))
        provider = OpenAIProvider(api_key=mock_openai_api_key, client=client)

        assert len(provider.generate_questions(sample_prompt, 5)) == 3

    def test_invalid_key_error_is_classified_without_fallback(
        self, mock_openai_api_key, sample_prompt
    ):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(
            401,
            request=request,
            text='{"error": {"message": "Incorrect API key provided: sk-test"}}',
        )
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.AuthenticationError(
            "Error code: 401", response=response, body=None
        )
        provider = OpenAIProvider(api_key=mock_openai_api_key, client=client)

        with pytest.raises(ProviderHTTPError) as exc_info:
            provider.generate_questions(sample_prompt, 1)

        classification = classify_exception(exc_info.value, "OpenAI")
        assert classification.error_type == ErrorType.INVALID_API_KEY
        assert classification.fallback_possible is False
        assert classification.should_retry is False
