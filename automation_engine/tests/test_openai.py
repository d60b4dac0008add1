import time

import httpx
import pytest

from automation_engine.core.context import ExecutionContext
from automation_engine.models import CredentialBundle
from automation_engine.runners.openai import OpenAIAdapter

API_KEY = CredentialBundle.from_api_key("sk-test")


def _chat_response(content="Hello there"):
    return {
        "id": "chatcmpl-1",
        "model": "gpt-4o-mini-2024-07-18",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12},
    }


@pytest.fixture
def context():
    return ExecutionContext({})


class TestChatCompletion:
    def test_prompt_with_system_prompt(self, mock_http, context):
        client, transport = mock_http(json_body=_chat_response())
        adapter = OpenAIAdapter(client)
        config = {"prompt": "Say hi", "systemPrompt": "Be brief", "temperature": "0.2", "maxTokens": "50"}

        result = adapter.execute("chat.completion", config, API_KEY, context)

        assert result.success
        assert result.output == {
            "content": "Hello there",
            "role": "assistant",
            "finishReason": "stop",
            "model": "gpt-4o-mini-2024-07-18",
            "usage": {"promptTokens": 10, "completionTokens": 2, "totalTokens": 12},
        }
        assert str(transport.last.url) == "https://api.openai.com/v1/chat/completions"
        assert transport.last.headers["Authorization"] == "Bearer sk-test"
        body = transport.last_json()
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 50
        assert body["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Say hi"},
        ]

    def test_explicit_messages_and_json_format(self, mock_http, context):
        client, transport = mock_http(json_body=_chat_response('{"ok": true}'))
        adapter = OpenAIAdapter(client, base_url="https://proxy.example.com/v1/")
        config = {
            "messages": '[{"role": "user", "content": "json please"}]',
            "responseFormat": "json_object",
            "stop": "END",
        }

        adapter.execute("chat.completion", config, API_KEY, context)

        body = transport.last_json()
        assert str(transport.last.url) == "https://proxy.example.com/v1/chat/completions"
        assert body["messages"] == [{"role": "user", "content": "json please"}]
        assert body["response_format"] == {"type": "json_object"}
        assert body["stop"] == ["END"]

    def test_stream_is_served_as_completion(self, mock_http, context):
        client, _ = mock_http(json_body=_chat_response("streamed"))
        result = OpenAIAdapter(client).execute("chat.stream", {"prompt": "x"}, API_KEY, context)
        assert result.output["content"] == "streamed"

    def test_prompt_required(self, mock_http, context):
        client, transport = mock_http()
        result = OpenAIAdapter(client).execute("chat.completion", {"prompt": "  "}, API_KEY, context)

        assert result.error.message == "OpenAI node requires a prompt"
        assert transport.requests == []

    def test_bad_number(self, mock_http, context):
        client, _ = mock_http()
        result = OpenAIAdapter(client).execute(
            "chat.completion", {"prompt": "x", "temperature": "warm"}, API_KEY, context
        )
        assert result.error.message == "temperature must be a number"

    def test_upstream_error(self, mock_http, context):
        client, _ = mock_http(status_code=401, json_body={"error": {"message": "Incorrect API key provided"}})

        result = OpenAIAdapter(client).execute("chat.completion", {"prompt": "x"}, API_KEY, context)

        assert result.error.code == "UNAUTHORIZED"
        assert result.error.message == "Incorrect API key provided"
        assert result.error.provider == "openai"
        assert result.error.operation == "chat.completion"

    def test_no_choices(self, mock_http, context):
        client, _ = mock_http(json_body={"choices": []})
        result = OpenAIAdapter(client).execute("chat.completion", {"prompt": "x"}, API_KEY, context)
        assert result.error.code == "INVALID_RESPONSE"


class TestCredentials:
    def test_missing_credentials(self, mock_http, context):
        result = OpenAIAdapter(mock_http()[0]).execute("chat.completion", {"prompt": "x"}, None, context)

        assert result.error.code == "MISSING_CREDENTIALS"
        assert result.error.message == "No credentials found for provider: openai"

    def test_expired_credentials(self, mock_http, context):
        expired = CredentialBundle.from_access_token("tok", expires_at=time.time() - 10)

        result = OpenAIAdapter(mock_http()[0]).execute("chat.completion", {"prompt": "x"}, expired, context)

        assert result.error.code == "EXPIRED_CREDENTIALS"


class TestEmbeddingsAndImages:
    def test_embeddings(self, mock_http, context):
        response = {"data": [{"embedding": [0.1, 0.2]}], "model": "text-embedding-3-small", "usage": {"total_tokens": 3}}
        client, transport = mock_http(json_body=response)

        result = OpenAIAdapter(client).execute(
            "embeddings.create", {"input": "hello", "dimensions": "2"}, API_KEY, context
        )

        assert result.output["embedding"] == [0.1, 0.2]
        assert result.output["embeddings"] == [[0.1, 0.2]]
        assert transport.last_json() == {"model": "text-embedding-3-small", "input": "hello", "dimensions": 2}

    def test_images(self, mock_http, context):
        def handler(request):
            return httpx.Response(
                200, json={"data": [{"url": "https://img.example.com/1.png", "revised_prompt": "a cat"}]}
            )

        client, transport = mock_http(handler)

        result = OpenAIAdapter(client).execute(
            "images.generate", {"prompt": "cat", "quality": "hd"}, API_KEY, context
        )

        assert result.output["url"] == "https://img.example.com/1.png"
        assert result.output["images"][0]["revisedPrompt"] == "a cat"
        body = transport.last_json()
        assert body["size"] == "1024x1024"
        assert body["quality"] == "hd"
        assert str(transport.last.url).endswith("/images/generations")
