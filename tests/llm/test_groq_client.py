"""Tests for the Groq client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import groq
import httpx
import pytest

from llm_client import APIKeyError, GroqClient, LLMError, ModelError, RateLimitError, StreamInterruptedError


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeStream:
    def __init__(self, items):
        self.items = items

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for item in self.items:
            if isinstance(item, Exception):
                raise item
            yield item


def status_error(cls, status, headers=None):
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    response = httpx.Response(status, request=request, headers=headers or {})
    return cls("failed", response=response, body=None)


@pytest.fixture
def client():
    c = GroqClient(api_key="test-key", model="test-model")
    c._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock())))
    return c


class TestConstruction:
    """Tests for GroqClient setup."""

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        with pytest.raises(APIKeyError):
            GroqClient()

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "env-key")
        c = GroqClient()
        assert c.api_key == "env-key"
        assert c.model == GroqClient.DEFAULT_MODEL


class TestGetResponse:
    """Tests for buffered completions."""

    @pytest.mark.asyncio
    async def test_returns_text(self, client):
        create = client._client.chat.completions.create
        create.return_value = completion("你好")

        text = await client.get_response([{"role": "user", "content": "hi"}], max_tokens=50, temperature=0.7)

        assert text == "你好"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.7
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_json_mode(self, client):
        create = client._client.chat.completions.create
        create.return_value = completion("{}")
        await client.get_response([{"role": "user", "content": "hi"}], json_mode=True)
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_none_content_is_empty(self, client):
        client._client.chat.completions.create.return_value = completion(None)
        assert await client.get_response([]) == ""

    @pytest.mark.asyncio
    async def test_no_choices(self, client):
        client._client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with pytest.raises(ModelError):
            await client.get_response([])

    @pytest.mark.asyncio
    async def test_malformed_choice(self, client):
        client._client.chat.completions.create.return_value = SimpleNamespace(choices=[SimpleNamespace()])
        with pytest.raises(ModelError):
            await client.get_response([])

    @pytest.mark.asyncio
    async def test_auth_error_translated(self, client):
        create = client._client.chat.completions.create
        create.side_effect = status_error(groq.AuthenticationError, 401)
        with pytest.raises(APIKeyError) as exc_info:
            await client.get_response([])
        assert exc_info.value.status_code == 401
        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_translated(self, client):
        create = client._client.chat.completions.create
        create.side_effect = status_error(groq.RateLimitError, 429, {"retry-after": "12"})
        with pytest.raises(RateLimitError) as exc_info:
            await client.get_response([])
        assert exc_info.value.retry_after == 12
        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_other_error_translated(self, client):
        client._client.chat.completions.create.side_effect = status_error(groq.InternalServerError, 500)
        with pytest.raises(LLMError) as exc_info:
            await client.get_response([])
        assert str(exc_info.value).startswith("Groq API error")


class TestStreamResponse:
    """Tests for streamed completions."""

    @pytest.mark.asyncio
    async def test_yields_non_empty_pieces(self, client):
        create = client._client.chat.completions.create
        create.return_value = FakeStream([chunk("正"), chunk(None), chunk(""), chunk("方"),
                                          SimpleNamespace(choices=[])])

        pieces = [p async for p in client.stream_response([{"role": "user", "content": "hi"}])]

        assert pieces == ["正", "方"]
        assert create.call_args.kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_error_mid_stream(self, client):
        client._client.chat.completions.create.return_value = FakeStream(
            [chunk("正"), status_error(groq.InternalServerError, 503)]
        )
        pieces = []
        with pytest.raises(StreamInterruptedError) as exc_info:
            async for piece in client.stream_response([]):
                pieces.append(piece)
        assert pieces == ["正"]
        assert exc_info.value.delivered == 1
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_auth_error_on_open(self, client):
        client._client.chat.completions.create.side_effect = status_error(groq.PermissionDeniedError, 403)
        with pytest.raises(APIKeyError):
            async for _ in client.stream_response([]):
                pass
