"""
Shared test fixtures and utilities.

Provides a scripted chat client standing in for the provider and random
sources with controllable draws.
"""

import json
import random

import pytest

from api_server.middleware.rate_limit import limiter


class ScriptedRandom(random.Random):
    """Random source whose float draws (and optionally randint) are fixed."""

    def __init__(self, *, value: float = 0.5, randint_value=None):
        super().__init__(0)
        self.value = value
        self.randint_value = randint_value

    def random(self):
        return self.value

    def randint(self, a, b):
        if self.randint_value is not None:
            return self.randint_value
        return super().randint(a, b)


class FakeChatClient:
    """
    Scripted stand-in for GroqClient.

    Args:
        turns: Replies for buffered turn requests
        streams: Fragment lists for streamed turn requests
        json_replies: Replies for json_mode requests (judge, options)

    Any scripted item that is an Exception is raised instead of returned.
    """

    def __init__(self, turns=None, streams=None, json_replies=None):
        self.turns = list(turns or [])
        self.streams = list(streams or [])
        self.json_replies = list(json_replies or [])
        self.calls = []

    async def get_response(self, messages, max_tokens=200, temperature=None, json_mode=False):
        self.calls.append(
            {"kind": "json" if json_mode else "turn", "messages": messages, "max_tokens": max_tokens}
        )
        queue = self.json_replies if json_mode else self.turns
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def stream_response(self, messages, max_tokens=200, temperature=None):
        self.calls.append({"kind": "stream", "messages": messages, "max_tokens": max_tokens})
        script = self.streams.pop(0)
        if isinstance(script, Exception):
            raise script
        for piece in script:
            if isinstance(piece, Exception):
                raise piece
            yield piece


def verdict(logic=70, rhetoric=70, counter=70, off_topic=False, commentary="好一记反击") -> str:
    """Serialized judge verdict."""
    return json.dumps(
        {
            "logicScore": logic,
            "rhetoricScore": rhetoric,
            "counterScore": counter,
            "isOffTopic": off_topic,
            "commentary": commentary,
        },
        ensure_ascii=False,
    )


@pytest.fixture
def make_client():
    """Factory for scripted chat clients."""
    return FakeChatClient


@pytest.fixture
def make_verdict():
    return verdict


@pytest.fixture
def scripted_random():
    """Factory for random sources with fixed draws."""
    return ScriptedRandom


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture(autouse=True)
def disable_rate_limit():
    """Rate limiting would trip on the shared test client address."""
    previous = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = previous
