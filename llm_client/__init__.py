"""LLM Client - Abstraction layer for the chat-completion provider"""

from .exceptions import LLMError, RateLimitError, APIKeyError, ModelError, StreamInterruptedError
from .groq_client import GroqClient, Message

__all__ = [
    "LLMError",
    "RateLimitError",
    "APIKeyError",
    "ModelError",
    "StreamInterruptedError",
    "GroqClient",
    "Message",
]
