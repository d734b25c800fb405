"""Errors raised by the chat-completion client

Every provider failure surfaces as an LLMError subclass; callers never see
SDK exception types.
"""

from typing import Optional


class LLMError(Exception):
    """Provider call failed

    Attributes:
        status_code: HTTP status reported by the provider, if any
    """

    def __init__(self, message: str = "LLM request failed", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class APIKeyError(LLMError):
    """Credential missing, or refused by the provider"""

    def __init__(self, message: str = "API key is missing or invalid", status_code: Optional[int] = None):
        super().__init__(message, status_code)


class RateLimitError(LLMError):
    """Provider quota exhausted"""

    def __init__(self, message: str = "API rate limit exceeded", retry_after: int = 60):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class ModelError(LLMError):
    """Completion arrived without a usable choice"""
    pass


class StreamInterruptedError(LLMError):
    """Stream broke after some fragments were already delivered

    Attributes:
        delivered: Number of fragments yielded before the failure
    """

    def __init__(self, message: str, delivered: int, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        self.delivered = delivered
