"""Per-request construction of battle components"""

import logging
from typing import Optional

from fastapi import Request

from battle_core import BattleOrchestrator, OptionSuggester, Settings
from llm_client import APIKeyError, GroqClient

logger = logging.getLogger("api_server")


def create_llm_client(settings: Settings) -> Optional[GroqClient]:
    """Build the provider client once at startup

    Returns None when no credential is configured; battle requests then
    fail with AUTH_FAILED instead of reaching the provider.
    """
    if not settings.has_credentials:
        logger.warning("GROQ_API_KEY is not set; battle endpoints will answer AUTH_FAILED")
        return None
    return GroqClient(api_key=settings.api_key, model=settings.model)


def get_orchestrator(request: Request) -> BattleOrchestrator:
    """Orchestrator bound to the app's client and random source

    Raises:
        APIKeyError: If the app started without a credential
    """
    client = request.app.state.llm_client
    if client is None:
        raise APIKeyError("GROQ_API_KEY is not set")
    return BattleOrchestrator(client, rng=request.app.state.rng)


def get_option_suggester(request: Request) -> OptionSuggester:
    """Option suggester; without a client it only serves presets"""
    return OptionSuggester(request.app.state.llm_client, rng=request.app.state.rng)
