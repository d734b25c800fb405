"""Option suggester: short reply directions for the human-controlled side"""

import json
import logging
import random
import re
from typing import Optional

from llm_client import LLMError

from .config import (
    LLM_MAX_TOKENS_OPTIONS,
    LLM_TEMPERATURE_OPTIONS,
    MAX_OPTION_HISTORY,
    PRESET_OPTIONS,
    PRESET_PROBABILITY,
    PRESET_ROUNDS,
)
from .history import format_history_for_options, trim_history
from .prompts import create_options_prompt
from .types import HistoryEntry, Side

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

MIN_OPTIONS = 2
MAX_OPTIONS = 3


def parse_options(raw: str) -> Optional[list[str]]:
    """Extract up to three options from the model reply

    Returns None when the reply is malformed, has fewer than two entries or
    contains a blank entry.
    """
    cleaned = _FENCE_RE.sub("", raw or "").strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return None
    if not isinstance(parsed, dict) or not isinstance(parsed.get("options"), list):
        return None

    options = parsed["options"][:MAX_OPTIONS]
    if len(options) < MIN_OPTIONS:
        return None
    if any(not isinstance(opt, str) or not opt.strip() for opt in options):
        return None
    return [opt.strip() for opt in options]


class OptionSuggester:
    """Suggests 2-3 directions, from presets or from the model"""

    def __init__(self, client, rng: Optional[random.Random] = None):
        self.client = client
        self.rng = rng or random.Random()

    def preset(self) -> list[str]:
        return list(self.rng.choice(PRESET_OPTIONS))

    def use_preset(self, round_number: int) -> bool:
        """Early rounds always use presets; later ones most of the time"""
        if round_number <= PRESET_ROUNDS:
            return True
        return self.rng.random() < PRESET_PROBABILITY

    async def suggest(
        self,
        topic: str,
        round_number: int,
        history: list[HistoryEntry],
        side: Side = "pro",
    ) -> list[str]:
        """Return suggested directions; never raises for model failures"""
        if self.client is None or self.use_preset(round_number):
            logger.debug("Using preset options for round %d", round_number)
            return self.preset()

        history_text = format_history_for_options(trim_history(history, MAX_OPTION_HISTORY))
        try:
            raw = await self.client.get_response(
                messages=[
                    {
                        "role": "user",
                        "content": create_options_prompt(topic, round_number, history_text, side),
                    }
                ],
                max_tokens=LLM_MAX_TOKENS_OPTIONS,
                temperature=LLM_TEMPERATURE_OPTIONS,
                json_mode=True,
            )
        except LLMError as e:
            logger.warning("Option generation failed, using presets: %s", e)
            return self.preset()

        options = parse_options(raw)
        if options is None:
            logger.warning("Option reply unusable, using presets: %r", (raw or "")[:200])
            return self.preset()
        return options
