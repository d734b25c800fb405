"""Turn generator: builds turn context and asks the agent model for a turn"""

import random
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from .config import CRIT_BONUS_LINES, EMPTY_TURN_PLACEHOLDER, LLM_MAX_TOKENS_TURN
from .history import format_history_for_con, format_history_for_pro
from .prompts import create_choice_prompt, create_style_prompt
from .types import ATTACK_TYPES, AttackType, HistoryEntry, Phase, Side

_COUNTER_STYLES = {"A": "B", "B": "C", "C": "A"}


def counter_style(style: AttackType) -> AttackType:
    """Style that counters ``style``: A -> B -> C -> A"""
    return _COUNTER_STYLES[style]


def is_legacy_choice(choice: str) -> bool:
    return choice in ATTACK_TYPES


@dataclass
class TurnPlan:
    """How one side attacks this round"""
    side: Side
    style: AttackType
    # Free-text direction; None means the style prompt is used
    choice: Optional[str]
    judge_label: str


def plan_turn(side: Side, user_choice: str, user_side: Side, phase: Phase = "full") -> TurnPlan:
    """Resolve style, prompt flavour and judge label for one side"""
    legacy = is_legacy_choice(user_choice)

    if side == "pro":
        if user_side == "con":
            style = "B"
        else:
            style = user_choice if legacy else "B"
        use_choice = user_side != "con" and not legacy and phase != "kimi_only"
        label = style if legacy or phase == "kimi_only" else user_choice
    else:
        if user_side == "con":
            style = user_choice if legacy else "B"
        else:
            style = counter_style(user_choice) if legacy else "B"
        use_choice = not legacy
        label = style if legacy else user_choice

    return TurnPlan(
        side=side,
        style=style,
        choice=user_choice if use_choice else None,
        judge_label=label,
    )


@dataclass
class TurnContext:
    """Everything the agent sees for one turn"""
    topic: str
    plan: TurnPlan
    hp: int
    round_number: int
    history: list[HistoryEntry] = field(default_factory=list)
    opponent_last_words: str = ""

    @property
    def side(self) -> Side:
        return self.plan.side


def append_critical_bonus(content: str, side: Side, rng: random.Random) -> tuple[str, str]:
    """Append one bonus sentence to a critical turn

    Returns:
        (new content, the bonus sentence)
    """
    bonus = rng.choice(CRIT_BONUS_LINES[side])
    return f"{content.strip()} {bonus}".strip(), bonus


class TurnGenerator:
    """Requests agent turns, buffered or streamed"""

    def __init__(self, client, max_tokens: int = LLM_MAX_TOKENS_TURN):
        self.client = client
        self.max_tokens = max_tokens

    def build_messages(self, ctx: TurnContext) -> list[dict]:
        plan = ctx.plan
        if plan.choice is not None:
            system = create_choice_prompt(ctx.side, ctx.topic, plan.choice, ctx.hp, ctx.round_number)
        else:
            system = create_style_prompt(ctx.side, ctx.topic, plan.style, ctx.hp, ctx.round_number)

        if ctx.side == "pro":
            user = format_history_for_pro(ctx.history, ctx.opponent_last_words)
        else:
            user = format_history_for_con(ctx.history, ctx.opponent_last_words)

        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]

    async def generate(self, ctx: TurnContext) -> str:
        """Completed turn text, or the side's placeholder when empty"""
        text = await self.client.get_response(
            messages=self.build_messages(ctx),
            max_tokens=self.max_tokens,
        )
        return (text or "").strip() or EMPTY_TURN_PLACEHOLDER[ctx.side]

    async def stream(self, ctx: TurnContext) -> AsyncIterator[str]:
        """Turn text as ordered fragments

        When nothing visible arrived, the placeholder is yielded last, so the
        stripped concatenation is never empty.
        """
        collected = []
        async for piece in self.client.stream_response(
            messages=self.build_messages(ctx),
            max_tokens=self.max_tokens,
        ):
            if piece:
                collected.append(piece)
                yield piece
        if not "".join(collected).strip():
            yield EMPTY_TURN_PLACEHOLDER[ctx.side]
