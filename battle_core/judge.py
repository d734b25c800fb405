"""Judge adapter: turns an LLM quality verdict into a JudgeResult"""

import json
import logging
import random
import re
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import (
    FALLBACK_COMMENTARY,
    FALLBACK_SCORE,
    LLM_MAX_TOKENS_JUDGE,
    LLM_TEMPERATURE_JUDGE,
)
from .prompts import JUDGE_SYSTEM_PROMPT
from .scoring import (
    apply_damage,
    compute_damage,
    compute_score_delta,
    roll_critical,
    status_after,
)
from .types import BattleState, JudgeResult, Side

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

Score = Union[int, float]


class JudgeVerdict(BaseModel):
    """Structured verdict returned by the judge model

    Unknown legacy fields (damage, currentHP, ...) are ignored; those values
    are always computed locally.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    logic_score: Score = Field(alias="logicScore")
    rhetoric_score: Score = Field(alias="rhetoricScore")
    counter_score: Score = Field(alias="counterScore")
    is_off_topic: bool = Field(default=False, alias="isOffTopic")
    commentary: str = ""

    @field_validator("logic_score", "rhetoric_score", "counter_score")
    @classmethod
    def clamp_score(cls, v: Score) -> Score:
        return min(100, max(0, v))

    @field_validator("is_off_topic", mode="before")
    @classmethod
    def coerce_off_topic(cls, v):
        return v if isinstance(v, bool) else False

    @field_validator("commentary", mode="before")
    @classmethod
    def coerce_commentary(cls, v):
        return v if isinstance(v, str) else ""

    @classmethod
    def fallback(cls) -> "JudgeVerdict":
        return cls(
            logic_score=FALLBACK_SCORE,
            rhetoric_score=FALLBACK_SCORE,
            counter_score=FALLBACK_SCORE,
            is_off_topic=False,
            commentary=FALLBACK_COMMENTARY,
        )


def parse_verdict(raw: str) -> JudgeVerdict:
    """Parse the judge's raw reply, tolerating markdown code fences

    Raises:
        ValueError: If the reply is not JSON
        ValidationError: If required scores are missing or malformed
    """
    cleaned = _FENCE_RE.sub("", raw).strip()
    return JudgeVerdict.model_validate(json.loads(cleaned))


def build_judge_result(
    verdict: JudgeVerdict,
    attacker: Side,
    is_critical: bool,
    state: BattleState,
    rng: random.Random,
) -> JudgeResult:
    """Apply the scoring model to a verdict against the current state"""
    damage = compute_damage(is_critical, verdict.is_off_topic, rng)
    next_hp = apply_damage(attacker, state.snapshot(), damage)
    return JudgeResult(
        damage=damage,
        is_critical=is_critical,
        is_off_topic=verdict.is_off_topic,
        logic_score=verdict.logic_score,
        rhetoric_score=verdict.rhetoric_score,
        counter_score=verdict.counter_score,
        current_hp=next_hp,
        total_score=state.total_score + compute_score_delta(damage, rng),
        combo_count=state.combo + 1,
        battle_status=status_after(attacker, next_hp),
        commentary=verdict.commentary,
    )


class JudgeAdapter:
    """Judges one turn through the LLM and merges the verdict with scoring"""

    def __init__(self, client, rng: random.Random):
        self.client = client
        self.rng = rng

    async def request_verdict(self, topic: str, round_number: int, attacker: Side, content: str) -> str:
        payload = json.dumps(
            {"topic": topic, "round": round_number, "attacker": attacker, "content": content},
            ensure_ascii=False,
        )
        return await self.client.get_response(
            messages=[
                {"role": "system", "content": JUDGE_SYSTEM_PROMPT},
                {"role": "user", "content": payload},
            ],
            max_tokens=LLM_MAX_TOKENS_JUDGE,
            temperature=LLM_TEMPERATURE_JUDGE,
            json_mode=True,
        )

    async def judge(
        self,
        topic: str,
        round_number: int,
        attacker: Side,
        style: str,
        content: str,
        state: BattleState,
    ) -> JudgeResult:
        """Judge a turn

        Provider errors propagate. An unparseable verdict never does: it is
        replaced by the fixed fallback verdict and scored normally.

        Args:
            topic: The debate topic
            round_number: Current round
            attacker: Side that produced ``content``
            style: Attack style or free-text direction of the turn
            content: The turn's text as judged
            state: State before this turn (HP, combo, cumulative score)
        """
        raw = await self.request_verdict(topic, round_number, attacker, content)
        try:
            verdict = parse_verdict(raw or "{}")
        except (ValueError, ValidationError):
            logger.warning("Judge reply unparseable, using fallback verdict: %r", (raw or "")[:200])
            verdict = JudgeVerdict.fallback()
            is_critical = False
        else:
            is_critical = roll_critical(
                verdict.logic_score, verdict.rhetoric_score, verdict.counter_score, self.rng
            )

        result = build_judge_result(verdict, attacker, is_critical, state, self.rng)
        logger.debug(
            "Judged %s turn (style=%s): damage=%d critical=%s status=%s",
            attacker, style, result.damage, result.is_critical, result.battle_status,
        )
        return result
