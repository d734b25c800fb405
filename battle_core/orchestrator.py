"""Battle orchestrator: sequences one round and emits its events

A round is always run as an async stream of StreamEvent. Streaming callers
forward the events as they come; buffered callers drain the stream and read
the finished round (see BattleRound.to_response).
"""

import dataclasses
import logging
import random
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from .errors import BadRequestError, BattleFinishedError
from .history import last_content_of, trim_history
from .judge import JudgeAdapter
from .turns import TurnContext, TurnGenerator, append_critical_bonus, plan_turn
from .types import (
    BattleState,
    DebateLogEntry,
    HistoryEntry,
    JudgeResult,
    Phase,
    Side,
    StreamEvent,
)

logger = logging.getLogger(__name__)


@dataclass
class RoundRequest:
    """Input of one round, as supplied by the client"""
    topic: str
    user_choice: str
    state: BattleState
    history: list[HistoryEntry] = field(default_factory=list)
    user_side: Side = "pro"
    phase: Phase = "full"

    def validate(self) -> None:
        """Reject unusable input before anything is generated

        Raises:
            BadRequestError: If topic, choice or state is missing
            BattleFinishedError: If the state is already decided
        """
        if not self.topic or not self.user_choice or self.state is None:
            raise BadRequestError("Missing topic, userChoice or currentState")
        if self.state.is_over or self.state.pro_hp <= 0 or self.state.con_hp <= 0:
            raise BattleFinishedError()


class BattleRound:
    """One round in progress

    Iterate it (``async for event in battle_round``) to drive the round.
    The state, log and per-side results are readable while and after it runs.
    """

    def __init__(self, orchestrator: "BattleOrchestrator", request: RoundRequest, streaming: bool):
        self.orchestrator = orchestrator
        self.request = request
        self.streaming = streaming
        self.state = dataclasses.replace(request.state)
        self.history = trim_history(request.history)
        self.log: list[DebateLogEntry] = []
        self.results: dict[Side, JudgeResult] = {}
        self.contents: dict[Side, str] = {}
        self.winner: Optional[Side] = None

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._run()

    async def _fragments(self, ctx: TurnContext) -> AsyncIterator[str]:
        turns = self.orchestrator.turns
        if self.streaming:
            async for piece in turns.stream(ctx):
                yield piece
        else:
            yield await turns.generate(ctx)

    async def _play_turn(self, ctx: TurnContext) -> AsyncIterator[StreamEvent]:
        side = ctx.side
        entry = DebateLogEntry(side=side)
        self.log.append(entry)

        yield StreamEvent.start(side)
        async for piece in self._fragments(ctx):
            entry.append(piece)
            yield StreamEvent.token(side, piece)
        yield StreamEvent.end(side)

        content = entry.content.strip()
        result = await self.orchestrator.judge.judge(
            topic=self.request.topic,
            round_number=self.state.round,
            attacker=side,
            style=ctx.plan.judge_label,
            content=content,
            state=self.state,
        )

        if result.is_critical:
            content, bonus = append_critical_bonus(content, side, self.orchestrator.rng)
            yield StreamEvent.token(side, f" {bonus}")

        entry.finalize(result, content)
        self.state.apply(result)
        self.results[side] = result
        self.contents[side] = content
        yield StreamEvent.judged(side, result, content)

    def _context(self, side: Side, history: list[HistoryEntry], opponent_last_words: str) -> TurnContext:
        req = self.request
        return TurnContext(
            topic=req.topic,
            plan=plan_turn(side, req.user_choice, req.user_side, req.phase),
            hp=self.state.hp(side),
            round_number=self.state.round,
            history=history,
            opponent_last_words=opponent_last_words,
        )

    async def _run(self) -> AsyncIterator[StreamEvent]:
        req = self.request
        logger.info("Round %d started (phase=%s, userSide=%s)", self.state.round, req.phase, req.user_side)

        if req.phase == "deepseek_only":
            con_history = self.history
            pro_words = last_content_of(self.history, "pro")
        else:
            ctx = self._context("pro", self.history, last_content_of(self.history, "con"))
            async for event in self._play_turn(ctx):
                yield event

            if self.state.is_over:
                self.winner = "pro"
                logger.info("Battle won by pro in round %d", self.state.round)
                yield StreamEvent.done(winner="pro")
                return
            if req.phase == "kimi_only":
                yield StreamEvent.done()
                return

            pro_words = self.contents["pro"]
            con_history = self.history + [HistoryEntry(role="pro", content=pro_words)]

        ctx = self._context("con", con_history, pro_words)
        async for event in self._play_turn(ctx):
            yield event

        if self.state.status == "con_win":
            self.winner = "con"
            logger.info("Battle won by con in round %d", self.state.round)
        self.state.advance_round()
        yield StreamEvent.done(winner=self.winner)

    @staticmethod
    def _side_payload(result: JudgeResult, content: str) -> dict:
        return {
            "content": content,
            "damage": result.damage,
            "isCritical": result.is_critical,
            "isOffTopic": result.is_off_topic,
            "currentHP": result.current_hp.to_dict(),
            "totalScore": result.total_score,
            "comboCount": result.combo_count,
            "battleStatus": result.battle_status,
            "commentary": result.commentary,
        }

    def to_response(self) -> dict:
        """Buffered response body: {kimi, deepseek?, state?, winner?, finalData?}"""
        body: dict = {}
        if "pro" in self.results:
            body["kimi"] = self._side_payload(self.results["pro"], self.contents["pro"])
        if "con" in self.results:
            body["deepseek"] = self._side_payload(self.results["con"], self.contents["con"])
            body["state"] = self.results["con"].to_dict()
        if self.winner is not None:
            body["winner"] = self.winner
            if self.winner == "pro":
                body["finalData"] = self.results["pro"].to_dict()
        return body


class BattleOrchestrator:
    """Runs battle rounds against one chat-completion client

    Args:
        client: Object exposing ``get_response`` and ``stream_response``
        rng: Random source for scoring, criticals and bonus lines
    """

    def __init__(self, client, rng: Optional[random.Random] = None):
        self.client = client
        self.rng = rng or random.Random()
        self.turns = TurnGenerator(client)
        self.judge = JudgeAdapter(client, self.rng)

    def start_round(self, request: RoundRequest, streaming: bool = True) -> BattleRound:
        """Validate the request and return a round ready to iterate"""
        request.validate()
        return BattleRound(self, request, streaming=streaming)

    async def play_round(self, request: RoundRequest) -> BattleRound:
        """Run a whole round in buffered mode"""
        battle_round = self.start_round(request, streaming=False)
        async for _ in battle_round:
            pass
        return battle_round
