"""Debate battle API endpoints"""

import logging
from typing import AsyncIterator, Literal, Optional

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from battle_core import (
    BadRequestError,
    BattleRound,
    BattleState,
    HistoryEntry,
    RoundRequest,
    StreamEvent,
    classify_error,
)
from api_server.dependencies import get_option_suggester, get_orchestrator
from api_server.middleware.rate_limit import limiter, get_rate_limit_string

logger = logging.getLogger("api_server")

router = APIRouter(prefix="/debate", tags=["debate"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


# Request/Response models
class CurrentStateInput(BaseModel):
    """State snapshot held by the client"""
    model_config = ConfigDict(populate_by_name=True)

    pro_hp: int = Field(..., alias="proHP", ge=0, le=1000)
    con_hp: int = Field(..., alias="conHP", ge=0, le=1000)
    combo: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, alias="totalScore", ge=0)


class HistoryEntryInput(BaseModel):
    """One earlier turn"""
    role: Literal["pro", "con"]
    content: str = ""


class DebateRequest(BaseModel):
    """Request for one buffered round"""
    model_config = ConfigDict(populate_by_name=True)

    topic: Optional[str] = None
    round: int = Field(default=1, ge=1)
    user_choice: Optional[str] = Field(default=None, alias="userChoice")
    current_state: Optional[CurrentStateInput] = Field(default=None, alias="currentState")
    history: list[HistoryEntryInput] = Field(default_factory=list)
    user_side: Literal["pro", "con"] = Field(default="pro", alias="userSide")

    @field_validator("history", mode="before")
    @classmethod
    def none_history_is_empty(cls, v):
        return [] if v is None else v

    def to_round_request(self, phase: str = "full") -> RoundRequest:
        state = None
        if self.current_state is not None:
            state = BattleState(
                pro_hp=self.current_state.pro_hp,
                con_hp=self.current_state.con_hp,
                total_score=self.current_state.total_score,
                combo=self.current_state.combo,
                round=self.round,
            )
        return RoundRequest(
            topic=(self.topic or "").strip(),
            user_choice=(self.user_choice or "").strip(),
            state=state,
            history=[HistoryEntry(role=h.role, content=h.content) for h in self.history],
            user_side=self.user_side,
            phase=phase,
        )


class StreamRequest(DebateRequest):
    """Request for one streamed round"""
    phase: Literal["full", "kimi_only", "deepseek_only"] = "full"


class OptionsRequest(BaseModel):
    """Request for suggested reply directions"""
    topic: Optional[str] = None
    round: int = Field(default=1, ge=1)
    history: list[HistoryEntryInput] = Field(default_factory=list)
    side: Literal["pro", "con"] = "pro"

    @field_validator("history", mode="before")
    @classmethod
    def none_history_is_empty(cls, v):
        return [] if v is None else v


class OptionsResponse(BaseModel):
    """Suggested reply directions"""
    options: list[str]


async def event_stream(battle_round: BattleRound) -> AsyncIterator[str]:
    """Serialize round events as SSE frames; a failure ends with one error frame"""
    try:
        async for event in battle_round:
            yield event.to_sse()
    except Exception as e:
        code, message = classify_error(e)
        logger.error(str({"event": "stream_failed", "code": code, "error": str(e)}))
        yield StreamEvent.failure(message, code).to_sse()


@router.post("")
@limiter.limit(get_rate_limit_string())
async def debate_round(request: Request, body: DebateRequest):
    """Run one full round and return both judged turns at once

    Returns ``{kimi, deepseek?, state?, winner?, finalData?}``; when the first
    turn wins the battle the second turn is skipped.
    """
    round_request = body.to_round_request()
    round_request.validate()
    orchestrator = get_orchestrator(request)

    battle_round = await orchestrator.play_round(round_request)
    return battle_round.to_response()


@router.post("/stream")
@limiter.limit(get_rate_limit_string())
async def debate_round_stream(request: Request, body: StreamRequest):
    """Run one round as a server-sent event stream

    Events: {side}_start, {side}_token*, {side}_end, judge_{side}, ..., done.
    Input and credential problems are answered before the stream opens.
    """
    round_request = body.to_round_request(phase=body.phase)
    round_request.validate()
    orchestrator = get_orchestrator(request)

    battle_round = orchestrator.start_round(round_request, streaming=True)
    return StreamingResponse(
        event_stream(battle_round),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/options", response_model=OptionsResponse)
@limiter.limit(get_rate_limit_string())
async def debate_options(request: Request, body: OptionsRequest):
    """Suggest up to three reply directions for the acting side

    Model failures fall back to a preset set and are never reported as errors.
    """
    if not body.topic or not body.topic.strip():
        raise BadRequestError("Missing topic")

    suggester = get_option_suggester(request)
    options = await suggester.suggest(
        topic=body.topic.strip(),
        round_number=body.round,
        history=[HistoryEntry(role=h.role, content=h.content) for h in body.history],
        side=body.side,
    )
    return OptionsResponse(options=options)
