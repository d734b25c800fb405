"""Client side of the battle stream

Decodes the server-sent frames, keeps a local projection of the battle and
paces the visible reveal of each side's text independently of arrival.
The server state is canonical; the projection only mirrors it.
"""

import asyncio
import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Optional, Union

from .config import (
    INITIAL_HP,
    REVEAL_BASE_DELAY_MS,
    REVEAL_MIN_DELAY_MS,
    REVEAL_SPEED_MAX,
    REVEAL_SPEED_MIN,
    THINKING_MARKER,
)
from .scoring import round_half_up
from .types import BattleStatus, DebateLogEntry, Phase, Side

logger = logging.getLogger(__name__)

EVENT_SIDES: dict[str, Side] = {"kimi": "pro", "deepseek": "con"}


def clamp_speed(speed: float) -> float:
    return max(REVEAL_SPEED_MIN, min(REVEAL_SPEED_MAX, speed))


def reveal_delay_ms(speed: float) -> int:
    """Per-fragment delay, inversely proportional to speed, floor-clamped"""
    return max(REVEAL_MIN_DELAY_MS, round_half_up(REVEAL_BASE_DELAY_MS / clamp_speed(speed)))


async def decode_sse(chunks: AsyncIterable[Union[str, bytes]]) -> AsyncIterator[dict]:
    """Yield the JSON objects of ``data:`` frames from an arbitrarily chunked stream"""
    decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        frames = buffer.split("\n\n")
        buffer = frames.pop()
        for frame in frames:
            if not frame.startswith("data: "):
                continue
            data = frame[len("data: "):]
            if data == "[DONE]":
                continue
            try:
                yield json.loads(data)
            except ValueError:
                logger.debug("Skipping unparseable frame: %r", data[:80])


class RevealScheduler:
    """One ordered append chain per side

    Fragments of a side are revealed in arrival order, one per delay tick;
    the two sides' chains run independently of each other.
    """

    def __init__(
        self,
        on_append: Callable[[Side, str], None],
        speed: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.on_append = on_append
        self.speed = clamp_speed(speed)
        self._sleep = sleep
        self._queues: dict[Side, asyncio.Queue] = {}
        self._workers: dict[Side, asyncio.Task] = {}

    def set_speed(self, speed: float) -> None:
        self.speed = clamp_speed(speed)

    @property
    def delay_ms(self) -> int:
        return reveal_delay_ms(self.speed)

    def schedule(self, side: Side, chunk: str) -> None:
        if side not in self._queues:
            self._queues[side] = asyncio.Queue()
            self._workers[side] = asyncio.create_task(self._run(side))
        self._queues[side].put_nowait(chunk)

    async def _run(self, side: Side) -> None:
        queue = self._queues[side]
        while True:
            chunk = await queue.get()
            try:
                await self._sleep(self.delay_ms / 1000)
                self.on_append(side, chunk)
            finally:
                queue.task_done()

    async def drain(self, side: Optional[Side] = None) -> None:
        """Wait until every scheduled fragment (of ``side``, or of both) is shown"""
        sides = [side] if side else list(self._queues)
        for s in sides:
            queue = self._queues.get(s)
            if queue is not None:
                await queue.join()

    async def close(self) -> None:
        for task in self._workers.values():
            task.cancel()
        await asyncio.gather(*self._workers.values(), return_exceptions=True)
        self._workers.clear()
        self._queues.clear()


class BattleProjection:
    """Client copy of the battle, rebuilt from stream events"""

    def __init__(self, speed: float = 1.0, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep
        self.reset(speed)

    def reset(self, speed: float = 1.0) -> None:
        """Back to a fresh battle"""
        self.pro_hp = INITIAL_HP
        self.con_hp = INITIAL_HP
        self.total_score = 0
        self.combo = 0
        self.round = 1
        self.status: BattleStatus = "ongoing"
        self.logs: list[DebateLogEntry] = []
        self.error: Optional[str] = None
        self.is_processing = False
        self.reveal = RevealScheduler(self._append_to_last, speed=speed, sleep=self._sleep)

    def clear_error(self) -> None:
        self.error = None

    @property
    def can_attack(self) -> bool:
        return (
            not self.is_processing
            and self.status == "ongoing"
            and self.pro_hp > 0
            and self.con_hp > 0
        )

    def request_body(self, topic: str, choice: str, user_side: Side = "pro", phase: Phase = "full") -> dict:
        """Body for POST /debate/stream built from the projection"""
        return {
            "topic": topic,
            "round": self.round,
            "userChoice": choice,
            "currentState": {
                "proHP": self.pro_hp,
                "conHP": self.con_hp,
                "combo": self.combo,
                "totalScore": self.total_score,
            },
            "history": [{"role": log.side, "content": log.content} for log in self.logs],
            "userSide": user_side,
            "phase": phase,
        }

    def _append_to_last(self, side: Side, chunk: str) -> None:
        for log in reversed(self.logs):
            if log.side == side:
                prev = log.content
                if prev.startswith(THINKING_MARKER) and "\n" not in prev:
                    log.content = f"{prev}\n{chunk}"
                else:
                    log.content = prev + chunk
                return

    def _attach_judgement(self, side: Side, payload: dict) -> None:
        if self.logs and self.logs[-1].side == side:
            last = self.logs[-1]
            last.damage = payload.get("damage")
            last.is_critical = payload.get("isCritical")
            last.is_off_topic = payload.get("isOffTopic")
            last.commentary = payload.get("commentary")
        hp = payload.get("currentHP", {})
        self.pro_hp = hp.get("pro", self.pro_hp)
        self.con_hp = hp.get("con", self.con_hp)
        self.total_score = payload.get("totalScore", self.total_score)
        self.combo = payload.get("comboCount", self.combo)

    def fail(self, message: str) -> None:
        self.error = message
        self.is_processing = False

    def apply_buffered(self, body: dict) -> None:
        """Merge a POST /debate response ({kimi, deepseek?, winner?})"""
        turns = [("pro", body.get("kimi"))]
        if body.get("winner") != "pro":
            turns.append(("con", body.get("deepseek")))

        for side, turn in turns:
            if not turn:
                continue
            self.logs.append(DebateLogEntry(side=side, content=turn.get("content", "")))
            self._attach_judgement(side, turn)

        if body.get("winner") == "pro":
            self.status = "pro_win"
        elif body.get("deepseek"):
            self.round += 1
            self.status = body["deepseek"].get("battleStatus", self.status)
        self.is_processing = False

    async def apply(self, event: dict) -> bool:
        """Apply one event; returns False when consumption should stop"""
        kind = event.get("type", "")
        agent, _, suffix = kind.partition("_")

        if agent in EVENT_SIDES and suffix == "start":
            self.logs.append(DebateLogEntry(side=EVENT_SIDES[agent]))
        elif agent in EVENT_SIDES and suffix == "token":
            if event.get("content"):
                self.reveal.schedule(EVENT_SIDES[agent], event["content"])
        elif agent in EVENT_SIDES and suffix == "end":
            await self.reveal.drain(EVENT_SIDES[agent])
        elif agent == "judge" and suffix in EVENT_SIDES and event.get("payload"):
            side = EVENT_SIDES[suffix]
            payload = event["payload"]
            self._attach_judgement(side, payload)
            if side == "pro":
                if payload.get("battleStatus", "ongoing") != "ongoing":
                    self.status = "pro_win"
                    self.is_processing = False
                    return False
            else:
                self.round += 1
                self.status = payload.get("battleStatus", self.status)
        elif kind == "done":
            self.is_processing = False
        elif kind == "error":
            self.fail(event.get("error") or "流式请求出错")
        return True

    async def consume(self, events: AsyncIterable[dict]) -> None:
        """Apply a whole event stream, then wait for the reveal to finish"""
        self.is_processing = True
        self.error = None
        try:
            async for event in events:
                if not await self.apply(event):
                    break
            await self.reveal.drain()
        finally:
            await self.reveal.close()
            self.is_processing = False


async def stream_round(
    client,
    projection: BattleProjection,
    topic: str,
    choice: str,
    user_side: Side = "pro",
    phase: Phase = "full",
    url: str = "/debate/stream",
) -> None:
    """Run one streamed round against the API with an ``httpx.AsyncClient``"""
    if not projection.can_attack:
        return
    body = projection.request_body(topic, choice, user_side, phase)
    async with client.stream("POST", url, json=body) as response:
        if response.status_code != 200:
            await response.aread()
            projection.fail(_error_message(response))
            return
        await projection.consume(decode_sse(response.aiter_text()))


async def send_round(
    client,
    projection: BattleProjection,
    topic: str,
    choice: str,
    user_side: Side = "pro",
    url: str = "/debate",
) -> None:
    """Run one buffered round against the API and merge the whole result"""
    if not projection.can_attack:
        return
    body = projection.request_body(topic, choice, user_side)
    body.pop("phase")
    projection.is_processing = True
    projection.clear_error()
    response = await client.post(url, json=body)
    if response.status_code != 200:
        projection.fail(_error_message(response))
        return
    projection.apply_buffered(response.json())


def _error_message(response) -> str:
    try:
        message = response.json().get("error")
    except ValueError:
        message = None
    return message or "请求失败"
