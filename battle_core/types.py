"""Data classes for the debate battle"""

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from .config import AGENT_NAMES, INITIAL_HP
from .errors import BattleFinishedError

Side = Literal["pro", "con"]
BattleStatus = Literal["ongoing", "pro_win", "con_win"]
AttackType = Literal["A", "B", "C"]
Phase = Literal["full", "kimi_only", "deepseek_only"]

ATTACK_TYPES = ("A", "B", "C")


def opponent_of(side: Side) -> Side:
    return "con" if side == "pro" else "pro"


@dataclass
class HPState:
    """HP of both sides"""
    pro: int
    con: int

    def to_dict(self) -> dict:
        return {"pro": self.pro, "con": self.con}


@dataclass
class HistoryEntry:
    """One resolved turn, as fed back into later turn context"""
    role: Side
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class JudgeResult:
    """Outcome of one judged turn"""
    damage: int
    is_critical: bool
    is_off_topic: bool
    logic_score: float
    rhetoric_score: float
    counter_score: float
    current_hp: HPState
    total_score: int
    combo_count: int
    battle_status: BattleStatus
    commentary: str

    def to_dict(self) -> dict:
        return {
            "damage": self.damage,
            "isCritical": self.is_critical,
            "isOffTopic": self.is_off_topic,
            "logicScore": self.logic_score,
            "rhetoricScore": self.rhetoric_score,
            "counterScore": self.counter_score,
            "currentHP": self.current_hp.to_dict(),
            "totalScore": self.total_score,
            "comboCount": self.combo_count,
            "battleStatus": self.battle_status,
            "commentary": self.commentary,
        }


@dataclass
class BattleState:
    """Canonical state of one battle

    Changed only through apply() and advance_round().
    """
    pro_hp: int = INITIAL_HP
    con_hp: int = INITIAL_HP
    total_score: int = 0
    combo: int = 0
    round: int = 1
    status: BattleStatus = "ongoing"

    @property
    def is_over(self) -> bool:
        return self.status != "ongoing"

    def hp(self, side: Side) -> int:
        return self.pro_hp if side == "pro" else self.con_hp

    def snapshot(self) -> HPState:
        return HPState(pro=self.pro_hp, con=self.con_hp)

    def apply(self, result: JudgeResult) -> None:
        """Merge a judged turn into the state"""
        if self.is_over:
            raise BattleFinishedError()
        self.pro_hp = result.current_hp.pro
        self.con_hp = result.current_hp.con
        self.total_score = max(self.total_score, result.total_score)
        self.combo = result.combo_count
        self.status = result.battle_status

    def advance_round(self) -> None:
        self.round += 1

    def to_dict(self) -> dict:
        return {
            "proHP": self.pro_hp,
            "conHP": self.con_hp,
            "totalScore": self.total_score,
            "combo": self.combo,
            "round": self.round,
            "status": self.status,
        }


@dataclass
class DebateLogEntry:
    """Display record of one turn

    Content grows while streaming; judgement fields stay None until judged.
    """
    side: Side
    content: str = ""
    damage: Optional[int] = None
    is_critical: Optional[bool] = None
    is_off_topic: Optional[bool] = None
    commentary: Optional[str] = None

    @property
    def judged(self) -> bool:
        return self.damage is not None

    def append(self, chunk: str) -> None:
        self.content += chunk

    def finalize(self, result: JudgeResult, content: str) -> None:
        self.content = content
        self.damage = result.damage
        self.is_critical = result.is_critical
        self.is_off_topic = result.is_off_topic
        self.commentary = result.commentary

    def to_dict(self) -> dict:
        data = {
            "side": self.side,
            "content": self.content,
            "damage": self.damage,
            "isCritical": self.is_critical,
            "isOffTopic": self.is_off_topic,
            "commentary": self.commentary,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class StreamEvent:
    """One wire-level event of a battle round"""
    type: str
    content: Optional[str] = None
    payload: Optional[JudgeResult] = None
    winner: Optional[Side] = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def start(cls, side: Side) -> "StreamEvent":
        return cls(type=f"{AGENT_NAMES[side]}_start")

    @classmethod
    def token(cls, side: Side, content: str) -> "StreamEvent":
        return cls(type=f"{AGENT_NAMES[side]}_token", content=content)

    @classmethod
    def end(cls, side: Side) -> "StreamEvent":
        return cls(type=f"{AGENT_NAMES[side]}_end")

    @classmethod
    def judged(cls, side: Side, result: JudgeResult, content: str) -> "StreamEvent":
        return cls(type=f"judge_{AGENT_NAMES[side]}", payload=result, content=content)

    @classmethod
    def done(cls, winner: Optional[Side] = None) -> "StreamEvent":
        return cls(type="done", winner=winner)

    @classmethod
    def failure(cls, message: str, code: str) -> "StreamEvent":
        return cls(type="error", error=message, code=code)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.content is not None:
            data["content"] = self.content
        if self.payload is not None:
            data["payload"] = self.payload.to_dict()
        if self.winner is not None:
            data["winner"] = self.winner
        if self.error is not None:
            data["error"] = self.error
        if self.code is not None:
            data["code"] = self.code
        return data

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"
