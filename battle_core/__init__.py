"""Battle Core - Turn-based LLM debate battle engine"""

from .types import (
    BattleState,
    DebateLogEntry,
    HistoryEntry,
    HPState,
    JudgeResult,
    StreamEvent,
)
from .config import Settings
from .errors import BadRequestError, BattleError, BattleFinishedError, ErrorCode, classify_error
from .judge import JudgeAdapter, JudgeVerdict
from .turns import TurnGenerator
from .orchestrator import BattleOrchestrator, BattleRound, RoundRequest
from .options import OptionSuggester
from .reveal import BattleProjection, RevealScheduler, decode_sse

__all__ = [
    "BattleState",
    "DebateLogEntry",
    "HistoryEntry",
    "HPState",
    "JudgeResult",
    "StreamEvent",
    "Settings",
    "BadRequestError",
    "BattleError",
    "BattleFinishedError",
    "ErrorCode",
    "classify_error",
    "JudgeAdapter",
    "JudgeVerdict",
    "TurnGenerator",
    "BattleOrchestrator",
    "BattleRound",
    "RoundRequest",
    "OptionSuggester",
    "BattleProjection",
    "RevealScheduler",
    "decode_sse",
]
