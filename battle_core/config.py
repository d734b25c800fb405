"""Configuration and game constants for the debate battle"""

import os
from dataclasses import dataclass
from typing import Optional

# Agent names used in stream event types ("kimi_start", "judge_deepseek", ...)
AGENT_NAMES = {"pro": "kimi", "con": "deepseek"}

# HP
INITIAL_HP = 1000
LOW_HP_THRESHOLD = 200

# Damage
DAMAGE_MIN = 100
DAMAGE_MAX = 200
CRITICAL_MULTIPLIER = 2
OFF_TOPIC_MULTIPLIER = 0.5

# Critical probability = max(0, (avg - CRIT_THRESHOLD) * CRIT_SLOPE)
CRIT_THRESHOLD = 85
CRIT_SLOPE = 0.05

# Score delta = round(damage * SCORE_SCALE * mult + bonus)
SCORE_SCALE = 1000
SCORE_MULT_MIN = 0.3
SCORE_MULT_MAX = 2.0
SCORE_BONUS_MIN = 1
SCORE_BONUS_MAX = 1000

# Judge fallback verdict
FALLBACK_SCORE = 70
FALLBACK_COMMENTARY = "判定解析备用"

# Context windows
MAX_HISTORY = 6
MAX_OPTION_HISTORY = 2
SUMMARY_LENGTH = 60
OPTION_SNIPPET_LENGTH = 40
TRUNCATION_MARK = "…"
THINKING_MARKER = "【思考】"

# LLM settings
LLM_MODEL = "llama-3.3-70b-versatile"
LLM_MAX_TOKENS_TURN = 600
LLM_MAX_TOKENS_JUDGE = 150
LLM_MAX_TOKENS_OPTIONS = 100
LLM_TEMPERATURE_JUDGE = 0.7
LLM_TEMPERATURE_OPTIONS = 0.8

# Placeholder used when a side produced no visible text
EMPTY_TURN_PLACEHOLDER = {
    "pro": "（正方暂无发言）",
    "con": "（反方暂无发言）",
}

# Cosmetic sentence appended to a critical turn after judging
CRIT_BONUS_LINES = {
    "pro": [
        "更关键的是，这恰恰暴露了对方论证的缺口。",
        "因此，我方立场在此处更具解释力。",
    ],
    "con": [
        "这正好说明对方的结论缺乏稳固基础。",
        "归根结底，对方的前提并不成立。",
    ],
}

# Option suggester
PRESET_ROUNDS = 2
PRESET_PROBABILITY = 0.6
PRESET_OPTIONS = [
    ["质疑数据来源", "从伦理角度回应", "举反例"],
    ["反驳逻辑链", "强调实践效果", "引用权威观点"],
    ["分析成本收益", "指出前提错误", "类比其他案例"],
    ["强调长期影响", "质疑可行性", "澄清定义"],
    ["从历史视角反驳", "强调风险", "提出替代方案"],
    ["指出双重标准", "强调社会共识", "分析利益相关"],
]

# Client reveal pacing (milliseconds)
REVEAL_BASE_DELAY_MS = 30
REVEAL_MIN_DELAY_MS = 8
REVEAL_SPEED_MIN = 0.1
REVEAL_SPEED_MAX = 3.0


@dataclass
class Settings:
    """Process configuration, read once at startup"""
    api_key: Optional[str] = None
    model: str = LLM_MODEL

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=os.getenv("GROQ_API_KEY") or None,
            model=os.getenv("LLM_MODEL", LLM_MODEL),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)
