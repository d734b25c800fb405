"""Tests for turn planning and generation."""

import random

import pytest

from battle_core.config import CRIT_BONUS_LINES, EMPTY_TURN_PLACEHOLDER
from battle_core.turns import (
    TurnContext,
    TurnGenerator,
    append_critical_bonus,
    counter_style,
    plan_turn,
)
from battle_core.types import HistoryEntry


class TestCounterStyle:
    """Tests for the fixed counter rotation."""

    @pytest.mark.parametrize("style,expected", [("A", "B"), ("B", "C"), ("C", "A")])
    def test_rotation(self, style, expected):
        assert counter_style(style) == expected


class TestPlanTurn:
    """Tests for plan_turn."""

    def test_legacy_choice_user_pro(self):
        pro = plan_turn("pro", "A", "pro")
        con = plan_turn("con", "A", "pro")
        assert (pro.style, pro.choice, pro.judge_label) == ("A", None, "A")
        assert (con.style, con.choice, con.judge_label) == ("B", None, "B")

    def test_legacy_choice_user_con(self):
        pro = plan_turn("pro", "C", "con")
        con = plan_turn("con", "C", "con")
        assert pro.style == "B"
        assert con.style == "C"

    def test_free_text_user_pro(self):
        pro = plan_turn("pro", "质疑数据来源", "pro")
        con = plan_turn("con", "质疑数据来源", "pro")
        assert pro.choice == "质疑数据来源"
        assert pro.judge_label == "质疑数据来源"
        assert con.style == "B"
        assert con.choice == "质疑数据来源"

    def test_free_text_kimi_only_uses_style_prompt(self):
        pro = plan_turn("pro", "举反例", "pro", phase="kimi_only")
        assert pro.choice is None
        assert pro.judge_label == "B"

    def test_free_text_user_con_pro_side_uses_style(self):
        pro = plan_turn("pro", "举反例", "con")
        assert pro.choice is None
        assert pro.style == "B"


def make_ctx(side="pro", choice="A", hp=1000, history=None, opponent=""):
    return TurnContext(
        topic="AI会取代人类吗",
        plan=plan_turn(side, choice, "pro"),
        hp=hp,
        round_number=2,
        history=history or [],
        opponent_last_words=opponent,
    )


class TestTurnGenerator:
    """Tests for TurnGenerator."""

    def test_messages_for_style_prompt(self, make_client):
        messages = TurnGenerator(make_client()).build_messages(make_ctx())
        assert messages[0]["role"] == "system"
        assert "辛辣讽刺" in messages[0]["content"]
        assert "AI会取代人类吗" in messages[0]["content"]
        assert messages[1]["content"] == "这是第一回合，请先发表正方观点。"

    def test_messages_for_choice_prompt(self, make_client):
        messages = TurnGenerator(make_client()).build_messages(make_ctx(choice="强调风险"))
        assert "强调风险" in messages[0]["content"]

    def test_low_hp_directive(self, make_client):
        messages = TurnGenerator(make_client()).build_messages(make_ctx(hp=150))
        assert "HP告急" in messages[0]["content"]
        messages = TurnGenerator(make_client()).build_messages(make_ctx(hp=200))
        assert "HP告急" not in messages[0]["content"]

    def test_con_messages_use_rebuttal_format(self, make_client):
        history = [HistoryEntry(role="pro", content="正方论点")]
        ctx = make_ctx(side="con", history=history, opponent="正方论点")
        messages = TurnGenerator(make_client()).build_messages(ctx)
        assert messages[1]["content"].endswith("对方观点总结：正方论点\n请反击")

    @pytest.mark.asyncio
    async def test_generate_trims(self, make_client):
        client = make_client(turns=["  有力的论证  "])
        assert await TurnGenerator(client).generate(make_ctx()) == "有力的论证"
        assert client.calls[0]["max_tokens"] == 600

    @pytest.mark.asyncio
    async def test_generate_empty_uses_placeholder(self, make_client):
        client = make_client(turns=["   \n"])
        assert await TurnGenerator(client).generate(make_ctx(side="con")) == EMPTY_TURN_PLACEHOLDER["con"]

    @pytest.mark.asyncio
    async def test_stream_forwards_fragments_in_order(self, make_client):
        client = make_client(streams=[["第一", "", "第二", "第三"]])
        pieces = [p async for p in TurnGenerator(client).stream(make_ctx())]
        assert pieces == ["第一", "第二", "第三"]

    @pytest.mark.asyncio
    async def test_stream_whitespace_only_adds_placeholder(self, make_client):
        client = make_client(streams=[[" ", "\n"]])
        pieces = [p async for p in TurnGenerator(client).stream(make_ctx())]
        assert "".join(pieces).strip() == EMPTY_TURN_PLACEHOLDER["pro"]


class TestCriticalBonus:
    """Tests for append_critical_bonus."""

    @pytest.mark.parametrize("side", ["pro", "con"])
    def test_appends_side_line(self, side):
        content, bonus = append_critical_bonus("论证。", side, random.Random(3))
        assert bonus in CRIT_BONUS_LINES[side]
        assert content == f"论证。 {bonus}"
