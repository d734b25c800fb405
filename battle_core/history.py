"""History trimming and formatting shared by turn, judge and option prompts"""

import re

from .config import (
    MAX_HISTORY,
    OPTION_SNIPPET_LENGTH,
    SUMMARY_LENGTH,
    THINKING_MARKER,
    TRUNCATION_MARK,
)
from .types import HistoryEntry, Side

_ASIDE_RE = re.compile(r"\([^)]*\)")
_WHITESPACE_RE = re.compile(r"\s+")


def trim_history(history: list[HistoryEntry], limit: int = MAX_HISTORY) -> list[HistoryEntry]:
    """Keep only the most recent ``limit`` entries"""
    if len(history) <= limit:
        return list(history)
    return list(history[-limit:])


def clean_thinking(content: str) -> str:
    """Strip private thinking: marker lines and parenthesised asides"""
    lines = [line for line in content.split("\n") if THINKING_MARKER not in line]
    return _ASIDE_RE.sub("", "\n".join(lines)).strip()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARK


def summarize_content(content: str, limit: int = SUMMARY_LENGTH) -> str:
    """One-line summary of a turn, at most ``limit`` chars plus a marker"""
    cleaned = _WHITESPACE_RE.sub(" ", clean_thinking(content)).strip()
    return truncate(cleaned, limit)


def last_content_of(history: list[HistoryEntry], side: Side) -> str:
    for entry in reversed(history):
        if entry.role == side:
            return entry.content
    return ""


def _tagged_lines(history: list[HistoryEntry], own_side: Side) -> str:
    return "\n\n".join(
        f"{'【我方】' if h.role == own_side else '【对方】'} {clean_thinking(h.content)}"
        for h in history
    )


def format_history_for_pro(history: list[HistoryEntry], opponent_last_words: str) -> str:
    """User message for the pro (opening) turn"""
    if not history and not opponent_last_words:
        return "这是第一回合，请先发表正方观点。"
    text = _tagged_lines(history, "pro")
    if opponent_last_words:
        text += f"\n\n对方观点总结：{summarize_content(opponent_last_words)}\n请发表你的观点"
    else:
        text += "\n请发表你的观点"
    return text


def format_history_for_con(history: list[HistoryEntry], pro_last_words: str) -> str:
    """User message for the con (rebuttal) turn"""
    closing = f"对方观点总结：{summarize_content(pro_last_words)}\n请反击"
    if not history:
        return closing
    return _tagged_lines(history, "con") + "\n\n" + closing


def format_history_for_options(
    history: list[HistoryEntry],
    snippet_length: int = OPTION_SNIPPET_LENGTH,
) -> str:
    """Compact history for option suggestions, each entry cut to a snippet"""
    lines = []
    for h in history:
        text = _WHITESPACE_RE.sub(" ", h.content).strip()
        text = truncate(text, snippet_length)
        lines.append(f"{'【正方】' if h.role == 'pro' else '【反方】'} {text}")
    return "\n".join(lines)
