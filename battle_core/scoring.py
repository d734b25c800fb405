"""Scoring model: damage, critical chance, score and HP arithmetic

All randomness comes from the ``rng`` argument so a seeded
``random.Random`` replays a battle exactly.
"""

import math
import random

from .config import (
    CRIT_SLOPE,
    CRIT_THRESHOLD,
    CRITICAL_MULTIPLIER,
    DAMAGE_MAX,
    DAMAGE_MIN,
    OFF_TOPIC_MULTIPLIER,
    SCORE_BONUS_MAX,
    SCORE_BONUS_MIN,
    SCORE_MULT_MAX,
    SCORE_MULT_MIN,
    SCORE_SCALE,
)
from .types import BattleStatus, HPState, Side, opponent_of


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3, not banker's 2)"""
    return int(math.floor(value + 0.5))


def compute_damage(is_critical: bool, is_off_topic: bool, rng: random.Random) -> int:
    """Draw base damage in [DAMAGE_MIN, DAMAGE_MAX] and apply modifiers

    Critical doubles first, then off-topic halves (rounded), so a turn that
    is both lands at the base value.
    """
    damage = rng.randint(DAMAGE_MIN, DAMAGE_MAX)
    if is_critical:
        damage *= CRITICAL_MULTIPLIER
    if is_off_topic:
        damage = round_half_up(damage * OFF_TOPIC_MULTIPLIER)
    return damage


def compute_score_delta(damage: int, rng: random.Random) -> int:
    """Score gained for a turn; always at least 1"""
    mult = rng.uniform(SCORE_MULT_MIN, SCORE_MULT_MAX)
    bonus = SCORE_BONUS_MIN + rng.random() * (SCORE_BONUS_MAX - SCORE_BONUS_MIN)
    return max(1, round_half_up(damage * SCORE_SCALE * mult + bonus))


def critical_probability(logic_score: float, rhetoric_score: float, counter_score: float) -> float:
    avg = (logic_score + rhetoric_score + counter_score) / 3
    return max(0.0, (avg - CRIT_THRESHOLD) * CRIT_SLOPE)


def roll_critical(
    logic_score: float,
    rhetoric_score: float,
    counter_score: float,
    rng: random.Random,
) -> bool:
    return rng.random() < critical_probability(logic_score, rhetoric_score, counter_score)


def apply_damage(attacker: Side, hp: HPState, damage: int) -> HPState:
    """Subtract damage from the defending side only, floored at 0"""
    if attacker == "pro":
        return HPState(pro=hp.pro, con=max(0, hp.con - damage))
    return HPState(pro=max(0, hp.pro - damage), con=hp.con)


def status_after(attacker: Side, hp: HPState) -> BattleStatus:
    """Win for the attacker once the defender is at 0 HP"""
    defender = opponent_of(attacker)
    defender_hp = hp.con if defender == "con" else hp.pro
    if defender_hp <= 0:
        return "pro_win" if attacker == "pro" else "con_win"
    return "ongoing"
