"""
Level and XP rules — pure functions, no DB access.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Tier:
    xp: int
    level: int
    title: str


XP_REWARDS = {
    "correct_answer": 25,
    "session_complete": 50,
}

LEVEL_THRESHOLDS: list[Tier] = [
    Tier(0,     1,  "Apprentice"),
    Tier(500,   2,  "Wire Puller"),
    Tier(1000,  3,  "Circuit Rookie"),
    Tier(2000,  4,  "Voltage Learner"),
    Tier(3500,  5,  "Current Carrier"),
    Tier(5500,  6,  "Panel Pro"),
    Tier(8000,  7,  "Load Calculator"),
    Tier(11000, 8,  "Code Scholar"),
    Tier(15000, 9,  "Master Candidate"),
    Tier(20000, 10, "Master Electrician"),
]

MAX_LEVEL = LEVEL_THRESHOLDS[-1].level

TIER_BY_LEVEL: dict[int, Tier] = {t.level: t for t in LEVEL_THRESHOLDS}


def level_from_xp(xp: int) -> int:
    """Highest tier whose threshold is <= xp. Negative XP counts as 0."""
    for tier in reversed(LEVEL_THRESHOLDS):
        if xp >= tier.xp:
            return tier.level
    return 1


def title_for_level(level: int) -> str:
    tier = TIER_BY_LEVEL.get(level)
    return tier.title if tier else "Apprentice"


def xp_for_level(level: int) -> int:
    """Minimum XP needed to reach this level (0 for unknown levels)."""
    tier = TIER_BY_LEVEL.get(level)
    return tier.xp if tier else 0


def xp_for_next_level(level: int) -> int:
    tier = TIER_BY_LEVEL.get(level + 1)
    return tier.xp if tier else LEVEL_THRESHOLDS[-1].xp


def xp_progress(xp: int, level: int) -> dict:
    """
    Progress inside the current level, for the XP bar.
    At max level the bar is always full.
    """
    if level >= MAX_LEVEL:
        return {"current": xp, "needed": xp, "percentage": 100}

    current = xp - xp_for_level(level)
    needed = xp_for_next_level(level) - xp_for_level(level)
    percentage = round(current / needed * 100) if needed > 0 else 100
    return {
        "current": current,
        "needed": needed,
        "percentage": max(0, min(100, percentage)),
    }


def check_level_up(previous_xp: int, new_xp: int) -> dict | None:
    """
    Returns {"newLevel", "newTitle"} when new_xp lands in a higher tier than
    previous_xp, else None. Crossing several tiers reports only the final one.
    """
    previous_level = level_from_xp(previous_xp)
    new_level = level_from_xp(new_xp)
    if new_level > previous_level:
        return {"newLevel": new_level, "newTitle": title_for_level(new_level)}
    return None


def calculate_quiz_xp(correct_answers: int) -> dict:
    answer_xp = correct_answers * XP_REWARDS["correct_answer"]
    bonus_xp = XP_REWARDS["session_complete"]
    return {"answerXP": answer_xp, "bonusXP": bonus_xp, "totalXP": answer_xp + bonus_xp}
