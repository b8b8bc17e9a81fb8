#!/usr/bin/env python

"""
Utility funcs
"""

from datetime import datetime
from decimal import Decimal


def format_points(points: Decimal, signed: bool = True) -> str:
    """Leaderboard points to one decimal, e.g. +45.0p"""
    sign = "+" if signed and points >= 0 else ""
    return f"{sign}{points:.1f}p"


def format_final_score(score: Decimal) -> str:
    """Table score with thousands separators, decimals only when present"""
    if score == score.to_integral_value():
        return f"{int(score):,}"
    return f"{score:,}"


def format_average_rank(average_rank: float, games_played: int) -> str:
    return f"{average_rank:.1f}" if games_played > 0 else "0.0"


def format_date(iso_date: str) -> str:
    try:
        return datetime.fromisoformat(iso_date).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return iso_date
