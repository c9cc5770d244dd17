"""Shared utility functions for the runclub package."""

from __future__ import annotations


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a calculator, not banker's rounding (2.5 -> 3, -2.5 -> -2).

    Matches JavaScript's ``Math.round`` for ``ndigits=0``, which is what the
    club's published temperatures and percentages have always used.
    """
    factor = 10**ndigits
    return float(int((value * factor + 0.5) // 1)) / factor
