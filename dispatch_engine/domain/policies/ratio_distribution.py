"""RatioDistributionPolicy — exact percentage splits via a repeating sequence."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import reduce

PERCENTAGE_TOLERANCE = 0.01


@dataclass(frozen=True)
class TargetAgentSpec:
    agent_id: str
    percentage: float
    agent_name: str | None = None


def percentages_are_valid(percentages: list[float]) -> bool:
    return bool(percentages) and abs(sum(percentages) - 100) <= PERCENTAGE_TOLERANCE


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def build_assignment_sequence(percentages: list[float]) -> list[int]:
    """Build the ratio-reduced index sequence for the given percentages.

    1. Round every percentage to the nearest integer (halves round up).
    2. Divide all of them by their greatest common divisor.
    3. Concatenate ratio_i repetitions of each target index, in declaration
       order.

    70/30 → 7/3 → [0,0,0,0,0,0,0,1,1,1].
    33/33/34 → gcd 1 → [0]*33 + [1]*33 + [2]*34, length 100.
    Targets whose percentage rounds to zero never appear in the sequence.

    Raises:
        ValueError: if no percentage rounds to a positive integer.
    """
    rounded = [max(_round_half_up(p), 0) for p in percentages]
    divisor = reduce(math.gcd, rounded, 0)
    if divisor == 0:
        raise ValueError("At least one target percentage must be positive")

    sequence: list[int] = []
    for index, value in enumerate(rounded):
        sequence.extend([index] * (value // divisor))
    return sequence


def target_index_for(position: int, sequence: list[int]) -> int:
    """Target index for the *position*-th selected order (0-based)."""
    return sequence[position % len(sequence)]


def plan_distribution(order_ids: list[str], targets: list[TargetAgentSpec]) -> list[tuple[str, TargetAgentSpec]]:
    """Pair every order (in selection order) with its target agent."""
    sequence = build_assignment_sequence([t.percentage for t in targets])
    return [
        (order_id, targets[target_index_for(position, sequence)])
        for position, order_id in enumerate(order_ids)
    ]
