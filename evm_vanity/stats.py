"""
Throughput and success-probability estimates for a running search.

Each attempt is an independent uniform sample, so the chance of at least
one hit after n attempts at difficulty d is 1 - exp(-n/d).
"""

import math
from dataclasses import dataclass

from evm_vanity.matcher import PatternSpec

PROBABILITY_CLAMP = 0.9999
KEYS_PER_SEC_PER_WORKER = 20_000  # conservative single-core estimate


@dataclass
class SearchSnapshot:
    """Live stats during generation."""
    total_checked: int = 0
    elapsed: float = 0.0
    rate: float = 0.0
    probability: float = 0.0


def compute_speed(total_attempts: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return 0.0
    return total_attempts / elapsed_seconds


def compute_probability(total_attempts: int, difficulty: int, clamp: float = PROBABILITY_CLAMP) -> float:
    """Probability that a match would have turned up by now, capped at clamp."""
    if total_attempts <= 0:
        return 0.0
    prob = -math.expm1(-total_attempts / difficulty)
    return min(prob, clamp)


def attempts_for_probability(difficulty: int, probability: float) -> int:
    """Attempts needed to reach the given success probability."""
    if not 0 <= probability < 1:
        raise ValueError("probability must be in [0, 1)")
    return math.ceil(-difficulty * math.log1p(-probability))


def snapshot(total_attempts: int, elapsed_seconds: float, difficulty: int) -> SearchSnapshot:
    return SearchSnapshot(
        total_checked=total_attempts,
        elapsed=elapsed_seconds,
        rate=compute_speed(total_attempts, elapsed_seconds),
        probability=compute_probability(total_attempts, difficulty),
    )


def estimate_difficulty(pattern: PatternSpec, keys_per_sec: float = KEYS_PER_SEC_PER_WORKER) -> dict:
    """Estimate expected attempts and time to find a match.

    Returns dict with: expected_attempts, attempts_for_50, attempts_for_90,
    estimated_seconds, difficulty_description
    """
    expected = pattern.difficulty
    secs = expected / keys_per_sec if keys_per_sec > 0 else None

    if expected < 100:
        desc = "Instant"
    elif expected < 100_000:
        desc = "Seconds"
    elif expected < 10_000_000:
        desc = "Minutes"
    elif expected < 1_000_000_000:
        desc = "Hours"
    elif expected < 100_000_000_000:
        desc = "Days"
    else:
        desc = "Weeks+ (consider a shorter pattern)"

    return {
        "expected_attempts": expected,
        "attempts_for_50": attempts_for_probability(expected, 0.5),
        "attempts_for_90": attempts_for_probability(expected, 0.9),
        "estimated_seconds": secs,
        "difficulty_description": desc,
    }
