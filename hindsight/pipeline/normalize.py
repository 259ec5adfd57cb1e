import math

from hindsight.config import get_settings


def effective_duration(duration_secs: float) -> float:
    """Rate denominator: the duration floored to the configured minimum."""
    floor = get_settings().aggregation.min_duration_secs
    if duration_secs <= floor:
        return floor
    return duration_secs


def compute_dps(total_damage: int, duration_secs: float) -> float:
    return total_damage / effective_duration(duration_secs)


def compute_hps(total_healing: int, duration_secs: float) -> float:
    return total_healing / effective_duration(duration_secs)


def round_rate(rate: float) -> int:
    """Round half up; the builtin round() rounds half to even."""
    return math.floor(rate + 0.5)
