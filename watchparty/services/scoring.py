"""
Scoring engine

Two strategies behind one interface:
- fixed: a correct answer is worth a flat FIXED_POINTS
- time_weighted: a correct answer is worth between BASE and BASE + SPEED
  points depending on how much of the question's time was left

Pure functions only; no I/O.
"""
import math
from enum import Enum
from typing import Optional, Union

from watchparty.config import settings


class ScoringMode(str, Enum):
    FIXED = "fixed"
    TIME_WEIGHTED = "time_weighted"


def clamp_time_left(time_left: Optional[float], duration: int) -> float:
    """Clamp a client-reported remaining time into [0, duration]"""
    if time_left is None or duration <= 0:
        return 0.0
    if math.isnan(time_left):
        return 0.0
    return max(0.0, min(float(time_left), float(duration)))


class FixedScoring:
    """Flat points per correct answer, timing ignored"""

    mode = ScoringMode.FIXED

    def __init__(self, points: int = 100):
        self.points = points

    def score(self, correct: bool, duration: int, time_left: Optional[float]) -> int:
        return self.points if correct else 0


class TimeWeightedScoring:
    """
    Speed-rewarding score

    score = floor(base + speed * time_left / duration) for a correct answer,
    0 otherwise. With the defaults an instant answer is worth 1000 and a
    last-second one 500.
    """

    mode = ScoringMode.TIME_WEIGHTED

    def __init__(self, base_points: int = 500, speed_points: int = 500):
        self.base_points = base_points
        self.speed_points = speed_points

    def score(self, correct: bool, duration: int, time_left: Optional[float]) -> int:
        if not correct:
            return 0
        if duration <= 0:
            return self.base_points

        time_factor = clamp_time_left(time_left, duration) / duration
        return math.floor(self.base_points + self.speed_points * time_factor)


def get_strategy(mode) -> Union[FixedScoring, TimeWeightedScoring]:
    """
    Resolve a scoring strategy from a mode name

    Raises:
        ValueError: unknown mode
    """
    mode = ScoringMode(mode)
    if mode is ScoringMode.FIXED:
        return FixedScoring(settings.FIXED_POINTS)
    return TimeWeightedScoring(
        settings.TIME_WEIGHTED_BASE_POINTS,
        settings.TIME_WEIGHTED_SPEED_POINTS
    )


def score_answer(mode, correct: bool, duration: int, time_left: Optional[float]) -> int:
    """Score a single answer under ``mode``"""
    return get_strategy(mode).score(correct, duration, time_left)
