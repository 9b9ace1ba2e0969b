# learncheck/difficulty.py
"""
Adaptive difficulty.

This is the only place the score thresholds live; the generation endpoint and
the submission endpoint both go through `adapt`.
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

LEVELS = ("easy", "medium", "hard")

STEP_UP_THRESHOLD = 80
STEP_DOWN_THRESHOLD = 40


def adapt(current: str, previous_score: Optional[int], attempt_number: int) -> str:
    """
    Pick the difficulty for the next attempt.

    Score >= 80 moves one level up, score <= 40 one level down, anything in
    between keeps the current level. The first attempt (attempt_number 0), or a
    call without a previous score, never changes the level.
    """
    if attempt_number == 0 or previous_score is None:
        return current

    index = LEVELS.index(current)
    if previous_score >= STEP_UP_THRESHOLD and index < len(LEVELS) - 1:
        nxt = LEVELS[index + 1]
        logger.info("Increasing difficulty from %s to %s (score: %s%%)", current, nxt, previous_score)
        return nxt
    if previous_score <= STEP_DOWN_THRESHOLD and index > 0:
        nxt = LEVELS[index - 1]
        logger.info("Decreasing difficulty from %s to %s (score: %s%%)", current, nxt, previous_score)
        return nxt
    return current


def score_percentage(correct: int, total: int) -> int:
    """Rounded percentage of correct answers; 0 for an empty attempt."""
    if total <= 0:
        return 0
    return int(round(100.0 * correct / total))
