"""
Learner attempts and best-attempt selection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Iterable, Any

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = ("completed",)

# SCORM 1.2 first, then SCORM 2004, matching Moodle's scorm_get_tracks
STATUS_ELEMENTS = ("cmi.core.lesson_status", "cmi.completion_status")
SCORE_ELEMENTS = ("cmi.core.score.raw", "cmi.score.raw")


def _to_score(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


@dataclass
class Attempt:
    user_id: int
    attempt: int = 1
    status: str = ""
    score_raw: Optional[float] = None
    records: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_tracks(cls, user_id: int, attempt: int, tracks: Dict[str, Any]) -> "Attempt":
        status = ""
        for element in STATUS_ELEMENTS:
            if tracks.get(element):
                status = str(tracks[element])
                break
        score = None
        for element in SCORE_ELEMENTS:
            score = _to_score(tracks.get(element))
            if score is not None:
                break
        return cls(user_id=user_id, attempt=attempt, status=status, score_raw=score, records=dict(tracks))


def select_best_attempt(
    attempts: Iterable[Attempt],
    completed_statuses: Iterable[str] = COMPLETED_STATUSES,
) -> Optional[Attempt]:
    """Highest scoring completed attempt; the first one wins a tie."""
    statuses = set(completed_statuses)
    best: Optional[Attempt] = None
    for attempt in attempts:
        if attempt is None or attempt.status not in statuses:
            continue
        if best is None:
            best = attempt
            continue
        if attempt.score_raw is not None and (best.score_raw is None or attempt.score_raw > best.score_raw):
            best = attempt
    return best


def select_best_attempts(
    attempts_by_user: Dict[int, List[Attempt]],
    completed_statuses: Iterable[str] = COMPLETED_STATUSES,
) -> Dict[int, Attempt]:
    selected: Dict[int, Attempt] = {}
    for user_id, attempts in attempts_by_user.items():
        best = select_best_attempt(attempts, completed_statuses)
        if best is not None:
            selected[user_id] = best
    logger.info(f"Selected {len(selected)} completed attempts out of {len(attempts_by_user)} learners")
    return selected
