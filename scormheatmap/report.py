"""
Tabular summaries of classified SCORM questions for the rendering layer.
Indicator style functions return a dict with keys: value, trend, details,
chart_data.
"""

import logging
from typing import Dict, List, Any

import numpy as np
import pandas as pd

from .questions import QuestionData, DisplayType

logger = logging.getLogger(__name__)

QUESTION_COLUMNS = [
    "sco_id", "sco_title", "question_id", "description", "type", "displaytype",
    "total_answers", "correct_answers", "response_count", "success_rate", "mean_percentage",
]


def _question_row(sco_id: Any, title: str, question: QuestionData) -> Dict[str, Any]:
    success_rate = None
    if question.displaytype == DisplayType.BOOLEAN and question.total_answers:
        success_rate = question.correct_answers / question.total_answers
    mean_percentage = None
    if question.percentages:
        mean_percentage = float(np.mean(question.percentages))
    return {
        "sco_id": sco_id,
        "sco_title": title,
        "question_id": question.id,
        "description": question.description,
        "type": question.type,
        "displaytype": question.displaytype.value if question.displaytype else None,
        "total_answers": question.total_answers,
        "correct_answers": question.correct_answers,
        "response_count": len(question.learner_responses),
        "success_rate": success_rate,
        "mean_percentage": mean_percentage,
    }


def questions_frame(sco_questiondata: Dict[Any, Dict[str, Any]]) -> pd.DataFrame:
    """One row per (sco, question) from ScormDataProvider.get_sco_questiondata()."""
    rows = [
        _question_row(sco_id, data.get("title", ""), question)
        for sco_id, data in sco_questiondata.items()
        for question in data.get("questions", {}).values()
    ]
    if not rows:
        return pd.DataFrame(columns=QUESTION_COLUMNS)
    return pd.DataFrame(rows, columns=QUESTION_COLUMNS)


def hardest_questions(frame: pd.DataFrame, n: int = 10, min_answers: int = 3) -> pd.DataFrame:
    """Scored questions ranked by success measure, hardest first."""
    if frame.empty:
        return frame
    scored = frame[frame["total_answers"] >= min_answers].copy()
    success_rate = pd.to_numeric(scored["success_rate"], errors="coerce")
    scored["success"] = success_rate.fillna(pd.to_numeric(scored["mean_percentage"], errors="coerce"))
    scored = scored.dropna(subset=["success"])
    return scored.sort_values("success", kind="stable").head(n).reset_index(drop=True)


def score_distribution(scores: List[float], bins: int = 10, max_score: float = 100) -> Dict:
    edges = np.linspace(0, max_score, bins + 1)
    labels = [f"{edges[i]:.0f}-{edges[i + 1]:.0f}" for i in range(bins)]
    if scores:
        # scores above max_score land in the last bin
        hist, _ = np.histogram(np.clip(scores, 0, max_score), bins=edges)
        hist_list = [int(x) for x in hist]
    else:
        hist_list = [0] * bins
    return {
        "value": round(float(np.mean(scores)), 1) if scores else 0,
        "trend": None,
        "chart_data": {"x": labels, "y": hist_list},
        "details": f"{len(scores)} scored attempts",
    }
