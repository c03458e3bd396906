"""
SCORM module data providers
─────────────────────────────────────────────────────────────────────────────
A SCORM module consists of one or more sharable content objects (SCOs).
Some SCO rows only carry package metadata; only rows with scormtype "sco"
hold learner data.

ScoDataProvider loads the best completed attempt of every learner of one SCO
and turns their interactions into classified questions. ScormDataProvider
does the same for every SCO of a module and merges the learner scores.
Both load lazily and keep their results for the lifetime of the instance.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Any

from .attempts import Attempt, select_best_attempt, COMPLETED_STATUSES
from .cache import DEFAULT_TTL, ReportCache, shared_cache
from .cmi import extract_interactions, DEFAULT_SUBSTITUTIONS, RESPONSE_DELIMITER
from .config import DEFAULTS
from .questions import QuestionAggregator, QuestionData, classify_questions

logger = logging.getLogger(__name__)

SCORMTYPE_SCO = "sco"


class ScoDataProvider:
    """Questions and scores of one SCO."""

    def __init__(
        self,
        store,
        sco_id: int,
        title: str = "",
        scorm_id: Optional[int] = None,
        delimiter: str = RESPONSE_DELIMITER,
        substitutions: Optional[Dict[str, str]] = None,
        completed_statuses=COMPLETED_STATUSES,
    ):
        self.store = store
        self.sco_id = sco_id
        self.title = title
        self.scorm_id = scorm_id
        self.delimiter = delimiter
        self.substitutions = DEFAULT_SUBSTITUTIONS if substitutions is None else substitutions
        self.completed_statuses = tuple(completed_statuses)
        self._attempts: Optional[Dict[int, Attempt]] = None
        self._interactions: Optional[List[Dict[str, Dict]]] = None
        self._questiondata: Optional[Dict[str, QuestionData]] = None

    @property
    def attempts(self) -> Dict[int, Attempt]:
        """Best completed attempt per learner; learners without one are left out."""
        if self._attempts is None:
            self._attempts = {}
            learner_ids = self.store.get_learner_ids(self.sco_id)
            for user_id in learner_ids:
                attempts = self.store.get_attempts(self.sco_id, user_id, scorm_id=self.scorm_id)
                best = select_best_attempt(attempts, self.completed_statuses)
                if best is not None:
                    self._attempts[user_id] = best
            logger.info(
                f"SCO {self.sco_id}: {len(self._attempts)} of {len(learner_ids)} learners have a completed attempt"
            )
        return self._attempts

    def get_user_scores(self) -> List[float]:
        return [a.score_raw for a in self.attempts.values() if a.score_raw is not None]

    def get_user_interactions(self) -> List[Dict[str, Dict]]:
        if self._interactions is None:
            self._interactions = [
                extract_interactions(attempt.records, self.substitutions)
                for attempt in self.attempts.values()
            ]
        return self._interactions

    def get_questiondata(self) -> Dict[str, QuestionData]:
        if self._questiondata is None:
            aggregator = QuestionAggregator(delimiter=self.delimiter)
            for interactions in self.get_user_interactions():
                aggregator.fold(interactions.values())
            if aggregator.skipped:
                logger.debug(f"SCO {self.sco_id}: skipped {aggregator.skipped} interactions without id")
            self._questiondata = classify_questions(aggregator.questions)
            logger.info(f"SCO {self.sco_id}: {len(self._questiondata)} questions")
        return self._questiondata


class ScormDataProvider:
    """Questions and scores of every SCO in a SCORM module."""

    def __init__(self, store, scorm_id: int, config: Optional[Dict] = None):
        config = config or DEFAULTS
        self.store = store
        self.scorm_id = scorm_id
        self.delimiter = config["cmi"]["response_delimiter"]
        self.substitutions = config["cmi"]["substitutions"]
        self.completed_statuses = config["attempts"]["completed_statuses"]
        self.scos: Dict[int, ScoDataProvider] = {}
        self.load_scos()

    def load_scos(self) -> None:
        for row in self.store.get_scoes(self.scorm_id):
            if row.get("scormtype") != SCORMTYPE_SCO:
                continue
            sco_id = row["id"]
            self.scos[sco_id] = ScoDataProvider(
                self.store,
                sco_id,
                title=row.get("title", ""),
                scorm_id=self.scorm_id,
                delimiter=self.delimiter,
                substitutions=self.substitutions,
                completed_statuses=self.completed_statuses,
            )
        logger.info(f"SCORM {self.scorm_id}: {len(self.scos)} content scos")

    def get_sco_questiondata(self) -> Dict[int, Dict[str, Any]]:
        return {
            sco.sco_id: {"title": sco.title, "questions": sco.get_questiondata()}
            for sco in self.scos.values()
        }

    def get_sco_userscores(self) -> List[float]:
        scores: List[float] = []
        for sco in self.scos.values():
            scores.extend(sco.get_user_scores())
        return scores

    def as_dict(self) -> Dict[str, Any]:
        return {
            "scorm_id": self.scorm_id,
            "scos": {
                sco_id: {
                    "title": data["title"],
                    "questions": {qid: q.as_dict() for qid, q in data["questions"].items()},
                }
                for sco_id, data in self.get_sco_questiondata().items()
            },
            "scores": self.get_sco_userscores(),
        }


def _store_identity(store) -> str:
    endpoint = getattr(store, "endpoint", None)
    if endpoint:
        return f"{endpoint}#course={getattr(store, 'course_id', None)}"
    # in-memory stores are only equal to themselves
    return f"{type(store).__name__}#{id(store)}"


def load_module_report(
    store,
    scorm_id: int,
    config: Optional[Dict] = None,
    cache: Optional[ReportCache] = None,
) -> Dict[str, Any]:
    """Module report as plain dicts, served from the cache while fresh.

    Without an explicit cache the process-wide one for the configured
    cache.ttl_seconds is used. Entries are keyed by store, module and the
    settings that shape the report.
    """
    config = config or DEFAULTS
    if cache is None:
        cache = shared_cache(config.get("cache", {}).get("ttl_seconds", DEFAULT_TTL))
    key = ReportCache.make_key(
        "module",
        scorm_id=scorm_id,
        store=_store_identity(store),
        cmi=config.get("cmi", {}),
        attempts=config.get("attempts", {}),
    )
    return cache.cached(key, lambda: ScormDataProvider(store, scorm_id, config).as_dict())
