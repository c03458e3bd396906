"""
Moodle SCORM track store client
─────────────────────────────────────────────────────────────────────────────
Reads SCORM tracking data through the Moodle web service REST API:

    GET {endpoint}/webservice/rest/server.php
        ?wstoken=...&wsfunction=...&moodlewsrestformat=json

Functions used:
  mod_scorm_get_scorm_scoes          SCOs of a SCORM module
  mod_scorm_get_scorm_attempt_count  attempts of a learner in a module
  mod_scorm_get_scorm_sco_tracks     CMI tracks of one attempt
  core_enrol_get_enrolled_users      learners of the course

Moodle reports failures as HTTP 200 with an "exception" payload; those are
raised as TrackStoreError. Transport errors are retried by the session
adapter and otherwise propagate as requests exceptions.

MockTrackStore implements the same methods from in-memory data.
"""

from __future__ import annotations

import os
import random
import logging
from typing import Optional, Dict, List, Any, Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .attempts import Attempt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
REST_PATH = "/webservice/rest/server.php"


class TrackStoreError(RuntimeError):
    """Moodle answered with an exception payload."""

    def __init__(self, wsfunction: str, errorcode: str, message: str):
        super().__init__(f"{wsfunction} failed ({errorcode}): {message}")
        self.wsfunction = wsfunction
        self.errorcode = errorcode


def _sort_scoes(scoes: Iterable[Dict]) -> List[Dict]:
    return sorted(scoes, key=lambda s: (int(s.get("sortorder") or 0), int(s.get("id") or 0)))


class MoodleScormClient:
    """
    Track store backed by a Moodle site with web services enabled.

    """

    def __init__(
        self,
        endpoint: str = "",
        token: str = "",
        course_id: Optional[int] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 3,
    ):
        self.endpoint = (endpoint or os.getenv("MOODLE_URL", "")).rstrip("/")
        self.token = token or os.getenv("MOODLE_TOKEN", "")
        if course_id is None and os.getenv("MOODLE_COURSE_ID"):
            course_id = int(os.getenv("MOODLE_COURSE_ID"))
        self.course_id = course_id
        self.timeout = timeout
        if not self.endpoint:
            raise ValueError("Moodle endpoint is not configured (MOODLE_URL)")

        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=1.0,
            status_forcelist=[429, 500, 502, 503, 504],
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({"Accept": "application/json"})

        # sco id -> scorm id, filled by get_scoes
        self._sco_scorm: Dict[int, int] = {}

    def _rest_url(self) -> str:
        if self.endpoint.endswith(REST_PATH):
            return self.endpoint
        return self.endpoint + REST_PATH

    def _call(self, wsfunction: str, **params) -> Any:
        query: Dict[str, Any] = {
            "wstoken": self.token,
            "wsfunction": wsfunction,
            "moodlewsrestformat": "json",
        }
        query.update(params)
        logger.info(f"Calling {wsfunction} with {params}")
        try:
            resp = self.session.get(self._rest_url(), params=query, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise
        body = resp.json()
        if isinstance(body, dict) and "exception" in body:
            logger.error(f"[ERROR] {wsfunction}: {body.get('errorcode')} {body.get('message')}")
            raise TrackStoreError(wsfunction, body.get("errorcode", ""), body.get("message", ""))
        if isinstance(body, dict):
            for warning in body.get("warnings") or []:
                logger.warning(f"{wsfunction} warning: {warning.get('message', warning)}")
        return body

    def get_scoes(self, scorm_id: int) -> List[Dict]:
        body = self._call("mod_scorm_get_scorm_scoes", scormid=scorm_id)
        scoes = _sort_scoes(body.get("scoes", []))
        for sco in scoes:
            self._sco_scorm[int(sco["id"])] = int(sco.get("scorm") or scorm_id)
        logger.info(f"SCORM {scorm_id}: {len(scoes)} scoes")
        return scoes

    def get_attempt_count(self, scorm_id: int, user_id: int) -> int:
        body = self._call("mod_scorm_get_scorm_attempt_count", scormid=scorm_id, userid=user_id)
        return int(body.get("attemptscount", 0))

    def get_sco_tracks(self, sco_id: int, user_id: int, attempt: int) -> Dict[str, Any]:
        body = self._call("mod_scorm_get_scorm_sco_tracks", scoid=sco_id, userid=user_id, attempt=attempt)
        tracks = (body.get("data") or {}).get("tracks") or []
        return {t["element"]: t.get("value") for t in tracks if "element" in t}

    def get_learner_ids(self, sco_id: int) -> List[int]:
        if self.course_id is None:
            raise ValueError("course_id is required to list learners (MOODLE_COURSE_ID)")
        users = self._call("core_enrol_get_enrolled_users", courseid=self.course_id)
        return sorted(int(u["id"]) for u in users if "id" in u)

    def get_attempts(self, sco_id: int, user_id: int, scorm_id: Optional[int] = None) -> List[Attempt]:
        scorm_id = scorm_id or self._sco_scorm.get(int(sco_id))
        if scorm_id is None:
            raise ValueError(f"Unknown SCORM module for sco {sco_id}, call get_scoes first")
        attempts: List[Attempt] = []
        for number in range(1, self.get_attempt_count(scorm_id, user_id) + 1):
            tracks = self.get_sco_tracks(sco_id, user_id, number)
            if not tracks:
                continue
            attempts.append(Attempt.from_tracks(user_id, number, tracks))
        return attempts

    def ping(self) -> bool:
        try:
            self._call("core_webservice_get_site_info")
            return True
        except Exception:
            return False


class MockTrackStore:
    """In-memory track store, used by tests and the demo data set."""

    def __init__(
        self,
        scoes: Optional[List[Dict]] = None,
        attempts: Optional[Dict[int, Dict[int, List[Attempt]]]] = None,
    ):
        self.scoes = list(scoes or [])
        # sco id -> user id -> attempts
        self.attempts = attempts or {}

    @classmethod
    def from_tracks(
        cls,
        scoes: List[Dict],
        tracks: Dict[int, Dict[int, List[Dict[str, Any]]]],
    ) -> "MockTrackStore":
        attempts = {
            sco_id: {
                user_id: [Attempt.from_tracks(user_id, i, t) for i, t in enumerate(user_tracks, start=1)]
                for user_id, user_tracks in by_user.items()
            }
            for sco_id, by_user in tracks.items()
        }
        return cls(scoes=scoes, attempts=attempts)

    @classmethod
    def demo(cls, learners: int = 25, seed: int = 7) -> "MockTrackStore":
        rng = random.Random(seed)
        scoes = [
            {"id": 1, "scorm": 1, "title": "Course package", "scormtype": "", "sortorder": 1},
            {"id": 2, "scorm": 1, "title": "Fractions quiz", "scormtype": "sco", "sortorder": 2},
        ]
        tracks: Dict[int, Dict[int, List[Dict[str, Any]]]] = {2: {}}
        for user_id in range(1, learners + 1):
            user_attempts = []
            for number in range(rng.randint(1, 3)):
                picks = sorted(rng.sample(["A", "B", "C", "D"], rng.randint(1, 3)))
                passed = rng.random() < 0.6
                user_attempts.append({
                    "cmi.core.lesson_status": rng.choice(["completed", "completed", "incomplete"]),
                    "cmi.core.score.raw": str(rng.randint(0, 100)),
                    "cmi.interactions.0.id": f"Scene1_Slide3_{number}_0",
                    "cmi.interactions.0.type": "choice",
                    "cmi.interactions.0.result": "correct" if passed else "wrong",
                    "cmi.interactions.1.id": "Scene1_Slide4",
                    "cmi.interactions.1.type": "choice",
                    "cmi.interactions.1.description": "Which fractions equal one half?",
                    "cmi.interactions.1.student_response": "[,]".join(picks),
                    "cmi.interactions.1.correct_responses.0.pattern": "A[,]C",
                    "cmi.interactions.2.id": "Scene1_Survey",
                    "cmi.interactions.2.type": "likert",
                    "cmi.interactions.2.student_response": str(rng.randint(1, 5)),
                    "cmi.interactions.2.result": "neutral",
                })
            tracks[2][user_id] = user_attempts
        return cls.from_tracks(scoes, tracks)

    def get_scoes(self, scorm_id: int) -> List[Dict]:
        return _sort_scoes(s for s in self.scoes if int(s.get("scorm", scorm_id)) == int(scorm_id))

    def get_learner_ids(self, sco_id: int) -> List[int]:
        return sorted(self.attempts.get(sco_id, {}).keys())

    def get_attempts(self, sco_id: int, user_id: int, scorm_id: Optional[int] = None) -> List[Attempt]:
        return list(self.attempts.get(sco_id, {}).get(user_id, []))

    def ping(self) -> bool:
        return True
