"""
Settings for the heatmap report.
Defaults live in config/heatmap.yaml; connection values can come from the
environment.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Any

import yaml

from .moodle_client import MoodleScormClient, MockTrackStore

logger = logging.getLogger(__name__)

ROOT = Path(__file__).parent.parent
CONFIG_PATH = ROOT / "config" / "heatmap.yaml"

DEFAULTS: Dict[str, Any] = {
    "cmi": {
        "response_delimiter": "[,]",
        "substitutions": {"student_response": "learner_response"},
    },
    "attempts": {"completed_statuses": ["completed"]},
    "cache": {"ttl_seconds": 300},
    "moodle": {
        "endpoint": "",
        "token": "",
        "course_id": None,
        "timeout": 60,
        "max_retries": 3,
    },
    "logging": {"level": "INFO"},
}


def _merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> Dict:
    path = Path(path) if path else CONFIG_PATH
    environ = os.environ if environ is None else environ

    config = copy.deepcopy(DEFAULTS)
    if path.exists():
        with open(path, "r") as f:
            payload = yaml.safe_load(f) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"{path} must contain a mapping, got {type(payload).__name__}")
        config = _merge(config, payload)
    else:
        logger.debug(f"No config file at {path}, using defaults")

    moodle = config["moodle"]
    if environ.get("MOODLE_URL"):
        moodle["endpoint"] = environ["MOODLE_URL"]
    if environ.get("MOODLE_TOKEN"):
        moodle["token"] = environ["MOODLE_TOKEN"]
    if environ.get("MOODLE_COURSE_ID"):
        moodle["course_id"] = int(environ["MOODLE_COURSE_ID"])
    return config


def configure_logging(config: Dict) -> None:
    level = str(config.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))


def get_store(config: Dict, use_mock: bool = False):
    if use_mock:
        return MockTrackStore.demo()
    moodle = config["moodle"]
    if not moodle.get("endpoint"):
        raise ValueError("moodle.endpoint is not set (config file or MOODLE_URL)")
    return MoodleScormClient(
        endpoint=moodle["endpoint"],
        token=moodle.get("token", ""),
        course_id=moodle.get("course_id"),
        timeout=moodle.get("timeout", 60),
        max_retries=moodle.get("max_retries", 3),
    )
