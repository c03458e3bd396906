"""
CMI path reconstruction
─────────────────────────────────────────────────────────────────────────────
SCORM stores hierarchical tracking data as flat "path: value" records:

    cmi.interactions.0.id:                      q1_1_0
    cmi.interactions.0.result:                  correct
    cmi.interactions.0.correct_responses.0.pattern: A[,]C
    cmi.interactions.1.result:                  false

The cmi prefix does not denote a real object, and depending on SCORM version
and authoring tool the separators after it may be dots or underscores.
Records of one attempt are not guaranteed to be in order.

This module rebuilds the "interactions" part of an attempt into one nested
dict per interaction ordinal.
"""

from __future__ import annotations

import re
import logging
from enum import Enum
from typing import Dict, List, Optional, Any

logger = logging.getLogger(__name__)

INTERACTION_PATH = re.compile(r"cmi[._]interactions[._]([0-9]+)(.*)")

# SCORM 1.2 calls the learner response "student_response"
DEFAULT_SUBSTITUTIONS = {
    "student_response": "learner_response",
}

RESPONSE_DELIMITER = "[,]"


class Token(str, Enum):
    """Result sentinels written by SCORM content."""

    CORRECT = "correct"
    FALSE = "false"
    NEUTRAL = "neutral"


def write_to_keychain(
    container: Dict,
    keychain: List[str],
    value: Any,
    operation: str = "write",
) -> None:
    """
    Place value at the nested location named by keychain, creating missing
    dicts along the way. With operation="append" the last key holds a list
    and value is appended to it.
    """
    if not keychain:
        return
    node = container
    for key in keychain[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    last = keychain[-1]
    if operation == "append":
        node.setdefault(last, []).append(value)
    else:
        node[last] = value


def extract_interactions(
    records: Dict[str, Any],
    substitutions: Optional[Dict[str, str]] = None,
) -> Dict[str, Dict]:
    """
    Build {interaction ordinal: interaction tree} for one attempt.

    Records outside cmi.interactions.N, and records whose remaining path
    addresses no field, are skipped.
    """
    if substitutions is None:
        substitutions = DEFAULT_SUBSTITUTIONS
    interactions: Dict[str, Dict] = {}
    for path, value in records.items():
        m = INTERACTION_PATH.match(path)
        if not m:
            continue
        index, rest = m.group(1), m.group(2)
        keychain = rest.split(".")
        # A lone segment is the separator residue, there is no field to write to
        if len(keychain) <= 1:
            logger.debug(f"Dropping record without field: {path}")
            continue
        keychain = [substitutions.get(key, key) for key in keychain[1:]]
        write_to_keychain(interactions.setdefault(index, {}), keychain, value)
    return interactions


class InteractionParser:
    """Utility helpers to read fields from a reconstructed interaction tree."""

    @staticmethod
    def interaction_id(interaction: Dict) -> Optional[str]:
        value = interaction.get("id")
        if value is None or isinstance(value, dict):
            return None
        return str(value)

    @staticmethod
    def description(interaction: Dict) -> Optional[str]:
        value = interaction.get("description")
        return str(value) if value is not None and not isinstance(value, dict) else None

    @staticmethod
    def interaction_type(interaction: Dict) -> Optional[str]:
        value = interaction.get("type")
        return str(value) if value is not None and not isinstance(value, dict) else None

    @staticmethod
    def result(interaction: Dict) -> Optional[str]:
        value = interaction.get("result")
        return str(value) if value is not None and not isinstance(value, dict) else None

    @staticmethod
    def learner_response(interaction: Dict, delimiter: str = RESPONSE_DELIMITER) -> Optional[List[str]]:
        value = interaction.get("learner_response")
        if value is None or isinstance(value, dict):
            return None
        return str(value).split(delimiter)

    @staticmethod
    def correct_pattern(interaction: Dict, delimiter: str = RESPONSE_DELIMITER) -> Optional[List[str]]:
        """First correct response pattern, by lowest ordinal."""
        responses = interaction.get("correct_responses")
        if isinstance(responses, list):
            entries = list(enumerate(responses))
        elif isinstance(responses, dict):
            entries = sorted(
                responses.items(),
                key=lambda kv: (0, int(kv[0])) if str(kv[0]).isdigit() else (1, str(kv[0])),
            )
        else:
            return None
        for _, entry in entries:
            if isinstance(entry, dict) and entry.get("pattern") is not None:
                return str(entry["pattern"]).split(delimiter)
        return None
