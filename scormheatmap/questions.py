"""
Question aggregation and correctness classification
─────────────────────────────────────────────────────────────────────────────
Interactions of every learner's selected attempt are folded into one
QuestionData per logical question. Once all interactions are folded, each
question is classified for display:

  default_unscored   no scoring information, free text responses
  numeric_unscored   no scoring information, every response is a number
  spectrum           correct pattern known, each response gets a percentage
  boolean            results are correct / incorrect, counters are the stat
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Iterable, Any

from .cmi import InteractionParser, Token, RESPONSE_DELIMITER

# Authoring tools such as Storyline append the attempt count and/or slide
# index to an otherwise stable id, e.g. "Scene1_QuestionDraw01_3_1".
# Reference: https://community.articulate.com/discussions/articulate-storyline/question-id-s-and-sequencing
ATTEMPT_SUFFIX = re.compile(r".*_\d+_\d+")

NUMERIC = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*")


class RefineType(str, Enum):
    UNSET = ""
    MANUAL_SCORED = "manual_scored"
    RESULT_SCORED = "result_scored"


class DisplayType(str, Enum):
    DEFAULT_UNSCORED = "default_unscored"
    NUMERIC_UNSCORED = "numeric_unscored"
    SPECTRUM = "spectrum"
    BOOLEAN = "boolean"


@dataclass
class QuestionData:
    id: str
    description: str = ""
    type: str = "unknown"
    correct_response: Optional[List[str]] = None
    refinetype: RefineType = RefineType.UNSET
    total_answers: int = 0
    correct_answers: int = 0
    displaytype: Optional[DisplayType] = None
    learner_responses: List[List[str]] = field(default_factory=list)
    result: List[str] = field(default_factory=list)
    percentages: Optional[List[float]] = None

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["refinetype"] = self.refinetype.value
        data["displaytype"] = self.displaytype.value if self.displaytype else None
        return data


def normalize_question_id(interaction_id: str) -> str:
    """Drop a trailing "_<digits>_<digits>" suffix so repeated attempts share one id."""
    if ATTEMPT_SUFFIX.fullmatch(interaction_id):
        return "_".join(interaction_id.split("_")[:-2])
    return interaction_id


def is_numeric(token: str) -> bool:
    return NUMERIC.fullmatch(token) is not None


class QuestionAggregator:
    """Folds interaction trees into QuestionData keyed by logical question id."""

    def __init__(self, delimiter: str = RESPONSE_DELIMITER):
        self.delimiter = delimiter
        self.questions: Dict[str, QuestionData] = {}
        self.skipped = 0

    def add(self, interaction: Dict) -> Optional[QuestionData]:
        raw_id = InteractionParser.interaction_id(interaction)
        if raw_id is None:
            self.skipped += 1
            return None
        qid = normalize_question_id(raw_id)
        description = InteractionParser.description(interaction)

        question = self.questions.get(qid)
        if question is None:
            question = QuestionData(
                id=qid,
                description=description or "",
                type=InteractionParser.interaction_type(interaction) or "unknown",
            )
            self.questions[qid] = question

        # Aborted attempts may leave out the description
        if question.description == "" and description:
            question.description = description

        learner_response = InteractionParser.learner_response(interaction, self.delimiter)
        if learner_response is not None:
            question.learner_responses.append(learner_response)

        correct_pattern = InteractionParser.correct_pattern(interaction, self.delimiter)
        if correct_pattern is not None and question.correct_response is None:
            question.correct_response = correct_pattern

        if learner_response is not None and correct_pattern is not None:
            if question.refinetype != RefineType.MANUAL_SCORED:
                question.refinetype = RefineType.MANUAL_SCORED

        question.total_answers += 1

        result = InteractionParser.result(interaction)
        if result is not None:
            if result == Token.CORRECT.value:
                question.correct_answers += 1
            if result != Token.NEUTRAL.value and question.refinetype == RefineType.UNSET:
                question.refinetype = RefineType.RESULT_SCORED
            question.result.append(result)

        return question

    def fold(self, interactions: Iterable[Dict]) -> Dict[str, QuestionData]:
        for interaction in interactions:
            self.add(interaction)
        return self.questions


def _is_sentinel(response: List[str], token: Token) -> bool:
    return len(response) == 1 and response[0] == token.value


def response_percentages(question: QuestionData) -> List[float]:
    """
    SCORM does not record every option of a multiple choice question, only
    what learners picked. The options are approximated by the union of all
    given responses and the correct pattern; each response then scores
    1 - errors / options, where errors counts wrongly picked and wrongly
    omitted options. The result is not clamped.
    """
    correct = set(question.correct_response or [])
    universe = set(correct)
    for response in question.learner_responses:
        if _is_sentinel(response, Token.CORRECT) or _is_sentinel(response, Token.FALSE):
            continue
        universe.update(response)

    percentages: List[float] = []
    for response in question.learner_responses:
        if _is_sentinel(response, Token.CORRECT):
            percentage = 1.0
        elif _is_sentinel(response, Token.FALSE):
            percentage = 0.0
        else:
            errors = len(set(response) ^ correct)
            percentage = 1 - errors / len(universe)
        percentages.append(percentage)
    return percentages


def classify_question(question: QuestionData) -> Optional[DisplayType]:
    if question.refinetype == RefineType.UNSET:
        # Feedback style questions are never rated
        if question.learner_responses:
            tokens = (token for response in question.learner_responses for token in response)
            if all(is_numeric(token) for token in tokens):
                question.displaytype = DisplayType.NUMERIC_UNSCORED
            else:
                question.displaytype = DisplayType.DEFAULT_UNSCORED
    elif (
        question.refinetype == RefineType.MANUAL_SCORED
        and question.learner_responses
        and question.correct_response
    ):
        question.percentages = response_percentages(question)
        question.displaytype = DisplayType.SPECTRUM
    elif question.refinetype == RefineType.RESULT_SCORED:
        question.displaytype = DisplayType.BOOLEAN
    return question.displaytype


def classify_questions(questions: Dict[str, QuestionData]) -> Dict[str, QuestionData]:
    for question in questions.values():
        classify_question(question)
    return questions
