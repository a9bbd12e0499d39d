# learning/services/answers.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Union

from ..exceptions import InvalidAnswerFormat
from ..models import Quest
from .quests import get_quest


@dataclass(frozen=True)
class AnswerResult:
    quest_id: int
    correct: bool
    correct_answer: Union[str, List[str]]


def _normalize(value: str) -> str:
    return value.strip().lower()


def canonical_answer(quest: Quest) -> Union[str, List[str]]:
    """The answer key: the translation, or the ordered words of the correct sentence."""
    payload = quest.payload
    if quest.type == Quest.Type.MATCH_WORDS:
        return payload.translate
    return [word.value for word in payload.correct_sentence.ordered_words()]


def submit_answer(quest: Quest, answer: Any) -> AnswerResult:
    """
    Compare a submitted answer with the quest's answer key. Read-only.

    match_words expects a string; dictation and translate expect a list of
    strings that must match the canonical words position by position.
    Comparison ignores case and surrounding whitespace. Distractors play no
    part in scoring.
    """
    if quest.type == Quest.Type.MATCH_WORDS:
        if not isinstance(answer, str):
            raise InvalidAnswerFormat("match_words answer must be a string.")
        expected = canonical_answer(quest)
        return AnswerResult(quest.pk, _normalize(answer) == _normalize(expected), expected)

    if not isinstance(answer, list) or not all(isinstance(w, str) for w in answer):
        raise InvalidAnswerFormat(f"{quest.type} answer must be a list of words.")
    expected = canonical_answer(quest)
    correct = len(answer) == len(expected) and all(
        _normalize(given) == _normalize(word) for given, word in zip(answer, expected)
    )
    return AnswerResult(quest.pk, correct, expected)


def check_answer(quest_id: int, answer: Any) -> AnswerResult:
    return submit_answer(get_quest(quest_id), answer)
