# learning/services/quests.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Prefetch

from ..exceptions import NotFound
from ..models import (
    AudioMedia,
    DictationQuest,
    Distractor,
    Level,
    MatchWordsQuest,
    Quest,
    SentenceWord,
    TranslateQuest,
)
from . import lexicon
from .tts import get_synthesizer

logger = logging.getLogger(__name__)


def _ordered_words():
    return SentenceWord.objects.select_related("word").order_by("position")


def _quest_queryset():
    return Quest.objects.select_related(
        "match_words",
        "dictation__correct_sentence",
        "dictation__distractor",
        "translate__correct_sentence",
        "translate__distractor",
    ).prefetch_related(
        Prefetch("dictation__correct_sentence__sentence_words", queryset=_ordered_words()),
        Prefetch("translate__correct_sentence__sentence_words", queryset=_ordered_words()),
        "dictation__distractor__words",
        "translate__distractor__words",
    )


def get_quest(quest_id: int) -> Quest:
    quest = _quest_queryset().filter(pk=quest_id).first()
    if quest is None:
        raise NotFound("quest")
    return quest


def get_level_quests(level_id: int) -> List[Quest]:
    if not Level.objects.filter(pk=level_id).exists():
        raise NotFound("level")
    return list(_quest_queryset().filter(level_id=level_id).order_by("id"))


def create_quest(data: Dict[str, Any]) -> Quest:
    """
    Author a quest of the variant named by ``data["type"]``.

    The level is checked before anything is written. All rows are created in
    one transaction; if synthesis or storage fails the transaction rolls back
    and audio files written by this call are removed before the error
    propagates.
    """
    level_id = data["level_id"]
    if not Level.objects.filter(pk=level_id).exists():
        raise NotFound("level")

    builders = {
        Quest.Type.MATCH_WORDS: _build_match_words,
        Quest.Type.DICTATION: _build_dictation,
        Quest.Type.TRANSLATE: _build_translate,
    }
    build = builders[Quest.Type(data["type"])]

    created_files: List[str] = []
    try:
        with transaction.atomic():
            quest = build(level_id, data, created_files)
    except Exception:
        logger.exception("Quest authoring failed for level %s; rolling back", level_id)
        for name in created_files:
            default_storage.delete(name)
        raise

    logger.info("Created %s quest %s on level %s", quest.type, quest.pk, level_id)
    return get_quest(quest.pk)


def _build_match_words(level_id: int, data: Dict[str, Any], created_files: List[str]) -> Quest:
    quest = Quest.objects.create(level_id=level_id, type=Quest.Type.MATCH_WORDS)
    MatchWordsQuest.objects.create(quest=quest, word=data["word"], translate=data["translate"])
    return quest


def _build_dictation(level_id: int, data: Dict[str, Any], created_files: List[str]) -> Quest:
    text = data["text"]
    wav = get_synthesizer().synthesize(text, voice=data["language"])
    audio = lexicon.store_audio(wav, "dictation", created_files)

    # Individual dictation words carry no audio.
    sentence = lexicon.assemble_sentence(text, audio=audio)
    distractor = lexicon.create_distractor(data.get("distractor_words") or [])

    quest = Quest.objects.create(level_id=level_id, type=Quest.Type.DICTATION)
    DictationQuest.objects.create(
        quest=quest, audio=audio, correct_sentence=sentence, distractor=distractor
    )
    return quest


def _build_translate(level_id: int, data: Dict[str, Any], created_files: List[str]) -> Quest:
    synthesizer = get_synthesizer()
    voice = data["target_language"]

    def word_audio(value: str) -> AudioMedia:
        return lexicon.store_audio(synthesizer.synthesize(value, voice=voice), "word", created_files)

    sentence = lexicon.assemble_sentence(data["correct_sentence"], audio_factory=word_audio)
    distractor = lexicon.create_distractor(data.get("distractor_words") or [])

    quest = Quest.objects.create(level_id=level_id, type=Quest.Type.TRANSLATE)
    TranslateQuest.objects.create(
        quest=quest,
        source_sentence=data["source_sentence"],
        correct_sentence=sentence,
        distractor=distractor,
    )
    return quest


def delete_quest(quest_id: int) -> None:
    """Delete a quest with its payload and distractor set; sentences and words stay."""
    quest = Quest.objects.select_related("match_words", "dictation", "translate").filter(pk=quest_id).first()
    if quest is None:
        raise NotFound("quest")

    distractor_id = getattr(quest.payload, "distractor_id", None)
    with transaction.atomic():
        quest.delete()
        if distractor_id is not None:
            Distractor.objects.filter(pk=distractor_id).delete()
    logger.info("Deleted quest %s", quest_id)
