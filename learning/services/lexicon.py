# learning/services/lexicon.py
from __future__ import annotations

import uuid
from typing import Callable, Iterable, List, Optional

from django.core.files.base import ContentFile

from ..models import AudioMedia, Distractor, Sentence, SentenceWord, Word


def tokenize(text: str) -> List[str]:
    """Split a sentence on whitespace into its word sequence."""
    return text.split()


def store_audio(data: bytes, prefix: str, created_files: List[str], mime_type: str = "audio/wav") -> AudioMedia:
    """Persist an audio blob through default storage and record its row.

    The stored file name is appended to ``created_files`` so a failed
    authoring call can remove what it wrote.
    """
    media = AudioMedia(mime_type=mime_type, file_size=len(data))
    media.file.save(f"{prefix}_{uuid.uuid4().hex}.wav", ContentFile(data), save=False)
    created_files.append(media.file.name)
    media.save()
    return media


def get_or_create_word(
    value: str,
    audio_factory: Optional[Callable[[str], AudioMedia]] = None,
) -> Word:
    """Reuse the Word with this value or create it.

    ``audio_factory`` is only called when the word does not exist yet, so
    existing words never get new audio.
    """
    word = Word.objects.filter(value=value).first()
    if word is not None:
        return word
    audio = audio_factory(value) if audio_factory is not None else None
    # get_or_create covers a concurrent insert of the same value (unique constraint).
    word, created = Word.objects.get_or_create(value=value, defaults={"audio": audio})
    if not created and audio is not None:
        audio.file.delete(save=False)
        audio.delete()
    return word


def assemble_sentence(
    text: str,
    audio: Optional[AudioMedia] = None,
    audio_factory: Optional[Callable[[str], AudioMedia]] = None,
) -> Sentence:
    """Create a Sentence with its words linked at positions 0..n-1."""
    sentence = Sentence.objects.create(text=text, audio=audio)
    links = [
        SentenceWord(sentence=sentence, word=get_or_create_word(token, audio_factory), position=i)
        for i, token in enumerate(tokenize(text))
    ]
    SentenceWord.objects.bulk_create(links)
    return sentence


def create_distractor(values: Iterable[str]) -> Optional[Distractor]:
    """Create a distractor set from decoy words; None when there are none."""
    cleaned = [v.strip() for v in values if v and v.strip()]
    if not cleaned:
        return None
    distractor = Distractor.objects.create()
    distractor.words.add(*[get_or_create_word(v) for v in cleaned])
    return distractor
