import os
import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import AsyncIterator, Iterable, Optional

from pydantic import BaseModel

from modules.resources.models import TranscriptAnalysis
from modules.utils import get_logger
from .slot_extractor import extract_slots, detect_format
from .resource_classifier import classify_resource, to_generation_type

LOG = get_logger()

MAX_TRANSCRIPT_LENGTH = int(os.getenv('MAX_TRANSCRIPT_LENGTH', '5000'))


class TranscriptKind(str, Enum):
    PARTIAL = 'partial'
    FINAL = 'final'


class TranscriptEvent(BaseModel):
    kind: TranscriptKind
    text: str = ''


class SpeechSource(ABC):
    """Capability that yields transcript events from some speech recognizer.

    The analysis entry points take a source as an argument, so nothing in the
    pipeline depends on a particular recognizer's callback shape.
    """

    @abstractmethod
    def events(self) -> AsyncIterator[TranscriptEvent]:
        """Async iterator over events; ends when the utterance stream closes."""


class StaticSpeechSource(SpeechSource):
    """Replays a fixed list of events, mostly for tests and batch jobs."""

    def __init__(self, events: Iterable[TranscriptEvent]):
        self._events = list(events)

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        for event in self._events:
            yield event


class QueueSpeechSource(SpeechSource):
    """Message-passing source: producers ``put`` events, ``close`` ends the stream."""

    _CLOSED = object()

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def put(self, event: TranscriptEvent):
        await self._queue.put(event)

    async def close(self):
        await self._queue.put(self._CLOSED)

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item


def analyze_transcript(transcript: Optional[str]) -> TranscriptAnalysis:
    text = (transcript or '').strip()[:MAX_TRANSCRIPT_LENGTH]
    category = classify_resource(text)
    resource_type = to_generation_type(category)
    slots = extract_slots(text)
    if text:
        slots.fill('format', detect_format(text, resource_type, slots.subject))
    return TranscriptAnalysis(transcript=text, category=category, resource_type=resource_type, slots=slots)


async def analyze_speech(source: SpeechSource) -> AsyncIterator[TranscriptAnalysis]:
    """Analyze every final transcript the source produces.

    Partial events are interim recognizer output and are skipped.
    """
    async for event in source.events():
        if event.kind != TranscriptKind.FINAL:
            continue
        analysis = analyze_transcript(event.text)
        LOG.info('speech_final_analyzed', extra={'category': analysis.category.value, 'length': len(analysis.transcript)})
        yield analysis
