import asyncio

import pytest

from modules.resources.models import ResourceCategory, ResourceType, Subject
from modules.voice import (
    QueueSpeechSource,
    SpeechSource,
    StaticSpeechSource,
    TranscriptEvent,
    TranscriptKind,
    analyze_speech,
    analyze_transcript,
)


async def _collect(source):
    return [analysis async for analysis in analyze_speech(source)]


def test_only_final_events_are_analyzed():
    source = StaticSpeechSource([
        TranscriptEvent(kind=TranscriptKind.PARTIAL, text='Make a'),
        TranscriptEvent(kind=TranscriptKind.PARTIAL, text='Make a quiz on'),
        TranscriptEvent(kind=TranscriptKind.FINAL, text='Make a quiz on fractions for 5th grade'),
    ])
    results = asyncio.run(_collect(source))
    assert len(results) == 1
    assert results[0].category == ResourceCategory.QUIZ
    assert results[0].slots.grade == '5th Grade'


def test_queue_source_ends_on_close():
    async def scenario():
        source = QueueSpeechSource()
        await source.put(TranscriptEvent(kind='final', text='exit ticket on addition for 2nd grade'))
        await source.put(TranscriptEvent(kind='final', text='a rubric for essays'))
        await source.close()
        return await _collect(source)

    results = asyncio.run(scenario())
    assert [r.resource_type for r in results] == [ResourceType.EXIT_SLIP, ResourceType.RUBRIC]


def test_analysis_fills_format():
    analysis = analyze_transcript('Create a 3rd grade math worksheet about fractions with step by step hints')
    assert analysis.slots.subject == Subject.MATH
    assert analysis.slots.format == 'guided'
    public = analysis.to_public()
    assert public['resourceType'] == 'worksheet'
    assert public['slots']['topicArea'] == 'fractions'


def test_empty_transcript_analysis():
    analysis = analyze_transcript('')
    assert analysis.category == ResourceCategory.WORKSHEET
    assert analysis.slots.format is None
    assert analysis.to_public()['slots'] == {}


def test_long_transcript_is_truncated(monkeypatch):
    from modules.voice import transcript_events
    monkeypatch.setattr(transcript_events, 'MAX_TRANSCRIPT_LENGTH', 20)
    analysis = analyze_transcript('x' * 100)
    assert len(analysis.transcript) == 20


def test_source_without_events_cannot_be_built():
    class Silent(SpeechSource):
        pass

    with pytest.raises(TypeError):
        Silent()
