"""
Voice request understanding: slot extraction, resource classification and transcript streams.
"""
from .slot_extractor import extract_slots, detect_format, ordinal, grade_label
from .resource_classifier import classify_resource, to_generation_type, normalize_resource_type
from .transcript_events import (
	TranscriptKind,
	TranscriptEvent,
	SpeechSource,
	StaticSpeechSource,
	QueueSpeechSource,
	analyze_transcript,
	analyze_speech,
)

__all__ = [
	'extract_slots', 'detect_format', 'ordinal', 'grade_label',
	'classify_resource', 'to_generation_type', 'normalize_resource_type',
	'TranscriptKind', 'TranscriptEvent', 'SpeechSource', 'StaticSpeechSource', 'QueueSpeechSource',
	'analyze_transcript', 'analyze_speech',
]
