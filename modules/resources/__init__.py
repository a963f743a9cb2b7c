"""
Shared domain types for teacher resource requests and generated resources.
"""
from .models import (
	Subject,
	Theme,
	ResourceCategory,
	ResourceType,
	Difficulty,
	QuestionType,
	SlotRecord,
	TranscriptAnalysis,
	GeneratedResource,
)

__all__ = [
	'Subject', 'Theme', 'ResourceCategory', 'ResourceType', 'Difficulty', 'QuestionType',
	'SlotRecord', 'TranscriptAnalysis', 'GeneratedResource',
]
