"""
Response schema catalogue and the prompt directives attached to each schema.
"""
from .schemas import ResponseSchema
from .registry import (
	TemplateRegistry,
	TemplateEntry,
	TemplateLookupError,
	normalize_format,
	get_schema,
	get_instructions,
)
from .difficulty import grade_band, quiz_difficulty, quiz_prompt_enhancements

__all__ = [
	'ResponseSchema', 'TemplateRegistry', 'TemplateEntry', 'TemplateLookupError', 'normalize_format',
	'get_schema', 'get_instructions', 'grade_band', 'quiz_difficulty', 'quiz_prompt_enhancements',
]
