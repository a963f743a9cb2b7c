"""
Resource generation: prompt assembly, the chat-completion client, response reconciliation
and the request pipeline tying them together.
"""
from .generation_client import GenerationClient, GenerationError, ErrorKind, ResourceGeneratorError, generate
from .prompt_assembler import AssembledPrompt, assemble_prompt
from .reconciler import reconcile, fit_count, locate_items_key
from .pipeline import (
	GenerationRequest,
	InputValidationError,
	validate_request,
	request_from_slots,
	generate_resource,
	run_generation,
	DEFAULT_COUNTS,
)

__all__ = [
	'GenerationClient', 'GenerationError', 'ErrorKind', 'ResourceGeneratorError', 'generate',
	'AssembledPrompt', 'assemble_prompt',
	'reconcile', 'fit_count', 'locate_items_key',
	'GenerationRequest', 'InputValidationError', 'validate_request', 'request_from_slots',
	'generate_resource', 'run_generation', 'DEFAULT_COUNTS',
]
