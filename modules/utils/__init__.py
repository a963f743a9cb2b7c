"""Utility subpackage for the resource service"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	set_request_context,
	get_request_context,
	log_transcript_analysis,
	log_generation,
	log_reconciliation,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'set_request_context',
	'get_request_context',
	'log_transcript_analysis',
	'log_generation',
	'log_reconciliation',
]
