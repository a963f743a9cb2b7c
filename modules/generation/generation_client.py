import os
import json
import time
from enum import Enum
from typing import Any, Dict, Optional, Union

import openai
from openai import OpenAI

from modules.utils import get_logger, log_llm_call

LOG = get_logger()


# Exceptions
class ResourceGeneratorError(Exception):
    pass


class ErrorKind(str, Enum):
    SERVICE_UNAVAILABLE = 'service_unavailable'
    EMPTY_RESPONSE = 'empty_response'
    MALFORMED_OUTPUT = 'malformed_output'


USER_MESSAGES = {
    'missing_credentials': 'The generation service is not configured. Please contact your administrator.',
    'rejected_credentials': 'The generation service rejected its credentials. Please contact your administrator.',
}
TRANSIENT_MESSAGE = 'Generation failed, please try again.'


class GenerationError(ResourceGeneratorError):
    """Typed failure returned (not raised) by the generation client.

    ``reason`` refines ``kind`` for service failures: missing_credentials,
    rejected_credentials, timeout, unreachable, rate_limited, upstream_error.
    ``raw`` keeps the model text when it could not be parsed.
    """

    def __init__(self, kind: ErrorKind, message: str, reason: Optional[str] = None, raw: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.reason = reason
        self.raw = raw
        self.status_code = status_code

    @property
    def is_configuration_problem(self) -> bool:
        return self.reason in ('missing_credentials', 'rejected_credentials')

    @property
    def user_message(self) -> str:
        return USER_MESSAGES.get(self.reason, TRANSIENT_MESSAGE)

    def to_dict(self) -> Dict[str, Any]:
        body = {'kind': self.kind.value, 'reason': self.reason, 'message': str(self)}
        if self.raw is not None:
            body['raw'] = self.raw
        return body


# Env
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
GENERATION_MAX_TOKENS = int(os.getenv('GENERATION_MAX_TOKENS', '4000'))
GENERATION_TEMPERATURE = float(os.getenv('GENERATION_TEMPERATURE', '0.7'))
OPENAI_TIMEOUT = float(os.getenv('OPENAI_TIMEOUT', '60'))

_UNSET = object()


class GenerationClient:
    """Single chat-completion call in JSON-object mode.

    Transport failures are not retried here; the SDK's own retries are disabled too.
    """
    _instance = None

    def __init__(self, api_key=_UNSET, client=None, model: str = None):
        self.api_key = os.getenv('OPENAI_API_KEY') if api_key is _UNSET else api_key
        self.model = model or OPENAI_MODEL
        self.timeout = OPENAI_TIMEOUT
        self.temperature = GENERATION_TEMPERATURE
        self.max_tokens = GENERATION_MAX_TOKENS
        self._client = client
        LOG.info('GenerationClient initialized', extra={'model': self.model})

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = GenerationClient()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    def _get_client(self):
        if self._client is None and self.api_key:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        # rough per-1k pricing; exact pricing varies by model
        if 'gpt-4o-mini' in self.model:
            return (prompt_tokens * 0.00015 + completion_tokens * 0.0006) / 1000.0
        if 'gpt-4' in self.model:
            return (prompt_tokens + completion_tokens) / 1000.0 * 0.03
        return (prompt_tokens + completion_tokens) / 1000.0 * 0.002

    def generate(self, system_prompt: str, user_prompt: str, request_id: str = None) -> Union[Dict[str, Any], GenerationError]:
        client = self._get_client()
        if client is None:
            LOG.error('generation_missing_credentials', extra={'request_id': request_id})
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, 'OPENAI_API_KEY not set', reason='missing_credentials')

        messages = [
            {'role': 'system', 'content': system_prompt},
            {'role': 'user', 'content': user_prompt},
        ]
        start = time.time()
        try:
            resp = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={'type': 'json_object'},
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            LOG.exception('generation_auth_error', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='rejected_credentials', status_code=e.status_code)
        except openai.APITimeoutError as e:
            LOG.exception('generation_timeout', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='timeout')
        except openai.APIConnectionError as e:
            LOG.exception('generation_unreachable', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='unreachable')
        except openai.RateLimitError as e:
            LOG.exception('generation_rate_limited', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='rate_limited', status_code=e.status_code)
        except openai.APIStatusError as e:
            LOG.exception('generation_api_error', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='upstream_error', status_code=e.status_code)
        except openai.OpenAIError as e:
            LOG.exception('generation_openai_error', exc_info=True)
            return GenerationError(ErrorKind.SERVICE_UNAVAILABLE, str(e), reason='upstream_error')
        duration = int((time.time() - start) * 1000)

        usage = getattr(resp, 'usage', None)
        prompt_tokens = getattr(usage, 'prompt_tokens', 0) or 0
        completion_tokens = getattr(usage, 'completion_tokens', 0) or 0
        log_llm_call(request_id=request_id, model=self.model, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens,
                     duration_ms=duration, cost=self._estimate_cost(prompt_tokens, completion_tokens))

        choices = getattr(resp, 'choices', None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            LOG.error('generation_empty_response', extra={'request_id': request_id})
            return GenerationError(ErrorKind.EMPTY_RESPONSE, 'No content generated')

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            LOG.error('generation_malformed_output', extra={'request_id': request_id, 'error': str(e)})
            return GenerationError(ErrorKind.MALFORMED_OUTPUT, f'Model returned invalid JSON: {e}', raw=content)
        if not isinstance(parsed, dict):
            LOG.error('generation_malformed_output', extra={'request_id': request_id, 'error': 'not an object'})
            return GenerationError(ErrorKind.MALFORMED_OUTPUT, 'Model returned JSON that is not an object', raw=content)
        return parsed


def generate(system_prompt: str, user_prompt: str, request_id: str = None) -> Union[Dict[str, Any], GenerationError]:
    return GenerationClient.get_instance().generate(system_prompt, user_prompt, request_id=request_id)
