import os
import json
import re
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from modules.resources.models import (
    Difficulty,
    GeneratedResource,
    QuestionType,
    ResourceType,
    SlotRecord,
    Subject,
    Theme,
)
from modules.templates.registry import TemplateRegistry, normalize_format
from modules.voice.resource_classifier import normalize_resource_type
from modules.utils import get_logger, log_generation
from .generation_client import ErrorKind, GenerationClient, GenerationError, ResourceGeneratorError
from .prompt_assembler import assemble_prompt
from .reconciler import locate_items_key, reconcile

LOG = get_logger()

MAX_QUESTION_COUNT = int(os.getenv('MAX_QUESTION_COUNT', '50'))

DEFAULT_COUNTS = {
    ResourceType.WORKSHEET: 5,
    ResourceType.QUIZ: 10,
    ResourceType.EXIT_SLIP: 3,
}
COUNTED_TYPES = tuple(DEFAULT_COUNTS)

_QUESTION_TYPE_ALIASES = {'mcq': QuestionType.MULTIPLE_CHOICE, 'tf': QuestionType.TRUE_FALSE}


class InputValidationError(ResourceGeneratorError):
    """Request rejected before any network call; carries one entry per bad field."""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        super().__init__('; '.join(f"{e['field']}: {e['message']}" for e in errors))

    @property
    def user_message(self) -> str:
        return 'Invalid request: ' + ', '.join(e['field'] for e in self.errors)


class GenerationRequest(BaseModel):
    """Body of a generation call, accepting the camelCase names browsers send."""
    model_config = ConfigDict(populate_by_name=True)

    subject: Optional[str] = None
    grade_level: Optional[str] = Field(None, alias='gradeLevel')
    resource_type: Optional[str] = Field('worksheet', alias='resourceType')
    topic_area: Optional[str] = Field(None, alias='topicArea')
    question_count: Optional[Any] = Field(None, alias='questionCount')
    custom_instructions: Optional[str] = Field(None, alias='customInstructions')
    selected_question_types: Optional[List[str]] = Field(None, alias='selectedQuestionTypes')
    format: Optional[str] = None
    theme: Optional[str] = None
    difficulty: Optional[str] = None


def _err(field: str, message: str, suggested_fix: str = None) -> Dict[str, str]:
    return {'field': field, 'message': message, 'suggested_fix': suggested_fix or ''}


def _parse_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        raise ValueError
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    raise ValueError


def _parse_question_type(value: str) -> QuestionType:
    key = re.sub(r'[\s\-/]+', '_', str(value).strip().lower())
    if key in _QUESTION_TYPE_ALIASES:
        return _QUESTION_TYPE_ALIASES[key]
    return QuestionType(key)


def validate_request(req: GenerationRequest) -> Tuple[SlotRecord, ResourceType]:
    """Check a request and turn it into slots plus a resource type.

    Every problem is collected before raising, so callers see all bad fields at once.
    """
    errors = []
    slots = SlotRecord()

    try:
        resource_type = normalize_resource_type(req.resource_type or 'worksheet')
    except ValueError:
        resource_type = ResourceType.WORKSHEET
        errors.append(_err('resourceType', f'Unknown resource type: {req.resource_type}',
                           'Use one of: ' + ', '.join(t.value for t in ResourceType)))

    if not req.subject or not str(req.subject).strip():
        errors.append(_err('subject', 'Subject is required', 'Say or select a subject such as Math or Reading'))
    else:
        try:
            slots.subject = Subject(req.subject)
        except ValueError:
            errors.append(_err('subject', f'Unknown subject: {req.subject}',
                               'Use one of: ' + ', '.join(s.value for s in Subject)))

    if not req.grade_level or not req.grade_level.strip():
        errors.append(_err('gradeLevel', 'Grade level is required', 'Add a grade such as "3rd Grade"'))
    else:
        slots.grade = req.grade_level.strip()

    if not req.topic_area or not req.topic_area.strip():
        errors.append(_err('topicArea', 'Topic is required', 'Add a topic such as "fractions"'))
    else:
        slots.topic_area = req.topic_area.strip()

    if req.theme:
        try:
            slots.theme = Theme(req.theme)
        except ValueError:
            errors.append(_err('theme', f'Unknown theme: {req.theme}',
                               'Use one of: ' + ', '.join(t.value for t in Theme)))

    if req.difficulty:
        try:
            slots.difficulty = Difficulty(str(req.difficulty).strip().lower())
        except ValueError:
            errors.append(_err('difficulty', f'Unknown difficulty: {req.difficulty}', 'Use easy, medium or hard'))

    if resource_type in COUNTED_TYPES:
        minimum = 0 if resource_type == ResourceType.WORKSHEET else 1
        if req.question_count is None or req.question_count == '':
            slots.question_count = DEFAULT_COUNTS[resource_type]
        else:
            try:
                count = _parse_count(req.question_count)
                if count < minimum or count > MAX_QUESTION_COUNT:
                    raise ValueError
                slots.question_count = count
            except ValueError:
                errors.append(_err('questionCount', f'questionCount must be an integer between {minimum} and {MAX_QUESTION_COUNT}',
                                   f'Ask for {minimum}-{MAX_QUESTION_COUNT} questions'))

    if req.selected_question_types:
        try:
            slots.question_types = list(dict.fromkeys(_parse_question_type(t) for t in req.selected_question_types))
        except ValueError:
            errors.append(_err('selectedQuestionTypes', f'Invalid question types: {req.selected_question_types}',
                               'Use multiple_choice, true_false or short_answer'))
    elif resource_type == ResourceType.QUIZ:
        slots.question_types = list(QuestionType)

    if req.custom_instructions and req.custom_instructions.strip():
        slots.custom_instructions = req.custom_instructions.strip()
    slots.format = normalize_format(req.format)

    if errors:
        LOG.warning('generation_request_invalid', extra={'errors': errors})
        raise InputValidationError(errors)
    return slots, resource_type


def request_from_slots(slots: SlotRecord, resource_type: ResourceType) -> GenerationRequest:
    """Rebuild a generation request from transcript slots so it passes the same checks."""
    return GenerationRequest(
        subject=slots.subject.value if slots.subject else None,
        grade_level=slots.grade,
        resource_type=resource_type.value,
        topic_area=slots.topic_area,
        question_count=slots.question_count,
        custom_instructions=slots.custom_instructions,
        selected_question_types=[t.value for t in slots.question_types] if slots.question_types else None,
        format=slots.format,
        theme=slots.theme.value if slots.theme else None,
        difficulty=slots.difficulty.value if slots.difficulty else None,
    )


def _missing_fields(parsed: Dict[str, Any], schema, resource_type: ResourceType, content_only: bool,
                    requested: Optional[int] = None) -> List[str]:
    missing = [k for k in schema.required if k not in parsed]
    if schema.items_key and not content_only:
        key = locate_items_key(parsed, resource_type, schema.items_key)
        has_items = key is not None or isinstance(parsed.get(schema.items_key), dict)
        # an empty counted array cannot be padded up to the requested count
        if key is not None and not parsed[key] and requested:
            has_items = False
        if not has_items:
            missing.append(schema.items_key)
    return missing


def generate_resource(slots: SlotRecord, resource_type: ResourceType, request_id: str = None,
                      client: GenerationClient = None, registry: TemplateRegistry = None) -> Union[GeneratedResource, GenerationError]:
    """Assemble, generate and reconcile one resource.

    Generation failures come back as a ``GenerationError`` value.
    """
    registry = registry or TemplateRegistry.get_instance()
    client = client or GenerationClient.get_instance()
    start = time.time()

    schema = registry.get_schema(resource_type, slots.subject, slots.format)
    content_only = resource_type == ResourceType.WORKSHEET and slots.question_count == 0
    prompt = assemble_prompt(slots, resource_type, schema.format, registry=registry)
    LOG.info('generation_start', extra={'request_id': request_id, 'resource_type': resource_type.value,
                                        'format': schema.format, 'question_count': slots.question_count})

    parsed = client.generate(prompt.system_prompt, prompt.user_prompt, request_id=request_id)
    if isinstance(parsed, GenerationError):
        return parsed

    requested = slots.question_count if resource_type in COUNTED_TYPES else None
    missing = _missing_fields(parsed, schema, resource_type, content_only, requested)
    if missing:
        LOG.error('generation_missing_fields', extra={'request_id': request_id, 'missing': missing})
        return GenerationError(ErrorKind.MALFORMED_OUTPUT, 'Response is missing required fields: ' + ', '.join(missing),
                               raw=json.dumps(parsed))

    normalized = reconcile(parsed, requested, resource_type, format=schema.format,
                           items_key=schema.items_key, request_id=request_id)
    try:
        resource = GeneratedResource.model_validate(normalized)
    except ValidationError as e:
        LOG.exception('generation_resource_invalid', exc_info=True)
        return GenerationError(ErrorKind.MALFORMED_OUTPUT, f'Response does not match the resource shape: {e}',
                               raw=json.dumps(parsed))

    duration_ms = int((time.time() - start) * 1000)
    item_key = locate_items_key(normalized, resource_type, schema.items_key)
    log_generation(request_id, resource_type.value, slots.subject.value if slots.subject else None, schema.format,
                   len(normalized.get(item_key) or []) if item_key else 0, duration_ms)
    return resource


def run_generation(req: GenerationRequest, request_id: str = None, client: GenerationClient = None) -> Union[GeneratedResource, GenerationError]:
    """Validate then generate; raises ``InputValidationError`` before any network call."""
    slots, resource_type = validate_request(req)
    return generate_resource(slots, resource_type, request_id=request_id, client=client)
