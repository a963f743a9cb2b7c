import copy
from typing import Any, Dict, List, Optional

from modules.resources.models import ResourceType
from modules.utils import get_logger, log_reconciliation

LOG = get_logger()

ITEM_KEYS = {
    ResourceType.WORKSHEET: 'problems',
    ResourceType.QUIZ: 'questions',
    ResourceType.EXIT_SLIP: 'questions',
    ResourceType.RUBRIC: 'criteria',
    ResourceType.LESSON_PLAN: 'activities',
}

# first present field on an item receives the variation suffix
TEXT_FIELDS = ('question', 'problem', 'task', 'term', 'prompt')

# alternate top-level keys some responses use, mapped to canonical ones
KEY_ALIASES = {
    'gradeLevel': 'grade_level',
    'grade': 'grade_level',
    'topicArea': 'topic',
    'resource_type': 'resourceType',
    'exit_slip_topic': 'topic',
}


def locate_items_key(parsed: Dict[str, Any], resource_type: ResourceType, items_key: Optional[str] = None) -> Optional[str]:
    """Return the key of the array the request counts, or None if there is none."""
    preferred = items_key or ITEM_KEYS.get(resource_type)
    candidates = [preferred] if preferred else []
    if preferred in ('problems', 'questions'):
        candidates.append('questions' if preferred == 'problems' else 'problems')
    for key in candidates:
        if isinstance(parsed.get(key), list):
            return key
    return None


def _variation(item: Any, index: int, suffix: str) -> Any:
    if isinstance(item, str):
        return f'{item}{suffix}'
    if not isinstance(item, dict):
        return copy.deepcopy(item)
    new_item = copy.deepcopy(item)
    for field in TEXT_FIELDS:
        if isinstance(new_item.get(field), str) and new_item[field]:
            new_item[field] = f'{new_item[field]}{suffix}'
            return new_item
    new_item['question'] = f'Question {index + 1}'
    return new_item


def fit_count(items: List[Any], requested: int) -> List[Any]:
    """Trim to a prefix or pad by cycling, so the result has exactly ``requested`` items.

    Padded item i is derived from items[i % L] and tagged " (variation i // L)".
    """
    length = len(items)
    if length >= requested:
        return list(items[:requested])
    padded = list(items)
    for i in range(length, requested):
        padded.append(_variation(items[i % length], i, f' (variation {i // length})'))
    return padded


def _remap_science_content(parsed: Dict[str, Any]) -> Dict[str, Any]:
    science = parsed.pop('scienceContent', None)
    if not isinstance(science, dict):
        return parsed
    parsed['science_context'] = {
        'topic': parsed.get('topic') or '',
        'explanation': science.get('explanation') or '',
        'key_concepts': science.get('concepts') or science.get('key_concepts') or [],
        'key_terms': science.get('key_terms') or {},
        'applications': science.get('applications') or [],
        'problems': parsed.get('problems') or [],
    }
    return parsed


def _recount_points(parsed: Dict[str, Any], items_key: str):
    if 'total_points' not in parsed:
        return
    total = 0
    for item in parsed.get(items_key) or []:
        points = item.get('points') if isinstance(item, dict) else None
        try:
            total += int(points) if points is not None else 1
        except (TypeError, ValueError):
            total += 1
    parsed['total_points'] = total


def reconcile(parsed: Dict[str, Any], requested_count: Optional[int], resource_type: ResourceType,
              format: Optional[str] = None, items_key: Optional[str] = None, request_id: str = None) -> Dict[str, Any]:
    """Normalize a parsed model response into the canonical resource shape.

    Never raises: count mismatches are fixed locally and logged.
    """
    result = copy.deepcopy(parsed) if isinstance(parsed, dict) else {}

    key = locate_items_key(result, resource_type, items_key)
    if key and isinstance(requested_count, int) and not isinstance(requested_count, bool) and requested_count > 0:
        items = result[key]
        if len(items) != requested_count:
            if not items:
                log_reconciliation(request_id, key, requested_count, 0, 'empty')
            else:
                action = 'trimmed' if len(items) > requested_count else 'padded'
                log_reconciliation(request_id, key, requested_count, len(items), action)
                result[key] = fit_count(items, requested_count)
                _recount_points(result, key)

    for alias, canonical in KEY_ALIASES.items():
        if alias in result and canonical not in result:
            result[canonical] = result.pop(alias)
    result = _remap_science_content(result)

    result['resourceType'] = resource_type.value
    if format and not result.get('format'):
        result['format'] = format
    return result
