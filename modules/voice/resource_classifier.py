import re
from typing import List, Optional, Pattern, Tuple, Union

from modules.resources.models import ResourceCategory, ResourceType

_FLAGS = re.IGNORECASE

# Evaluated top to bottom; the first category with any matching pattern wins.
# Specific artifacts (sub plans, rubrics, exit tickets) are checked before
# generic ones so "a quiz worksheet" or "a rubric for the lesson" land correctly.
CATEGORY_PATTERNS: List[Tuple[ResourceCategory, List[Pattern]]] = [
    (ResourceCategory.SUB_PLAN, [
        re.compile(r'\b(?:sub(?:stitute)?\s+plans?|emergency\s+plans?|backup\s+plans?|sub\s+activities)\b', _FLAGS),
    ]),
    (ResourceCategory.RUBRIC, [
        re.compile(r'\b(?:rubrics?|grading\s+guide|scoring\s+guide|assessment\s+criteria|evaluation\s+guide)\b', _FLAGS),
    ]),
    (ResourceCategory.EXIT_TICKET, [
        re.compile(r'\b(?:exit\s+(?:slips?|tickets?)|entrance\s+tickets?)\b', _FLAGS),
    ]),
    (ResourceCategory.BELL_RINGER, [
        re.compile(r'\b(?:bell[\s-]?ringers?|warm[\s-]?ups?|daily\s+starters?|opening\s+activity|do[\s-]now)\b', _FLAGS),
    ]),
    (ResourceCategory.CHOICE_BOARD, [
        re.compile(r'\b(?:choice\s+boards?|learning\s+menu|project\s+choices|activity\s+options|tic[\s-]?tac[\s-]?toe)\b', _FLAGS),
    ]),
    (ResourceCategory.QUIZ, [
        re.compile(r'\b(?:quiz(?:zes)?|tests?|exams?|assessments?|evaluation)\b', _FLAGS),
    ]),
    (ResourceCategory.LESSON_PLAN, [
        re.compile(r'\b(?:lesson\s+plans?|mini[\s-]?lessons?|unit\s+plans?|teaching\s+plans?|plan\s+(?:a|the)\s+lesson)\b', _FLAGS),
    ]),
    (ResourceCategory.WORKSHEET, [
        re.compile(r'\b(?:worksheets?|practice\s+(?:sheets?|problems?)|activity\s+sheets?|handouts?|exercises?)\b', _FLAGS),
    ]),
]

GENERATION_TYPES = {
    ResourceCategory.WORKSHEET: ResourceType.WORKSHEET,
    ResourceCategory.CHOICE_BOARD: ResourceType.WORKSHEET,
    ResourceCategory.QUIZ: ResourceType.QUIZ,
    ResourceCategory.RUBRIC: ResourceType.RUBRIC,
    ResourceCategory.LESSON_PLAN: ResourceType.LESSON_PLAN,
    ResourceCategory.SUB_PLAN: ResourceType.LESSON_PLAN,
    ResourceCategory.BELL_RINGER: ResourceType.EXIT_SLIP,
    ResourceCategory.EXIT_TICKET: ResourceType.EXIT_SLIP,
}

_NAME_ALIASES = {
    'exit_ticket': ResourceType.EXIT_SLIP,
    'bell_ringer': ResourceType.EXIT_SLIP,
    'choice_board': ResourceType.WORKSHEET,
    'sub_plan': ResourceType.LESSON_PLAN,
    'lesson': ResourceType.LESSON_PLAN,
    'test': ResourceType.QUIZ,
}


def classify_resource(transcript: Optional[str]) -> ResourceCategory:
    """Pick the resource category an utterance asks for.

    Total over any input: falls back to ``worksheet`` when nothing matches.
    """
    if not transcript or not isinstance(transcript, str):
        return ResourceCategory.WORKSHEET
    for category, patterns in CATEGORY_PATTERNS:
        if any(p.search(transcript) for p in patterns):
            return category
    return ResourceCategory.WORKSHEET


def to_generation_type(category: ResourceCategory) -> ResourceType:
    return GENERATION_TYPES[category]


def normalize_resource_type(value: Union[str, ResourceType, ResourceCategory]) -> ResourceType:
    if isinstance(value, ResourceType):
        return value
    if isinstance(value, ResourceCategory):
        return to_generation_type(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError('resource type must be a non-empty string')
    key = re.sub(r'[\s\-]+', '_', value.strip().lower())
    for member in ResourceType:
        if member.value == key:
            return member
    if key in _NAME_ALIASES:
        return _NAME_ALIASES[key]
    raise ValueError(f'Unknown resource type: {value}')
