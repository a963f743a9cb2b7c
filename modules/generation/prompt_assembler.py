from typing import List, Optional

from pydantic import BaseModel

from modules.resources.models import QuestionType, ResourceType, SlotRecord, Subject, Theme
from modules.templates.registry import TemplateRegistry

RESOURCE_LABELS = {
    ResourceType.WORKSHEET: 'worksheet',
    ResourceType.QUIZ: 'quiz',
    ResourceType.RUBRIC: 'rubric',
    ResourceType.LESSON_PLAN: 'lesson plan',
    ResourceType.EXIT_SLIP: 'exit slip',
}

THEME_MOTIFS = {
    Theme.HALLOWEEN: ('Halloween', 'spooky but age-appropriate elements'),
    Theme.WINTER: ('Winter', 'seasonal elements like snow, holidays, and winter activities'),
    Theme.SPRING: ('Spring', 'seasonal elements like flowers, growth, and renewal'),
    Theme.OCEAN: ('Ocean', 'sea life, beaches, and underwater exploration'),
    Theme.SPACE: ('Space', 'planets, stars, rockets, and astronauts'),
    Theme.ANIMALS: ('Animals', 'pets, wildlife, and animal habitats'),
    Theme.SPORTS: ('Sports', 'teams, games, and athletic events'),
}

DIFFICULTY_TEXT = {
    'easy': 'Keep the difficulty easy: short, single-step items with familiar vocabulary.',
    'medium': 'Keep the difficulty on grade level.',
    'hard': 'Make the items challenging: multi-step reasoning and extension thinking.',
}


class AssembledPrompt(BaseModel):
    system_prompt: str
    user_prompt: str


def _label(value) -> str:
    return getattr(value, 'value', value) or ''


def persona(subject: Optional[Subject]) -> str:
    who = f'{_label(subject)} teacher' if subject else 'teacher'
    return f'You are an expert {who} with years of experience creating engaging educational content.'


def theme_directive(theme: Optional[Theme], resource_label: str) -> Optional[str]:
    if theme is None or theme == Theme.GENERAL:
        return None
    name, motif = THEME_MOTIFS[theme]
    return (f'Create a {name}-themed {resource_label} that incorporates {motif}. Use {name.lower()}-themed word '
            f'problems, scenarios, and vocabulary where appropriate, but ensure the core educational content '
            f'remains clear and effective.')


def count_directive(resource_type: ResourceType, count: Optional[int], question_types: Optional[List[QuestionType]]) -> Optional[str]:
    if resource_type == ResourceType.WORKSHEET:
        if count is None:
            return None
        if count == 0:
            return 'Generate a content-only worksheet without any problems. Do not include a problems array.'
        return f'Generate exactly {count} problems.'
    if resource_type == ResourceType.QUIZ:
        types = ', '.join(_label(t) for t in question_types or list(QuestionType))
        n = f'exactly {count} ' if count else ''
        return f'Create a quiz with {n}questions using these types: {types}.'
    if resource_type == ResourceType.EXIT_SLIP:
        if count:
            return f'Create exactly {count} exit slip questions to assess student understanding.'
        return 'Create exit slip questions to assess student understanding.'
    if resource_type == ResourceType.RUBRIC:
        return 'Create a detailed rubric with clear criteria and performance levels.'
    return None


def assemble_prompt(slots: SlotRecord, resource_type: ResourceType, detected_format: Optional[str] = None,
                    registry: TemplateRegistry = None) -> AssembledPrompt:
    """Build the system and user prompts for one generation call.

    System prompt sections, in order: persona, resource and topic framing, theme,
    custom instructions, count directive, format directives, literal schema.
    A count of 0 takes the content-only branch, never "exactly 0".
    """
    registry = registry or TemplateRegistry.get_instance()
    label = RESOURCE_LABELS[resource_type]
    topic = slots.topic_area or 'the requested topic'
    grade = slots.grade or 'the target grade'
    count = slots.question_count
    content_only = resource_type == ResourceType.WORKSHEET and count == 0
    fmt = detected_format or slots.format
    schema = registry.get_schema(resource_type, slots.subject, fmt)

    parts = [
        persona(slots.subject),
        f'Create a {label} about {topic} that is appropriate for {grade} students.',
    ]
    themed = theme_directive(slots.theme, label)
    if themed:
        parts.append(themed)
    if slots.custom_instructions:
        parts.append(f'Additional instructions: {slots.custom_instructions.rstrip(".")}.')
    directive = count_directive(resource_type, count, slots.question_types)
    if directive:
        parts.append(directive)
    if slots.difficulty:
        parts.append(DIFFICULTY_TEXT[_label(slots.difficulty)])
    parts.append(registry.get_instructions(resource_type, slots.subject, fmt, slots))
    parts.append('Return the response in this exact JSON format: '
                 + schema.render(topic=slots.topic_area, grade=slots.grade, content_only=content_only))

    user = f'Generate a {label} about {topic} following the exact JSON format specified above.'
    if content_only:
        user += ' This is a content-only worksheet: do not include any problems.'
    elif count:
        item = 'problems' if resource_type == ResourceType.WORKSHEET else 'questions'
        user += f' You MUST generate EXACTLY {count} {item} - no more, no less. This is a strict requirement.'

    return AssembledPrompt(system_prompt='\n\n'.join(parts), user_prompt=user)
