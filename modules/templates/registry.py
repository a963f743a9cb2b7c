import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from modules.resources.models import ResourceType, SlotRecord, Subject
from . import schemas
from .difficulty import quiz_prompt_enhancements
from .schemas import ResponseSchema

TemplateKey = Tuple[ResourceType, Optional[Subject], str]

# spoken or legacy format names mapped onto catalogue names
FORMAT_ALIASES = {
    'analysis_focus': 'observation_analysis',
    'observation': 'observation_analysis',
    'lab': 'lab_experiment',
    'experiment': 'lab_experiment',
    'vocabulary': 'vocabulary_context',
    'literary': 'literary_analysis',
    'four_point': '4_point',
    'three_point': '3_point',
    'mini': 'mini_lesson',
    'full': 'full_lesson',
    'reflection': 'reflection_prompt',
    'skill': 'skill_assessment',
}

RUBRIC_LEVELS = {
    '4_point': 'Excellent (4), Good (3), Satisfactory (2), Needs Improvement (1)',
    '3_point': 'Exceeds Expectations (3), Meets Expectations (2), Below Expectations (1)',
    'checklist': 'Yes (1), No (0)',
}


class TemplateEntry(BaseModel):
    """A response schema plus the natural-language directives that go with it.

    Instruction text may use {topic}, {grade} and {count} placeholders.
    """
    model_config = ConfigDict(frozen=True)

    schema_: ResponseSchema
    instructions: str
    content_only_instructions: Optional[str] = None


class TemplateLookupError(KeyError):
    pass


def normalize_format(fmt: Optional[str]) -> Optional[str]:
    if fmt is None:
        return None
    key = re.sub(r'[\s\-]+', '_', str(fmt).strip().lower())
    if not key or key == 'worksheet':
        return None
    return FORMAT_ALIASES.get(key, key)


def _entry(rt, subject, fmt, shape, items_key, instructions, content_only=None, required=()):
    schema = ResponseSchema(resource_type=rt, subject=subject, format=fmt, shape=shape,
                            items_key=items_key, required=tuple(required))
    return TemplateEntry(schema_=schema, instructions=instructions, content_only_instructions=content_only)


def _catalogue() -> List[TemplateEntry]:
    W, Q, R, L, E = (ResourceType.WORKSHEET, ResourceType.QUIZ, ResourceType.RUBRIC,
                     ResourceType.LESSON_PLAN, ResourceType.EXIT_SLIP)
    passage = ('Create a grade-appropriate passage about {topic}. The passage should be engaging and suitable '
               'for {grade} students. ')
    passage_only = ('Focus on providing a rich, grade-appropriate passage about {topic} with clear structure '
                    'and engaging content. The passage MUST be included in the response.')
    math_only = 'Focus on providing clear explanations, visual aids, or reference materials.'
    return [
        _entry(W, Subject.MATH, 'standard', schemas.MATH_STANDARD, 'problems',
               'Include answer spaces after each problem. Provide final answers at the end. '
               'Do not include step-by-step explanations.', math_only),
        _entry(W, Subject.MATH, 'guided', schemas.MATH_GUIDED, 'problems',
               'Include step-by-step hints and explanations for each problem. '
               'Break down complex problems into smaller steps.', math_only),
        _entry(W, Subject.MATH, 'interactive', schemas.MATH_INTERACTIVE, 'problems',
               'Design problems that involve hands-on activities and manipulatives.', math_only),

        _entry(W, Subject.READING, 'comprehension', schemas.READING_COMPREHENSION, 'problems',
               passage + 'The passage should demonstrate clear author\'s purpose. Write questions focusing on main '
               'ideas, details, and inferences. The passage MUST be included in the response.',
               passage_only, required=('passage',)),
        _entry(W, Subject.READING, 'literary_analysis', schemas.READING_LITERARY_ANALYSIS, 'problems',
               passage + 'Make the passage rich in literary elements and write analysis questions about them. '
               'The passage MUST be included in the response.',
               passage_only, required=('passage',)),
        _entry(W, Subject.READING, 'vocabulary_context', schemas.READING_VOCABULARY_CONTEXT, 'problems',
               passage + 'The passage must contain the target vocabulary words; write vocabulary-focused questions. '
               'The passage MUST be included in the response.',
               passage_only, required=('passage',)),

        _entry(W, Subject.SCIENCE, 'science_context', schemas.SCIENCE_CONTEXT, 'problems',
               'Create a comprehensive explanation about {topic} followed by questions that build on it.',
               'Create a comprehensive explanation about {topic}. Students read the content and take notes; '
               'there are no questions.'),
        _entry(W, Subject.SCIENCE, 'observation_analysis', schemas.SCIENCE_OBSERVATION, 'problems',
               'Create a detailed analytical breakdown of {topic} with analytical questions. For each section, '
               'provide comprehensive explanations that help {grade} students deeply understand the topic.',
               'Create a detailed analytical breakdown of {topic}. For each section, provide comprehensive '
               'explanations that help {grade} students deeply understand the topic.'),
        _entry(W, Subject.SCIENCE, 'lab_experiment', schemas.SCIENCE_LAB, 'problems',
               'Design a safe, classroom-ready experiment about {topic} with materials, procedure and questions '
               'about what students observe.',
               'Design a safe, classroom-ready experiment about {topic} with materials and procedure.'),
        _entry(W, Subject.SCIENCE, 'concept_application', schemas.SCIENCE_CONCEPT, 'problems',
               'Explain the core concept behind {topic} and write real-world scenarios where students apply it.',
               'Explain the core concept behind {topic} and describe real-world situations where it applies.'),

        _entry(W, None, 'standard', schemas.GENERAL_WORKSHEET, 'problems',
               'Open with a short background passage, then write clear questions with answers.',
               'Provide a clear, well-organized background passage and key vocabulary.'),

        _entry(Q, None, 'standard', schemas.QUIZ, 'questions',
               'For multiple choice, always return options as an array of complete, plausible answers with only '
               'one correct; avoid "all/none of the above". For true/false, use clear statements without double '
               'negatives. For short answer, give sample acceptable answers. Never return options as an object.'),

        _entry(R, None, '3_point', schemas.rubric_shape('3_point'), 'criteria',
               'Use exactly these performance levels in order: ' + RUBRIC_LEVELS['3_point'] + '.'),
        _entry(R, None, '4_point', schemas.rubric_shape('4_point'), 'criteria',
               'Use exactly these performance levels in order: ' + RUBRIC_LEVELS['4_point'] + '.'),
        _entry(R, None, 'checklist', schemas.rubric_shape('checklist'), 'criteria',
               'Write each criterion as an observable yes/no check. Use exactly these levels: '
               + RUBRIC_LEVELS['checklist'] + '.'),

        _entry(L, None, 'full_lesson', schemas.FULL_LESSON, 'activities',
               'Design a comprehensive lesson plan about {topic} for {grade} students with an opening, '
               'main activity and closing.'),
        _entry(L, None, 'mini_lesson', schemas.flat_lesson_shape('mini_lesson'), 'activities',
               'Design a focused 15-20 minute mini-lesson that targets a specific skill or concept.'),
        _entry(L, None, 'activity', schemas.flat_lesson_shape('activity'), 'activities',
               'Design a standalone hands-on learning activity that can be completed in 20-30 minutes.'),

        _entry(E, None, 'standard', schemas.EXIT_SLIP_STANDARD, 'questions',
               'Write exit slip questions that check student understanding of {topic}.'),
        _entry(E, None, 'reflection_prompt', schemas.EXIT_SLIP_REFLECTION, 'questions',
               'Write reflection prompts with guides and sentence starters.'),
        _entry(E, None, 'vocabulary_check', schemas.EXIT_SLIP_VOCABULARY, 'questions',
               'Write vocabulary check items for the key terms of {topic}.'),
        _entry(E, None, 'skill_assessment', schemas.EXIT_SLIP_SKILL, 'questions',
               'Write skill assessment items, each with a task, steps and success criteria.'),
    ]


DEFAULT_FORMATS: Dict[Tuple[ResourceType, Optional[Subject]], str] = {
    (ResourceType.WORKSHEET, Subject.MATH): 'standard',
    (ResourceType.WORKSHEET, Subject.READING): 'comprehension',
    (ResourceType.WORKSHEET, Subject.SCIENCE): 'science_context',
    (ResourceType.WORKSHEET, None): 'standard',
    (ResourceType.QUIZ, None): 'standard',
    (ResourceType.RUBRIC, None): '3_point',
    (ResourceType.LESSON_PLAN, None): 'full_lesson',
    (ResourceType.EXIT_SLIP, None): 'standard',
}


class TemplateRegistry:
    """Read-only catalogue of response schemas keyed by (resource type, subject, format).

    Built once and shared; lookups fall back from the exact key to the subject
    default and finally to the resource type default, so every key resolves.
    The subjectless key for a format is only tried for subjects without a default.
    """
    _instance = None

    def __init__(self, entries: Optional[List[TemplateEntry]] = None, defaults=None):
        self._entries: Dict[TemplateKey, TemplateEntry] = {}
        for entry in entries if entries is not None else _catalogue():
            s = entry.schema_
            key = (s.resource_type, s.subject, s.format)
            if key in self._entries:
                raise ValueError(f'Duplicate template key: {key}')
            self._entries[key] = entry
        self._defaults = dict(defaults or DEFAULT_FORMATS)
        self._check_complete()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = TemplateRegistry()
        return cls._instance

    def _check_complete(self):
        for rt in ResourceType:
            fmt = self._defaults.get((rt, None))
            if fmt is None or (rt, None, fmt) not in self._entries:
                raise ValueError(f'No default template for resource type {rt.value}')
        for (rt, subject), fmt in self._defaults.items():
            if (rt, subject, fmt) not in self._entries:
                raise ValueError(f'Default format {fmt} missing for {rt.value}/{subject}')

    def keys(self) -> List[TemplateKey]:
        return list(self._entries)

    def resolve(self, resource_type: ResourceType, subject: Optional[Subject] = None, fmt: Optional[str] = None) -> TemplateEntry:
        fmt = normalize_format(fmt)
        candidates = []
        subject_default = self._defaults.get((resource_type, subject)) if subject else None
        if fmt:
            candidates.append((resource_type, subject, fmt))
            # a subject with its own default never borrows a subjectless layout
            if subject_default is None:
                candidates.append((resource_type, None, fmt))
        if subject_default is not None:
            candidates.append((resource_type, subject, subject_default))
        candidates.append((resource_type, None, self._defaults[(resource_type, None)]))
        for key in candidates:
            if key in self._entries:
                return self._entries[key]
        raise TemplateLookupError((resource_type, subject, fmt))

    def get_schema(self, resource_type: ResourceType, subject: Optional[Subject] = None, fmt: Optional[str] = None) -> ResponseSchema:
        return self.resolve(resource_type, subject, fmt).schema_

    def get_instructions(self, resource_type: ResourceType, subject: Optional[Subject], fmt: Optional[str], slots: SlotRecord) -> str:
        entry = self.resolve(resource_type, subject, fmt)
        count = slots.question_count
        text = entry.instructions
        if count == 0 and entry.content_only_instructions:
            text = entry.content_only_instructions
        text = (text.replace('{topic}', slots.topic_area or 'the topic')
                    .replace('{grade}', slots.grade or 'the target grade')
                    .replace('{count}', str(count) if count is not None else ''))
        if resource_type == ResourceType.QUIZ:
            text += '\n' + quiz_prompt_enhancements(slots.grade, subject, count or 10)
        return text


def get_schema(resource_type: ResourceType, subject: Optional[Subject] = None, fmt: Optional[str] = None) -> ResponseSchema:
    return TemplateRegistry.get_instance().get_schema(resource_type, subject, fmt)


def get_instructions(resource_type: ResourceType, subject: Optional[Subject], fmt: Optional[str], slots: SlotRecord) -> str:
    return TemplateRegistry.get_instance().get_instructions(resource_type, subject, fmt, slots)
