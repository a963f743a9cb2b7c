import json

import pytest

from modules.resources.models import ResourceType, SlotRecord, Subject
from modules.templates import TemplateRegistry, normalize_format
from modules.templates.registry import DEFAULT_FORMATS, TemplateEntry, _catalogue, _entry
from modules.templates import schemas


def test_every_resource_type_resolves(registry):
    for rt in ResourceType:
        for subject in [None, *Subject]:
            schema = registry.get_schema(rt, subject, 'no_such_format')
            assert schema.resource_type == rt


def test_exact_key_wins(registry):
    schema = registry.get_schema(ResourceType.WORKSHEET, Subject.MATH, 'guided')
    assert schema.format == 'guided'
    assert schema.subject == Subject.MATH


def test_subject_default_then_type_default(registry):
    assert registry.get_schema(ResourceType.WORKSHEET, Subject.READING).format == 'comprehension'
    assert registry.get_schema(ResourceType.WORKSHEET, Subject.SCIENCE, 'guided').format == 'science_context'
    general = registry.get_schema(ResourceType.WORKSHEET, Subject.HISTORY)
    assert general.subject is None
    assert general.format == 'standard'


def test_unmatched_science_format_uses_science_default(registry):
    for fmt in ('standard', 'guided', 'interactive'):
        schema = registry.get_schema(ResourceType.WORKSHEET, Subject.SCIENCE, fmt)
        assert schema.subject == Subject.SCIENCE
        assert schema.format == 'science_context'
    # subjects without a default still borrow the subjectless layout
    assert registry.get_schema(ResourceType.WORKSHEET, Subject.HISTORY, 'standard').subject is None


def test_subjectless_format_serves_any_subject(registry):
    schema = registry.get_schema(ResourceType.RUBRIC, Subject.ART, '4_point')
    assert schema.format == '4_point'
    assert schema.items_key == 'criteria'


def test_science_lab_and_concept_have_their_own_shapes(registry):
    assert registry.get_schema(ResourceType.WORKSHEET, Subject.SCIENCE, 'lab_experiment').shape == schemas.SCIENCE_LAB
    assert registry.get_schema(ResourceType.WORKSHEET, Subject.SCIENCE, 'concept_application').shape == schemas.SCIENCE_CONCEPT


@pytest.mark.parametrize('raw,expected', [
    (None, None),
    ('', None),
    ('worksheet', None),
    ('Guided', 'guided'),
    ('mini lesson', 'mini_lesson'),
    ('analysis_focus', 'observation_analysis'),
    ('four-point', '4_point'),
    ('Lab', 'lab_experiment'),
])
def test_normalize_format(raw, expected):
    assert normalize_format(raw) == expected


def test_missing_type_default_is_rejected():
    entries = [e for e in _catalogue() if e.schema_.resource_type != ResourceType.EXIT_SLIP]
    defaults = {k: v for k, v in DEFAULT_FORMATS.items() if k[0] != ResourceType.EXIT_SLIP}
    with pytest.raises(ValueError):
        TemplateRegistry(entries=entries, defaults=defaults)


def test_duplicate_keys_are_rejected():
    entries = _catalogue()
    dup = _entry(ResourceType.QUIZ, None, 'standard', schemas.QUIZ, 'questions', 'again')
    with pytest.raises(ValueError):
        TemplateRegistry(entries=entries + [dup])


def test_render_fills_tokens_and_is_json(registry):
    schema = registry.get_schema(ResourceType.EXIT_SLIP, None, 'standard')
    body = json.loads(schema.render(topic='fractions', grade='3rd Grade'))
    assert body['title'] == 'fractions Exit Slip'
    assert body['grade_level'] == '3rd Grade'
    assert 'questions' in body


def test_render_content_only_drops_items(registry):
    schema = registry.get_schema(ResourceType.WORKSHEET, Subject.SCIENCE, 'science_context')
    body = json.loads(schema.render(topic='the water cycle', content_only=True))
    assert 'problems' not in body
    assert 'scienceContent' in body
    assert 'problems' in schema.shape


def test_instructions_use_content_only_text(registry):
    slots = SlotRecord(topic_area='fractions', grade='3rd Grade', question_count=0)
    text = registry.get_instructions(ResourceType.WORKSHEET, Subject.MATH, 'standard', slots)
    assert 'explanations, visual aids' in text
    slots.question_count = 5
    text = registry.get_instructions(ResourceType.WORKSHEET, Subject.MATH, 'standard', slots)
    assert 'answer spaces' in text


def test_quiz_instructions_carry_difficulty_parameters(registry):
    slots = SlotRecord(topic_area='photosynthesis', grade='5th Grade', question_count=8)
    text = registry.get_instructions(ResourceType.QUIZ, Subject.SCIENCE, None, slots)
    assert 'QUIZ DIFFICULTY PARAMETERS:' in text
    assert 'Never return options as an object' in text


def test_reading_templates_require_a_passage(registry):
    schema = registry.get_schema(ResourceType.WORKSHEET, Subject.READING, 'vocabulary_context')
    assert schema.required == ('passage',)


def test_entries_are_immutable(registry):
    entry = registry.resolve(ResourceType.QUIZ)
    assert isinstance(entry, TemplateEntry)
    with pytest.raises(Exception):
        entry.instructions = 'changed'
