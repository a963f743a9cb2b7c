import pytest

from modules.generation.reconciler import fit_count, locate_items_key, reconcile
from modules.resources.models import ResourceType
from tests.fixtures.mock_openai import MOCK_QUIZ, MOCK_SCIENCE_WORKSHEET


def _problems(n):
    return [{'question': f'Q{i + 1}', 'answer': str(i + 1)} for i in range(n)]


def test_short_list_is_padded_with_variations():
    p = _problems(3)
    result = reconcile({'problems': p}, 5, ResourceType.WORKSHEET)
    assert len(result['problems']) == 5
    assert result['problems'][:3] == p
    assert result['problems'][3]['question'] == 'Q1 (variation 1)'
    assert result['problems'][4]['question'] == 'Q2 (variation 1)'
    # originals are untouched
    assert p[0]['question'] == 'Q1'


def test_long_list_is_trimmed_to_prefix():
    p = _problems(5)
    result = reconcile({'problems': p}, 3, ResourceType.WORKSHEET)
    assert result['problems'] == p[:3]


@pytest.mark.parametrize('received,requested', [(1, 4), (2, 2), (7, 3), (3, 10)])
def test_count_law(received, requested):
    result = reconcile({'problems': _problems(received)}, requested, ResourceType.WORKSHEET)
    assert len(result['problems']) == requested


def test_no_requested_count_leaves_items_alone():
    result = reconcile({'problems': _problems(4)}, None, ResourceType.WORKSHEET)
    assert len(result['problems']) == 4


def test_zero_count_leaves_items_alone():
    result = reconcile({'title': 'x'}, 0, ResourceType.WORKSHEET)
    assert 'problems' not in result


def test_quiz_questions_and_points_recounted():
    result = reconcile(MOCK_QUIZ, 3, ResourceType.QUIZ)
    assert len(result['questions']) == 3
    assert result['questions'][2]['question'].endswith('(variation 1)')
    assert result['total_points'] == 3
    assert result['resourceType'] == 'quiz'


def test_questions_key_accepted_for_worksheet():
    result = reconcile({'questions': _problems(1)}, 2, ResourceType.WORKSHEET)
    assert len(result['questions']) == 2
    assert locate_items_key(result, ResourceType.WORKSHEET) == 'questions'


def test_variation_targets_first_text_field():
    items = fit_count([{'term': 'orbit'}, {'foo': 1}], 4)
    assert items[2] == {'term': 'orbit (variation 1)'}
    assert items[3] == {'foo': 1, 'question': 'Question 4'}


def test_string_items_get_suffix():
    assert fit_count(['a'], 3) == ['a', 'a (variation 1)', 'a (variation 2)']


def test_aliases_and_defaults_applied():
    result = reconcile({'gradeLevel': '4th Grade', 'topicArea': 'maps', 'questions': []}, None,
                       ResourceType.EXIT_SLIP, format='standard')
    assert result['grade_level'] == '4th Grade'
    assert result['topic'] == 'maps'
    assert result['format'] == 'standard'
    assert result['resourceType'] == 'exit_slip'


def test_science_content_remapped():
    result = reconcile(MOCK_SCIENCE_WORKSHEET, 1, ResourceType.WORKSHEET)
    assert 'scienceContent' not in result
    ctx = result['science_context']
    assert ctx['topic'] == 'the water cycle'
    assert ctx['key_concepts'] == ['evaporation', 'condensation']
    assert ctx['problems'] == result['problems']


def test_input_is_not_mutated():
    parsed = {'problems': _problems(1), 'gradeLevel': '1st Grade'}
    reconcile(parsed, 3, ResourceType.WORKSHEET)
    assert parsed == {'problems': _problems(1), 'gradeLevel': '1st Grade'}


def test_non_dict_input_never_raises():
    result = reconcile(None, 3, ResourceType.RUBRIC)
    assert result == {'resourceType': 'rubric'}
