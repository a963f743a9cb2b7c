import pytest

from modules.resources.models import Difficulty, QuestionType, ResourceType, SlotRecord, Subject, Theme
from modules.voice.slot_extractor import (
    detect_format,
    detect_grade,
    detect_question_count,
    detect_subject,
    detect_topic,
    extract_slots,
    grade_label,
    ordinal,
)
from modules.templates.registry import DEFAULT_FORMATS


def test_scenario_math_worksheet_grade_and_subject():
    slots = extract_slots('Create a math worksheet for 3rd grade about dinosaurs')
    assert slots.grade == '3rd Grade'
    assert slots.subject == Subject.MATH
    assert slots.topic_area == 'dinosaurs'


def test_scenario_quiz_subject_from_topic_word():
    slots = extract_slots('Make a quiz on fractions for 5th grade')
    assert slots.grade == '5th Grade'
    assert slots.subject == Subject.MATH
    assert slots.topic_area == 'fractions'


@pytest.mark.parametrize('text,expected', [
    ('for 1st grade', '1st Grade'),
    ('second graders love this', '2nd Grade'),
    ('grade 7 students', '7th Grade'),
    ('grade seven students', '7th Grade'),
    ('my 12th graders', '12th Grade'),
    ('a class of sophomores', '10th Grade'),
    ('freshman biology', '9th Grade'),
    ('pre-k circle time', 'Pre-K'),
    ('my kindergarten class', 'Kindergarten'),
    ('junior high students', 'Middle School'),
    ('high school chemistry', 'High School'),
    ('elementary kids', 'Elementary'),
])
def test_detect_grade_labels(text, expected):
    assert detect_grade(text) == expected


def test_grade_is_canonical_or_absent():
    allowed = {grade_label(n) for n in range(1, 13)} | {'Pre-K', 'Kindergarten', 'Middle School', 'High School', 'Elementary'}
    samples = ['3rd grade', 'for 4th graders', 'grade 10', 'eleventh grade', 'juniors', 'nothing here',
               'grade 99', '13th grade', 'seniors in high school']
    for text in samples:
        grade = detect_grade(text)
        assert grade is None or grade in allowed


def test_grade_10_does_not_read_as_grade_1():
    assert detect_grade('grade 10 algebra') == '10th Grade'


def test_no_grade_leaves_slot_empty():
    slots = extract_slots('Make a math worksheet about fractions')
    assert slots.grade is None
    assert slots.subject == Subject.MATH


def test_matching_is_case_insensitive():
    slots = extract_slots('CREATE A MATH WORKSHEET FOR 3RD GRADE')
    assert slots.grade == '3rd Grade'
    assert slots.subject == Subject.MATH


def test_word_boundaries_respected():
    assert detect_subject('a smart start to the day') is None
    assert detect_grade('the upgrade was great') is None


def test_extraction_is_idempotent(sample_transcripts):
    for text in sample_transcripts.values():
        assert extract_slots(text) == extract_slots(text)


def test_empty_input_gives_empty_record():
    assert extract_slots('') == SlotRecord()
    assert extract_slots(None) == SlotRecord()
    assert extract_slots('   ') == SlotRecord()


def test_question_count_digits_and_words():
    assert detect_question_count('with 10 problems') == 10
    assert detect_question_count('three questions please') == 3
    assert detect_question_count('just a worksheet') is None


def test_content_only_phrases_give_zero():
    assert detect_question_count('a reading passage with no questions') == 0
    assert detect_question_count('content-only handout') == 0
    # a spoken zero is ignored rather than treated as content only
    assert detect_question_count('0 problems') is None


def test_full_extraction(sample_transcripts):
    slots = extract_slots(sample_transcripts['science_quiz'])
    assert slots.grade == '5th Grade'
    assert slots.subject == Subject.SCIENCE
    assert slots.topic_area == 'photosynthesis'
    assert slots.question_types == [QuestionType.MULTIPLE_CHOICE]


def test_theme_and_difficulty():
    slots = extract_slots('An easy halloween math worksheet about counting pumpkins for 1st grade')
    assert slots.theme == Theme.HALLOWEEN
    assert slots.difficulty == Difficulty.EASY


def test_topic_skips_counts_and_strips_article():
    assert detect_topic('about 10 questions on the water cycle') == 'water cycle'


def test_topic_falls_back_to_keyword():
    assert detect_topic('photosynthesis quiz for 5th grade') == 'photosynthesis'


def test_ordinal_suffixes():
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21)] == ['1st', '2nd', '3rd', '4th', '11th', '12th', '13th', '21st']
    assert grade_label(0) is None
    assert grade_label(13) is None


@pytest.mark.parametrize('text,rt,subject,expected', [
    ('step by step math worksheet', ResourceType.WORKSHEET, Subject.MATH, 'guided'),
    ('math game with manipulatives', ResourceType.WORKSHEET, Subject.MATH, 'interactive'),
    ('plain math worksheet', ResourceType.WORKSHEET, Subject.MATH, 'standard'),
    ('reading worksheet', ResourceType.WORKSHEET, Subject.READING, 'comprehension'),
    ('vocabulary practice', ResourceType.WORKSHEET, Subject.READING, 'vocabulary_context'),
    ('a lab about magnets', ResourceType.WORKSHEET, Subject.SCIENCE, 'lab_experiment'),
    ('science worksheet', ResourceType.WORKSHEET, Subject.SCIENCE, 'science_context'),
    ('history worksheet', ResourceType.WORKSHEET, Subject.HISTORY, 'standard'),
    ('a checklist rubric', ResourceType.RUBRIC, None, 'checklist'),
    ('a rubric', ResourceType.RUBRIC, Subject.ART, '3_point'),
    ('a mini-lesson', ResourceType.LESSON_PLAN, None, 'mini_lesson'),
    ('a lesson plan', ResourceType.LESSON_PLAN, None, 'full_lesson'),
    ('exit slip to reflect on today', ResourceType.EXIT_SLIP, None, 'reflection_prompt'),
    ('exit slip', ResourceType.EXIT_SLIP, Subject.MATH, 'standard'),
])
def test_detect_format(text, rt, subject, expected):
    assert detect_format(text, rt, subject) == expected


def test_fill_keeps_first_value_and_merged_overrides():
    slots = SlotRecord()
    assert slots.fill('grade', '3rd Grade')
    assert not slots.fill('grade', '4th Grade')
    merged = slots.merged(SlotRecord(subject=Subject.ART))
    assert merged.grade == '3rd Grade'
    assert merged.subject == Subject.ART
    assert merged.to_public() == {'grade': '3rd Grade', 'subject': 'Art'}


def test_format_defaults_follow_template_registry(registry):
    for (rt, subject), fmt in DEFAULT_FORMATS.items():
        assert detect_format('', rt, subject) == fmt
        assert registry.get_schema(rt, subject, fmt).format == fmt
