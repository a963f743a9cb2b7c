"""Grade-band difficulty guidance appended to quiz prompts."""
import math
import re
from typing import Dict, Optional

from pydantic import BaseModel

from modules.resources.models import Subject

EARLY_ELEMENTARY = 'early_elementary'
UPPER_ELEMENTARY = 'upper_elementary'
MIDDLE_SCHOOL = 'middle_school'
HIGH_SCHOOL = 'high_school'

GRADE_BANDS = {
    EARLY_ELEMENTARY: ('K', '1', '2'),
    UPPER_ELEMENTARY: ('3', '4', '5'),
    MIDDLE_SCHOOL: ('6', '7', '8'),
    HIGH_SCHOOL: ('9', '10', '11', '12'),
}

# named bands produced by the slot extractor
_NAMED_BANDS = {
    'pre-k': EARLY_ELEMENTARY,
    'kindergarten': EARLY_ELEMENTARY,
    'k': EARLY_ELEMENTARY,
    'elementary': UPPER_ELEMENTARY,
    'middle school': MIDDLE_SCHOOL,
    'high school': HIGH_SCHOOL,
}


class QuizDifficulty(BaseModel):
    complexity: float
    language_level: float
    option_count: int
    time_per_question: float
    cognitive: Dict[str, float]


BASE_PARAMS = {
    EARLY_ELEMENTARY: QuizDifficulty(complexity=2, language_level=2, option_count=3, time_per_question=2,
                                     cognitive={'recall': 0.6, 'comprehension': 0.3, 'application': 0.1, 'analysis': 0.0}),
    UPPER_ELEMENTARY: QuizDifficulty(complexity=4, language_level=4, option_count=4, time_per_question=1.5,
                                     cognitive={'recall': 0.4, 'comprehension': 0.4, 'application': 0.2, 'analysis': 0.0}),
    MIDDLE_SCHOOL: QuizDifficulty(complexity=6, language_level=6, option_count=4, time_per_question=1.5,
                                  cognitive={'recall': 0.3, 'comprehension': 0.3, 'application': 0.3, 'analysis': 0.1}),
    HIGH_SCHOOL: QuizDifficulty(complexity=8, language_level=8, option_count=4, time_per_question=1.5,
                                cognitive={'recall': 0.2, 'comprehension': 0.3, 'application': 0.3, 'analysis': 0.2}),
}

SUBJECT_ADJUSTMENTS = {
    Subject.MATH: {'complexity': 1, 'time_per_question': 0.5},
    Subject.SCIENCE: {'complexity': 0.5,
                      'cognitive': {'recall': 0.3, 'comprehension': 0.3, 'application': 0.2, 'analysis': 0.2}},
    Subject.READING: {'language_level': 1, 'time_per_question': -0.5},
}

COMPLEXITY_GUIDELINES = {
    Subject.MATH: [
        'Focus on basic operations and simple number recognition',
        'Include step-by-step problem solving',
        'Incorporate multi-step problems and basic formulas',
        'Challenge with complex problem-solving and abstract concepts',
    ],
    Subject.SCIENCE: [
        'Use simple observations and basic facts',
        'Include cause-and-effect relationships',
        'Incorporate scientific processes and systems',
        'Challenge with complex scientific concepts and analysis',
    ],
    Subject.READING: [
        'Use basic vocabulary and simple sentences',
        'Include grade-level vocabulary and compound sentences',
        'Incorporate advanced vocabulary and complex sentences',
        'Challenge with sophisticated language and abstract concepts',
    ],
}

ANSWER_LENGTH = {
    EARLY_ELEMENTARY: '2-3 words',
    UPPER_ELEMENTARY: '1-2 sentences',
    MIDDLE_SCHOOL: '2-3 sentences',
    HIGH_SCHOOL: '3-4 sentences',
}

BAND_GUIDELINES = {
    EARLY_ELEMENTARY: {
        Subject.MATH: 'Use visual aids, simple numbers (1-20), and basic operations',
        Subject.SCIENCE: 'Focus on observable phenomena and simple cause-effect',
        Subject.READING: 'Use sight words and simple sentence structures',
    },
    UPPER_ELEMENTARY: {
        Subject.MATH: 'Include word problems, fractions, and basic geometry',
        Subject.SCIENCE: 'Incorporate basic scientific concepts and simple experiments',
        Subject.READING: 'Focus on grammar rules and vocabulary in context',
    },
    MIDDLE_SCHOOL: {
        Subject.MATH: 'Use algebraic concepts and complex problem-solving',
        Subject.SCIENCE: 'Include scientific principles and experimental design',
        Subject.READING: 'Focus on language conventions and advanced grammar',
    },
    HIGH_SCHOOL: {
        Subject.MATH: 'Incorporate advanced mathematical concepts and proofs',
        Subject.SCIENCE: 'Focus on complex scientific theories and analysis',
        Subject.READING: 'Include advanced grammar and language analysis',
    },
}


def grade_band(grade: Optional[str]) -> str:
    if not grade or not isinstance(grade, str):
        return UPPER_ELEMENTARY
    key = grade.strip().lower()
    if key in _NAMED_BANDS:
        return _NAMED_BANDS[key]
    m = re.match(r'^(\d{1,2})(?:st|nd|rd|th)?(?:\s+grade)?$', key)
    if m:
        for band, grades in GRADE_BANDS.items():
            if m.group(1) in grades:
                return band
    return UPPER_ELEMENTARY


def quiz_difficulty(grade: Optional[str], subject: Optional[Subject]) -> QuizDifficulty:
    base = BASE_PARAMS[grade_band(grade)]
    adj = SUBJECT_ADJUSTMENTS.get(subject, {})
    return QuizDifficulty(
        complexity=min(10, max(1, base.complexity + adj.get('complexity', 0))),
        language_level=min(10, max(1, base.language_level + adj.get('language_level', 0))),
        option_count=base.option_count,
        time_per_question=max(0.5, base.time_per_question + adj.get('time_per_question', 0)),
        cognitive={**base.cognitive, **adj.get('cognitive', {})},
    )


def _complexity_guideline(complexity: float, subject: Optional[Subject]) -> str:
    level = min(3, int(math.floor((complexity - 1) / 3)))
    return COMPLEXITY_GUIDELINES.get(subject, COMPLEXITY_GUIDELINES[Subject.READING])[level]


def quiz_prompt_enhancements(grade: Optional[str], subject: Optional[Subject], question_count: int = 10) -> str:
    band = grade_band(grade)
    params = quiz_difficulty(grade, subject)
    pct = {k: round(v * 100) for k, v in params.cognitive.items()}
    lines = [
        'QUIZ DIFFICULTY PARAMETERS:',
        f'1. Question Complexity ({params.complexity:g}/10): {_complexity_guideline(params.complexity, subject)}.',
        f'2. Cognitive Skills Distribution: recall {pct["recall"]}%, comprehension {pct["comprehension"]}%, '
        f'application {pct["application"]}%, analysis {pct["analysis"]}%.',
        f'3. Format Guidelines: multiple choice questions have {params.option_count} options; '
        f'true/false statements are clear and unambiguous; short answers expect {ANSWER_LENGTH[band]} responses.',
        f'4. Time: about {params.time_per_question:g} minutes per question, '
        f'{params.time_per_question * question_count:g} minutes in total.',
    ]
    guideline = BAND_GUIDELINES[band].get(subject)
    if guideline:
        lines.append(f'GRADE-SPECIFIC GUIDELINES: {guideline}.')
    return '\n'.join(lines)
