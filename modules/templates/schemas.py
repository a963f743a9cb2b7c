import copy
import json
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from modules.resources.models import ResourceType, Subject


class ResponseSchema(BaseModel):
    """Exact JSON shape the model is told to return for one template key.

    ``shape`` leaves are descriptive type comments. ``items_key`` names the
    array the reconciler counts; it is dropped when the request is content only.
    """
    model_config = ConfigDict(frozen=True)

    resource_type: ResourceType
    subject: Optional[Subject] = None
    format: str
    shape: Dict[str, Any]
    items_key: Optional[str] = None
    required: Tuple[str, ...] = ()

    def render(self, topic: Optional[str] = None, grade: Optional[str] = None, content_only: bool = False) -> str:
        shape = copy.deepcopy(self.shape)
        if content_only and self.items_key:
            shape.pop(self.items_key, None)
        tokens = {'{topic}': topic or 'the topic', '{grade}': grade or 'the target grade'}
        return json.dumps(_fill_tokens(shape, tokens), indent=2)


def _fill_tokens(node, tokens):
    if isinstance(node, dict):
        return {k: _fill_tokens(v, tokens) for k, v in node.items()}
    if isinstance(node, list):
        return [_fill_tokens(v, tokens) for v in node]
    if isinstance(node, str):
        for token, value in tokens.items():
            node = node.replace(token, value)
    return node


def _header(fmt: str, subject: str = 'string (the subject)') -> Dict[str, Any]:
    return {
        'title': 'string (descriptive title of the resource)',
        'grade_level': 'string (the grade level)',
        'topic': 'string (the topic area)',
        'subject': subject,
        'format': fmt,
    }


# worksheets: Math

MATH_STANDARD = {
    **_header('standard', 'Math'),
    'problems': [{
        'problem': 'string (the math problem text)',
        'answer': 'string (the correct answer)',
        'type': 'short_answer',
    }],
    'vocabulary': {'term': 'string (definition)'},
}

MATH_GUIDED = {
    **_header('guided', 'Math'),
    'problems': [{
        'problem': 'string (the math problem text)',
        'steps': ['string (step 1)', 'string (step 2)'],
        'answer': 'string (the final answer)',
        'explanation': 'string (detailed explanation)',
        'type': 'guided',
    }],
    'vocabulary': {'term': 'string (definition)'},
}

MATH_INTERACTIVE = {
    **_header('interactive', 'Math'),
    'problems': [{
        'problem': 'string (the problem statement)',
        'type': 'interactive',
        'materials_needed': ['string (required materials)'],
        'instructions': ['string (step by step instructions)'],
        'expected_outcome': 'string (what students should observe or conclude)',
        'answer': 'string (the expected answer)',
        'explanation': 'string (explanation of the concept)',
    }],
    'vocabulary': {'term': 'string (definition of key terms used)'},
}

# worksheets: Reading

READING_COMPREHENSION = {
    **_header('comprehension', 'Reading'),
    'passage': {
        'text': 'string (REQUIRED: the complete reading passage)',
        'type': 'string (fiction/non-fiction/poetry)',
        'lexile_level': 'string (reading level)',
        'target_words': ['string (key vocabulary words)'],
    },
    'problems': [{
        'type': 'string (main_idea/detail/inference)',
        'question': 'string (the question)',
        'answer': 'string (correct answer)',
        'evidence_prompt': 'string (prompt to cite text evidence)',
        'skill_focus': 'string (reading skill being practiced)',
    }],
}

READING_LITERARY_ANALYSIS = {
    **_header('literary_analysis', 'Reading'),
    'passage': {
        'text': 'string (REQUIRED: the complete reading passage)',
        'type': 'string (fiction/non-fiction/poetry)',
        'elements_focus': ['string (literary elements to analyze)'],
    },
    'problems': [{
        'type': 'analysis',
        'element': 'string (literary element)',
        'question': 'string (analysis question)',
        'guiding_questions': ['string (supporting questions)'],
        'evidence_prompt': 'string (text evidence guidance)',
        'response_format': 'string (how to structure the response)',
    }],
}

READING_VOCABULARY_CONTEXT = {
    **_header('vocabulary_context', 'Reading'),
    'passage': {
        'text': 'string (REQUIRED: the complete reading passage)',
        'type': 'string (fiction/non-fiction/poetry)',
        'target_words': ['string (REQUIRED: vocabulary words to study)'],
    },
    'problems': [{
        'word': 'string (vocabulary word)',
        'context': 'string (sentence from the passage)',
        'definition': 'string (word definition)',
        'question': 'string (meaning, usage or context question)',
        'answer': 'string (correct answer)',
        'application': 'string (prompt for using the word)',
    }],
}

# worksheets: Science

SCIENCE_CONTEXT = {
    'title': '{topic} Study',
    'grade_level': '{grade}',
    'topic': '{topic}',
    'subject': 'Science',
    'format': 'science_context',
    'instructions': 'string (how students should work through the content)',
    'scienceContent': {
        'explanation': 'string (thorough explanation of the main concepts in language {grade} students understand)',
        'concepts': ['string (detailed explanation of one main concept with an example)'],
        'applications': ['string (real-world application relevant to students\' daily lives)'],
        'key_terms': {'term': 'string (grade-appropriate definition with an example)'},
    },
    'problems': [{
        'type': 'topic_based',
        'question': 'string (question testing understanding of one concept)',
        'complexity': 'string (basic/intermediate/advanced)',
        'answer': 'string (complete answer referencing the concept explanation)',
        'explanation': 'string (explanation connecting back to the concept)',
        'focus_area': 'string (specific concept being tested)',
    }],
}

SCIENCE_OBSERVATION = {
    'title': '{topic} Analysis',
    'grade_level': '{grade}',
    'topic': '{topic}',
    'subject': 'Science',
    'format': 'observation_analysis',
    'instructions': 'string (how to study the sections and answer)',
    'content': {
        'analysis_focus': 'string (aspects to examine, 3-4 paragraphs)',
        'implications': 'string (real-world significance and connections)',
        'key_points': ['string (essential concept with explanation)'],
        'critical_aspects': 'string (core principles and common misconceptions)',
        'data_patterns': 'string (observable patterns and how to analyze them)',
    },
    'problems': [{
        'type': 'analysis',
        'scenario': 'string (situation or data to analyze)',
        'question': 'string (analysis question)',
        'thinking_points': ['string (guiding point for analysis)'],
        'answer': 'string (answer showing understanding of relationships)',
        'complexity': 'string (basic/intermediate/advanced)',
    }],
}

SCIENCE_LAB = {
    **_header('lab_experiment', 'Science'),
    'content': {
        'introduction': 'string (introduction to the topic)',
        'materials': ['string (lab material)'],
        'procedure': ['string (numbered procedure step)'],
        'safety_notes': ['string (safety reminder)'],
        'expected_results': 'string (what students should observe)',
    },
    'problems': [{
        'type': 'lab',
        'question': 'string (question about the experiment)',
        'answer': 'string (correct answer)',
        'explanation': 'string (explanation linking back to the experiment)',
        'focus_area': 'string (aspect of the experiment being tested)',
    }],
    'key_terms': {'term': 'string (definition and context)'},
}

SCIENCE_CONCEPT = {
    **_header('concept_application', 'Science'),
    'concept': 'string (the scientific concept)',
    'problems': [{
        'type': 'application',
        'scenario': 'string (real-world scenario)',
        'concept_connection': 'string (how the concept applies)',
        'question': 'string (application question)',
        'answer': 'string (correct answer)',
        'explanation': 'string (why this answer demonstrates understanding)',
        'extension': 'string (prompt for further application)',
    }],
}

GENERAL_WORKSHEET = {
    **_header('standard'),
    'introduction': 'string (short background passage on the topic)',
    'problems': [{
        'question': 'string (the question text)',
        'answer': 'string (the correct answer)',
        'type': 'short_answer',
    }],
    'vocabulary': {'term': 'string (definition)'},
}

# quizzes

QUIZ = {
    'title': 'string (descriptive title of the quiz)',
    'grade_level': 'string (the grade level)',
    'topic': 'string (the topic area)',
    'subject': 'string (the subject)',
    'format': 'standard',
    'estimated_time': 'string (estimated completion time)',
    'questions': [{
        'type': 'string (multiple_choice/true_false/short_answer)',
        'question': 'string (the question text)',
        'options': ['string (option A)', 'string (option B)', 'string (option C)', 'string (option D)'],
        'correct_answer': 'string (the correct answer)',
        'explanation': 'string (explanation of the correct answer)',
        'cognitive_level': 'string (recall/comprehension/application/analysis)',
        'points': 'number (question point value)',
    }],
    'total_points': 'number (sum of all question points)',
    'instructions': 'string (quiz instructions)',
    'metadata': {
        'complexity_level': 'number (1-10)',
        'language_level': 'number (1-10)',
        'cognitive_distribution': {
            'recall': 'number (percentage)',
            'comprehension': 'number (percentage)',
            'application': 'number (percentage)',
            'analysis': 'number (percentage)',
        },
    },
}

# rubrics share one shape; the style only changes the level labels


def rubric_shape(fmt: str) -> Dict[str, Any]:
    return {
        **_header(fmt),
        'description': 'string (what the rubric evaluates)',
        'criteria': [{
            'name': 'string (criterion name)',
            'description': 'string (what is assessed)',
            'weight': 'number (percentage weight)',
            'levels': [{
                'label': 'string (performance level label)',
                'score': 'number (points for this level)',
                'description': 'string (observable evidence at this level)',
            }],
        }],
        'total_points': 'number (maximum score)',
    }


# lesson plans

def _lesson_step(name: str) -> Dict[str, Any]:
    return {
        'title': f'string ({name} activity title)',
        'duration': 'string (minutes)',
        'description': 'string (what happens)',
        'teacher_actions': ['string'],
        'student_actions': ['string'],
    }


FULL_LESSON = {
    **_header('full_lesson'),
    'duration': 'string (total lesson length)',
    'objectives': ['string (measurable learning objective)'],
    'materials': ['string (material needed)'],
    'activities': {
        'opening': _lesson_step('opening'),
        'main': _lesson_step('main'),
        'closing': _lesson_step('closing'),
    },
    'assessment': {'type': 'string (formative/summative)', 'description': 'string (how learning is checked)'},
    'differentiation': {'support': 'string (for struggling learners)', 'extension': 'string (for advanced learners)'},
}


def flat_lesson_shape(fmt: str) -> Dict[str, Any]:
    return {
        **_header(fmt),
        'duration': 'string (total length)',
        'objectives': ['string (learning objective)'],
        'materials': ['string (material needed)'],
        'activities': [{
            'name': 'string (activity name)',
            'duration': 'string (minutes)',
            'description': 'string (what students do)',
            'steps': ['string (step)'],
        }],
        'assessment': {'description': 'string (quick check for understanding)'},
    }


# exit slips

def _exit_header(title: str, fmt: str) -> Dict[str, Any]:
    return {
        'title': title,
        'subject': 'string (the subject)',
        'grade_level': '{grade}',
        'topic': '{topic}',
        'format': fmt,
        'difficulty_level': 'Basic/Intermediate/Advanced',
    }


EXIT_SLIP_STANDARD = {
    **_exit_header('{topic} Exit Slip', 'standard'),
    'questions': [{
        'question': 'string (assessment question)',
        'answer': 'string (expected answer or response)',
        'notes': 'string (teacher notes or guidance)',
    }],
}

EXIT_SLIP_REFLECTION = {
    **_exit_header('{topic} Exit Slip', 'reflection_prompt'),
    'questions': [{
        'question': 'string (main reflection question)',
        'guides': ['string (reflection guide)'],
        'starters': ['I learned that...', 'I wonder about...', 'I can use this by...'],
        'notes': 'string (optional teacher notes or context)',
    }],
}

EXIT_SLIP_VOCABULARY = {
    **_exit_header('{topic} Vocabulary Check', 'vocabulary_check'),
    'questions': [{
        'term': 'string (key term to assess)',
        'definition': 'string (definition of the term)',
        'context': 'string (example sentence)',
        'examples': ['string (example)'],
        'usagePrompt': 'string (prompt for using the term)',
        'relationships': ['string (related term)'],
        'visualCue': 'string (description of a visual representation)',
    }],
}

EXIT_SLIP_SKILL = {
    **_exit_header('{topic} Skill Assessment', 'skill_assessment'),
    'questions': [{
        'skillName': 'string (skill being assessed)',
        'task': 'string (specific task or problem to solve)',
        'steps': ['string (step)'],
        'criteria': ['string (success criterion)'],
        'applicationContext': 'string (real-world context for the skill)',
        'difficultyLevel': 'Basic/Intermediate/Advanced',
    }],
}
