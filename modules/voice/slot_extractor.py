import re
from typing import Callable, List, Optional, Pattern, Sequence, Tuple, Union

from modules.resources.models import (
    Difficulty,
    QuestionType,
    ResourceType,
    SlotRecord,
    Subject,
    Theme,
)
from modules.templates.registry import DEFAULT_FORMATS

# A table row is (compiled pattern, literal value or a function of the match).
# The function may return None to let the scan continue.
PatternRow = Tuple[Pattern, Union[object, Callable[[re.Match], Optional[object]]]]

_FLAGS = re.IGNORECASE

NUMBER_WORDS = {
    'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5, 'six': 6, 'seven': 7,
    'eight': 8, 'nine': 9, 'ten': 10, 'eleven': 11, 'twelve': 12, 'thirteen': 13,
    'fourteen': 14, 'fifteen': 15, 'sixteen': 16, 'seventeen': 17, 'eighteen': 18,
    'nineteen': 19, 'twenty': 20,
}

ORDINAL_WORDS = [
    'first', 'second', 'third', 'fourth', 'fifth', 'sixth',
    'seventh', 'eighth', 'ninth', 'tenth', 'eleventh', 'twelfth',
]

ITEM_NOUNS = r'(?:questions?|problems?|items?|prompts?|exercises?)'


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')
    return f'{n}{suffix}'


def grade_label(n: int) -> Optional[str]:
    if 1 <= n <= 12:
        return f'{ordinal(n)} Grade'
    return None


def _numbered_grade_rows() -> List[PatternRow]:
    extras = {9: r'|freshm[ae]n', 10: r'|sophomores?', 11: r'|juniors?(?!\s+high)', 12: r'|seniors?'}
    number_names = list(NUMBER_WORDS)
    rows = []
    for n in range(1, 13):
        word = number_names[n - 1]
        pattern = (
            rf'\b(?:{ordinal(n)}[\s-]+grade(?:rs?)?'
            rf'|{ORDINAL_WORDS[n - 1]}[\s-]+grade(?:rs?)?'
            rf'|grade\s+(?:{n}|{word})\b{extras.get(n, "")})(?![\w-])'
        )
        rows.append((re.compile(pattern, _FLAGS), grade_label(n)))
    return rows


def _derived_grade(match: re.Match) -> Optional[str]:
    return grade_label(int(match.group(1)))


GRADE_PATTERNS: List[PatternRow] = [
    (re.compile(r'\b(?:pre-?k|pre-?kindergarten|preschool)\b', _FLAGS), 'Pre-K'),
    (re.compile(r'\b(?:kindergarten|kinder|kindergarteners)\b|\bfor\s+k\b', _FLAGS), 'Kindergarten'),
    *_numbered_grade_rows(),
    (re.compile(r'\b(?:middle\s+school|junior\s+high)\b', _FLAGS), 'Middle School'),
    (re.compile(r'\b(?:high\s+school|secondary\s+school)\b', _FLAGS), 'High School'),
    (re.compile(r'\b(?:elementary|primary\s+school)\b', _FLAGS), 'Elementary'),
    (re.compile(r'\bfor\s+(\d{1,2})(?:st|nd|rd|th)?\s+grad', _FLAGS), _derived_grade),
    (re.compile(r'\b(\d{1,2})(?:st|nd|rd|th)\s+grad', _FLAGS), _derived_grade),
    (re.compile(r'\bgrade\s+(\d{1,2})\b', _FLAGS), _derived_grade),
]

# explicit subject names come before topic words that only imply a subject
SUBJECT_PATTERNS: List[PatternRow] = [
    (re.compile(r'\b(?:math|maths|mathematics|arithmetic|algebra|geometry|calculus)\b', _FLAGS), Subject.MATH),
    (re.compile(r'\b(?:reading|literacy|english|language\s+arts|ela|phonics|spelling|grammar)\b', _FLAGS), Subject.READING),
    (re.compile(r'\b(?:science|biology|chemistry|physics|earth\s+science)\b', _FLAGS), Subject.SCIENCE),
    (re.compile(r'\b(?:history|social\s+studies|civics|geography)\b', _FLAGS), Subject.HISTORY),
    (re.compile(r'\b(?:art|drawing|painting|sculpture)\b', _FLAGS), Subject.ART),
    (re.compile(r'\b(?:music|musical|rhythm|melody)\b', _FLAGS), Subject.MUSIC),
    (re.compile(r'\b(?:pe|physical\s+education|gym\s+class)\b|\bp\.e\.', _FLAGS), Subject.PE),
]

TOPIC_KEYWORDS: List[PatternRow] = [
    (re.compile(r'\b(?:fractions?|decimals?|percentages?|ratios?|multiplication|division|addition|subtraction'
                r'|equations?|place\s+value|long\s+division|times\s+tables?|perimeter|angles?)\b', _FLAGS), Subject.MATH),
    (re.compile(r'\b(?:vocabulary|comprehension|main\s+idea|poetry|poems?|short\s+stor(?:y|ies)|novels?'
                r'|literature|syllables?|sight\s+words)\b', _FLAGS), Subject.READING),
    (re.compile(r'\b(?:photosynthesis|ecosystems?|life\s+cycles?|weather|climate|solar\s+system|planets?'
                r'|states\s+of\s+matter|magnets?|cells?|volcano(?:es|s)?|scientific\s+method|food\s+chains?)\b', _FLAGS), Subject.SCIENCE),
    (re.compile(r'\b(?:civil\s+war|revolution(?:ary\s+war)?|presidents?|constitution|ancient\s+(?:egypt|greece|rome)'
                r'|explorers?|colonial\s+america)\b', _FLAGS), Subject.HISTORY),
]

THEME_PATTERNS: List[PatternRow] = [
    (re.compile(r'\b(?:halloween|pumpkins?|ghosts?|witch(?:es)?|spooky|trick[\s-]or[\s-]treat|costumes?)\b', _FLAGS), Theme.HALLOWEEN),
    (re.compile(r'\b(?:winter|snow(?:man|men|flakes?|y)?|christmas|holidays?|december)\b', _FLAGS), Theme.WINTER),
    (re.compile(r'\b(?:spring|flowers?|bloom(?:ing)?|butterfl(?:y|ies)|gardens?)\b', _FLAGS), Theme.SPRING),
    (re.compile(r'\b(?:ocean|sea|marine|whales?|dolphins?|underwater|coral|sharks?)\b', _FLAGS), Theme.OCEAN),
    (re.compile(r'\b(?:space|outer\s+space|astronauts?|rockets?|galaxy|galaxies|universe)\b', _FLAGS), Theme.SPACE),
    (re.compile(r'\b(?:animals?|pets?|zoo|wildlife|mammals?|farm\s+animals?)\b', _FLAGS), Theme.ANIMALS),
    (re.compile(r'\b(?:sports?|football|soccer|basketball|baseball|tennis|olympics)\b', _FLAGS), Theme.SPORTS),
]

DIFFICULTY_PATTERNS: List[PatternRow] = [
    (re.compile(r'\b(?:easy|basic|simple|beginner)\b', _FLAGS), Difficulty.EASY),
    (re.compile(r'\b(?:medium|intermediate|moderate|on[\s-]level)\b', _FLAGS), Difficulty.MEDIUM),
    (re.compile(r'\b(?:hard|difficult|advanced|challenging)\b', _FLAGS), Difficulty.HARD),
]

QUESTION_TYPE_PATTERNS: List[PatternRow] = [
    (re.compile(r'\bmultiple[\s-]choice\b', _FLAGS), QuestionType.MULTIPLE_CHOICE),
    (re.compile(r'\btrue[\s/-]*(?:or\s+)?false\b', _FLAGS), QuestionType.TRUE_FALSE),
    (re.compile(r'\bshort[\s-]answers?\b', _FLAGS), QuestionType.SHORT_ANSWER),
]

QUESTION_COUNT_RE = re.compile(rf'\b(\d+)\s+{ITEM_NOUNS}\b', _FLAGS)
QUESTION_COUNT_WORD_RE = re.compile(rf'\b({"|".join(NUMBER_WORDS)})\s+{ITEM_NOUNS}\b', _FLAGS)
CONTENT_ONLY_RE = re.compile(
    r'\b(?:content[\s-]only|no\s+(?:questions|problems)|without\s+(?:any\s+)?(?:questions|problems))\b', _FLAGS)

_CLAUSE_END = r'(?=\s+and\b|[.;!?]|$)'
TOPIC_PHRASE_RE = re.compile(
    r'\b(?:about|on)\s+(?:the\s+)?(.+?)(?=\s+(?:for|with|that|and|including)\b|[.,;!?]|$)', _FLAGS)
CUSTOM_INSTRUCTION_PATTERNS: List[Pattern] = [
    re.compile(rf'\bmake\s+sure\s+(?:to\s+)?(.+?){_CLAUSE_END}', _FLAGS),
    re.compile(rf'\b(?:include|including)\s+(.+?){_CLAUSE_END}', _FLAGS),
    re.compile(rf'\bwith\s+(?!(?:\d+|{"|".join(NUMBER_WORDS)})\b)(.+?){_CLAUSE_END}', _FLAGS),
]

MAX_TOPIC_LENGTH = 80


def first_match(text: str, rows: Sequence[PatternRow]):
    """Return the value of the first row whose pattern matches ``text``."""
    for pattern, value in rows:
        match = pattern.search(text)
        if not match:
            continue
        if callable(value) and not isinstance(value, type):
            derived = value(match)
            if derived is None:
                continue
            return derived
        return value
    return None


def detect_grade(text: str) -> Optional[str]:
    return first_match(text, GRADE_PATTERNS)


def detect_subject(text: str) -> Optional[Subject]:
    return first_match(text, SUBJECT_PATTERNS) or first_match(text, TOPIC_KEYWORDS)


def detect_theme(text: str) -> Optional[Theme]:
    return first_match(text, THEME_PATTERNS)


def detect_question_count(text: str) -> Optional[int]:
    m = QUESTION_COUNT_RE.search(text)
    if m and int(m.group(1)) > 0:
        return int(m.group(1))
    m = QUESTION_COUNT_WORD_RE.search(text)
    if m:
        return NUMBER_WORDS[m.group(1).lower()]
    if CONTENT_ONLY_RE.search(text):
        return 0
    return None


def detect_topic(text: str) -> Optional[str]:
    m = TOPIC_PHRASE_RE.search(text)
    while m:
        phrase = m.group(1).strip()
        # "about 10 questions" is a count, not a topic; rescan inside it
        if phrase and not phrase[0].isdigit():
            return phrase[:MAX_TOPIC_LENGTH]
        m = TOPIC_PHRASE_RE.search(text, m.start(1))
    for pattern, _ in TOPIC_KEYWORDS:
        m = pattern.search(text)
        if m:
            return m.group(0).lower()
    return None


def detect_question_types(text: str) -> Optional[List[QuestionType]]:
    found = [qtype for pattern, qtype in QUESTION_TYPE_PATTERNS if pattern.search(text)]
    return found or None


def detect_custom_instructions(text: str) -> Optional[str]:
    for pattern in CUSTOM_INSTRUCTION_PATTERNS:
        m = pattern.search(text)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return None


def extract_slots(transcript: Optional[str]) -> SlotRecord:
    """Scan a transcript and fill every slot category independently.

    Within a category the pattern table is ordered most specific first and the
    first row that matches decides the value. Empty input yields an empty record.
    """
    slots = SlotRecord()
    if not transcript or not isinstance(transcript, str) or not transcript.strip():
        return slots
    text = transcript.strip()

    slots.fill('grade', detect_grade(text))
    slots.fill('subject', detect_subject(text))
    slots.fill('theme', detect_theme(text))
    slots.fill('topic_area', detect_topic(text))
    slots.fill('question_count', detect_question_count(text))
    slots.fill('difficulty', first_match(text, DIFFICULTY_PATTERNS))
    slots.fill('question_types', detect_question_types(text))
    slots.fill('custom_instructions', detect_custom_instructions(text))
    return slots


# Format keyword rules per (resource type, subject). Subject None applies to any subject.
FORMAT_RULES = {
    (ResourceType.WORKSHEET, Subject.MATH): [
        (re.compile(r'\b(?:step[\s-]by[\s-]step|steps?|guided?|explain|show\s+(?:your\s+)?work)\b', _FLAGS), 'guided'),
        (re.compile(r'\b(?:hands[\s-]on|manipulatives?|games?|interactive)\b', _FLAGS), 'interactive'),
    ],
    (ResourceType.WORKSHEET, Subject.READING): [
        (re.compile(r'\b(?:main\s+idea|comprehension|summary|summarize|inference)\b', _FLAGS), 'comprehension'),
        (re.compile(r'\b(?:vocabulary|definitions?|meanings?|context\s+clues?)\b', _FLAGS), 'vocabulary_context'),
        (re.compile(r'\b(?:characters?|plot|setting|literary|author)\b', _FLAGS), 'literary_analysis'),
    ],
    (ResourceType.WORKSHEET, Subject.SCIENCE): [
        (re.compile(r'\b(?:lab|experiments?|procedures?|materials)\b', _FLAGS), 'lab_experiment'),
        (re.compile(r'\b(?:observe|observation|data|measure|record)\b', _FLAGS), 'observation_analysis'),
        (re.compile(r'\b(?:concepts?|apply|application|theory|principles?)\b', _FLAGS), 'concept_application'),
    ],
    (ResourceType.RUBRIC, None): [
        (re.compile(r'\b(?:checklist|yes\s*/?\s*no)\b', _FLAGS), 'checklist'),
        (re.compile(r'\b(?:4|four)[\s-]point\b', _FLAGS), '4_point'),
        (re.compile(r'\b(?:3|three)[\s-]point\b', _FLAGS), '3_point'),
    ],
    (ResourceType.LESSON_PLAN, None): [
        (re.compile(r'\bmini[\s-]?lessons?\b', _FLAGS), 'mini_lesson'),
        (re.compile(r'\b(?:standalone\s+|hands[\s-]on\s+)?activity\b', _FLAGS), 'activity'),
    ],
    (ResourceType.EXIT_SLIP, None): [
        (re.compile(r'\b(?:reflect|reflection|feel)\b', _FLAGS), 'reflection_prompt'),
        (re.compile(r'\b(?:vocabulary|terms|words)\b', _FLAGS), 'vocabulary_check'),
        (re.compile(r'\b(?:skills?|solve|tasks?)\b', _FLAGS), 'skill_assessment'),
    ],
}

def detect_format(transcript: Optional[str], resource_type: ResourceType, subject: Optional[Subject] = None) -> str:
    """Infer the per-resource format from keywords in the transcript."""
    key = (resource_type, subject) if (resource_type, subject) in FORMAT_RULES or (resource_type, subject) in DEFAULT_FORMATS else (resource_type, None)
    text = transcript or ''
    detected = first_match(text, FORMAT_RULES.get(key, []))
    if detected:
        return detected
    return DEFAULT_FORMATS.get(key, 'standard')
