from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Subject(str, Enum):
    MATH = 'Math'
    READING = 'Reading'
    SCIENCE = 'Science'
    HISTORY = 'History'
    ART = 'Art'
    MUSIC = 'Music'
    PE = 'PE'

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return _SUBJECT_ALIASES.get(key)


_SUBJECT_ALIASES = {
    'mathematics': Subject.MATH,
    'ela': Subject.READING,
    'english': Subject.READING,
    'language arts': Subject.READING,
    'social studies': Subject.HISTORY,
    'physical education': Subject.PE,
    'gym': Subject.PE,
}


class Theme(str, Enum):
    HALLOWEEN = 'halloween'
    WINTER = 'winter'
    SPRING = 'spring'
    OCEAN = 'ocean'
    SPACE = 'space'
    ANIMALS = 'animals'
    SPORTS = 'sports'
    GENERAL = 'general'

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        return None


class ResourceCategory(str, Enum):
    """Fine-grained category a spoken request is sorted into."""
    WORKSHEET = 'worksheet'
    QUIZ = 'quiz'
    BELL_RINGER = 'bell_ringer'
    CHOICE_BOARD = 'choice_board'
    LESSON_PLAN = 'lesson_plan'
    RUBRIC = 'rubric'
    SUB_PLAN = 'sub_plan'
    EXIT_TICKET = 'exit_ticket'


class ResourceType(str, Enum):
    """Resource kinds the generation service knows how to produce."""
    WORKSHEET = 'worksheet'
    QUIZ = 'quiz'
    RUBRIC = 'rubric'
    LESSON_PLAN = 'lesson_plan'
    EXIT_SLIP = 'exit_slip'


class Difficulty(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = 'multiple_choice'
    TRUE_FALSE = 'true_false'
    SHORT_ANSWER = 'short_answer'


class SlotRecord(BaseModel):
    """Structured values pulled out of a teacher's request.

    Every slot is optional. ``fill`` only writes a slot that is still empty, so
    the first pattern to match a category keeps its value for the rest of the pass.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    grade: Optional[str] = None
    subject: Optional[Subject] = None
    theme: Optional[Theme] = None
    topic_area: Optional[str] = Field(None, alias='topicArea')
    question_count: Optional[int] = Field(None, alias='questionCount')
    format: Optional[str] = None
    custom_instructions: Optional[str] = Field(None, alias='customInstructions')
    difficulty: Optional[Difficulty] = None
    question_types: Optional[List[QuestionType]] = Field(None, alias='questionTypes')

    def fill(self, slot: str, value: Any) -> bool:
        if value is None or getattr(self, slot) is not None:
            return False
        setattr(self, slot, value)
        return True

    def merged(self, overrides: 'SlotRecord') -> 'SlotRecord':
        """Return a copy where every slot set on ``overrides`` wins."""
        data = self.model_dump()
        data.update(overrides.model_dump(exclude_none=True))
        return SlotRecord(**data)

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class TranscriptAnalysis(BaseModel):
    transcript: str = ''
    category: ResourceCategory = ResourceCategory.WORKSHEET
    resource_type: ResourceType = ResourceType.WORKSHEET
    slots: SlotRecord = Field(default_factory=SlotRecord)

    def to_public(self) -> Dict[str, Any]:
        return {
            'transcript': self.transcript,
            'category': self.category.value,
            'resourceType': self.resource_type.value,
            'slots': self.slots.to_public(),
        }


class GeneratedResource(BaseModel):
    """Canonical resource handed to renderers.

    Only the header fields are declared. The item arrays (problems, questions,
    criteria, activities) and any format-specific sections ride along as extras.
    """
    model_config = ConfigDict(populate_by_name=True, extra='allow')

    title: Optional[str] = None
    subject: Optional[str] = None
    grade_level: Optional[str] = None
    topic: Optional[str] = None
    resource_type: ResourceType = Field(..., alias='resourceType')
    format: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator('title', 'subject', 'grade_level', 'topic', 'format', mode='before')
    @classmethod
    def coerce_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    def items(self, key: str) -> List[Any]:
        value = (self.model_extra or {}).get(key)
        return value if isinstance(value, list) else []

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)
