from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multipleChoice"
    FILL_IN_THE_BLANK = "fillInTheBlank"
    TRUE_FALSE = "trueFalse"
    MATCHING = "matching"
    TRANSLATION = "translation"
    CONVERSATION = "conversation"

    @classmethod
    def parse(cls, raw: str | None) -> QuestionType:
        """Provider output is loose; anything unrecognised is multiple choice."""
        for member in cls:
            if member.value == raw:
                return member
        return cls.MULTIPLE_CHOICE


class ProficiencyLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class LearningTopic(str, Enum):
    GENERAL = "General"
    TRAVEL = "Travel"
    BUSINESS = "Business"
    DAILY_CONVERSATION = "Daily Conversation"
    ACADEMIC = "Academic"
    ENTERTAINMENT = "Entertainment"
    TECHNOLOGY = "Technology"
    GRAMMAR = "Grammar"


class LearningFocus(str, Enum):
    VOCABULARY = "Vocabulary"
    GRAMMAR = "Grammar"
    PHRASAL_VERBS = "Phrasal Verbs"
    LISTENING = "Listening"
    SPEAKING = "Speaking"
    READING = "Reading"
    WRITING = "Writing"


class LearningElementType(str, Enum):
    PHRASAL_VERB = "Phrasal Verb"
    IDIOM = "Idiom"
    VOCABULARY = "Vocabulary"
    GRAMMAR = "Grammar"
    EXPRESSION = "Expression"

    @classmethod
    def parse(cls, raw: str | None) -> LearningElementType:
        # Prompts ask for camelCase ("phrasalVerb"); stored values are spaced.
        key = (raw or "").replace(" ", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == key:
                return member
        return cls.EXPRESSION


@dataclass
class UserProfile:
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    selected_topics: set[LearningTopic] = field(default_factory=set)
    learning_focuses: set[LearningFocus] = field(default_factory=set)


@dataclass
class LearningElement:
    text: str
    type: LearningElementType
    explanation: str
    id: str = field(default_factory=new_id)


@dataclass
class ConversationMessage:
    speaker: str
    message: str
    learning_elements: list[LearningElement] = field(default_factory=list)
    id: str = field(default_factory=new_id)


@dataclass
class Conversation:
    title: str
    scenario: str
    messages: list[ConversationMessage]
    topic: LearningTopic
    difficulty: ProficiencyLevel
    learning_focus: LearningFocus
    estimated_reading_time: int  # minutes
    id: str = field(default_factory=new_id)


@dataclass
class QuizQuestion:
    type: QuestionType
    question: str
    correct_answer: str
    explanation: str
    difficulty: ProficiencyLevel
    topic: LearningTopic
    focus: LearningFocus
    options: list[str] | None = None
    conversation: Conversation | None = None
    id: str = field(default_factory=new_id)

    @property
    def safe_options(self) -> list[str]:
        return list(self.options or [])


@dataclass
class Quiz:
    title: str
    questions: list[QuizQuestion]
    estimated_duration: int  # minutes
    topic: LearningTopic
    difficulty: ProficiencyLevel
    created_at: datetime = field(default_factory=utcnow)
    based_on_mistakes: list[str] | None = None
    id: str = field(default_factory=new_id)

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def is_mistake_based(self) -> bool:
        return bool(self.based_on_mistakes)


@dataclass
class Article:
    title: str
    content: str
    topic: LearningTopic
    difficulty: ProficiencyLevel
    tags: list[str] = field(default_factory=list)
    summary: str = ""
    created_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    @property
    def estimated_reading_time(self) -> int:
        # 200 words per minute
        return max(1, self.word_count // 200)


@dataclass
class ArticleWithQuestions:
    article: Article
    questions: list[QuizQuestion]

    @property
    def estimated_quiz_duration(self) -> int:
        return max(1, len(self.questions))


@dataclass
class ConversationWithQuestions:
    conversation: Conversation
    questions: list[QuizQuestion]


@dataclass
class VerificationResult:
    is_correct: bool
    explanation: str
    feedback: str


@dataclass(frozen=True)
class NothingToReview:
    """Returned instead of a quiz when there are no mistakes to build one from."""

    message: str = "No mistakes available for review. Great job!"


@dataclass
class MistakeRecord:
    question: str
    correct_answer: str
    user_answer: str
    explanation: str
    question_type: QuestionType
    difficulty: ProficiencyLevel
    topic: LearningTopic
    focus: LearningFocus
    created_at: datetime
    feedback: str | None = None
    options: list[str] | None = None
    review_count: int = 0
    last_reviewed_at: datetime | None = None
    mastered_at: datetime | None = None
    id: str = field(default_factory=new_id)

    @property
    def is_mastered(self) -> bool:
        return self.mastered_at is not None

    def days_since_created(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return max(0, (now - self.created_at).days)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "correct_answer": self.correct_answer,
            "user_answer": self.user_answer,
            "explanation": self.explanation,
            "feedback": self.feedback,
            "question_type": self.question_type.value,
            "difficulty": self.difficulty.value,
            "topic": self.topic.value,
            "focus": self.focus.value,
            "options": self.options,
            "created_at": _format_dt(self.created_at),
            "review_count": self.review_count,
            "last_reviewed_at": _format_dt(self.last_reviewed_at),
            "mastered_at": _format_dt(self.mastered_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MistakeRecord:
        return cls(
            id=data["id"],
            question=data["question"],
            correct_answer=data["correct_answer"],
            user_answer=data["user_answer"],
            explanation=data["explanation"],
            feedback=data.get("feedback"),
            question_type=QuestionType(data["question_type"]),
            difficulty=ProficiencyLevel(data["difficulty"]),
            topic=LearningTopic(data["topic"]),
            focus=LearningFocus(data["focus"]),
            options=data.get("options"),
            created_at=_parse_dt(data["created_at"]),
            review_count=int(data.get("review_count", 0)),
            last_reviewed_at=_parse_dt(data.get("last_reviewed_at")),
            mastered_at=_parse_dt(data.get("mastered_at")),
        )
