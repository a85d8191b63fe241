"""Content pipeline: one attempt at the external generator, then local fixtures.

Nothing here raises on provider trouble.  Every public coroutine resolves
to usable content, and the reason for falling back is logged.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from aielearn import fallback
from aielearn.errors import ProviderNotConfigured
from aielearn.generator import ContentGenerator
from aielearn.models import (
    Article,
    ArticleWithQuestions,
    ConversationWithQuestions,
    LearningFocus,
    LearningTopic,
    MistakeRecord,
    NothingToReview,
    ProficiencyLevel,
    QuestionType,
    Quiz,
    UserProfile,
    VerificationResult,
)
from aielearn.operations import OperationContext

if TYPE_CHECKING:
    from aielearn.config import Settings
    from aielearn.mistakes import MistakeLedger
    from aielearn.operations import OperationManager

log = logging.getLogger("aielearn.pipeline")

T = TypeVar("T")

DEFAULT_TOPIC = LearningTopic.DAILY_CONVERSATION
DEFAULT_FOCUS = LearningFocus.VOCABULARY
MAX_MISTAKES_PER_QUIZ = fallback.MAX_MISTAKE_QUESTIONS
MINUTES_PER_QUESTION = 2
MINUTES_PER_REVIEW_QUESTION = 3
MIN_ARTICLE_WORDS = 200
MIN_ARTICLE_QUESTIONS = 5
MAX_ARTICLE_QUESTIONS = 15


class GenerationMode(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


def answers_match(user_answer: str, correct_answer: str) -> bool:
    """Trimmed, case-insensitive equality."""
    return user_answer.strip().lower() == correct_answer.strip().lower()


def default_topic(profile: UserProfile) -> LearningTopic:
    if profile.selected_topics:
        return sorted(profile.selected_topics, key=lambda t: t.value)[0]
    return DEFAULT_TOPIC


def default_focus(profile: UserProfile) -> LearningFocus:
    if profile.learning_focuses:
        return sorted(profile.learning_focuses, key=lambda f: f.value)[0]
    return DEFAULT_FOCUS


class ContentPipeline:
    def __init__(
        self,
        generator: ContentGenerator | None = None,
        operations: OperationManager | None = None,
        offline: bool = False,
    ):
        self.generator = generator
        self.operations = operations
        self.offline = offline

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        operations: OperationManager | None = None,
        api_key: str | None = None,
    ) -> ContentPipeline:
        from aielearn.providers import make_provider

        try:
            generator = ContentGenerator(make_provider(settings, api_key=api_key))
        except ProviderNotConfigured as e:
            log.info("%s; using local content", e)
            generator = None
        return cls(generator, operations=operations, offline=settings.offline_mode)

    @property
    def mode(self) -> GenerationMode:
        if self.offline or self.generator is None:
            return GenerationMode.OFFLINE
        return GenerationMode.ONLINE

    # ── Quizzes ───────────────────────────────────────────────────────────

    async def generate_quiz(
        self,
        profile: UserProfile,
        topic: LearningTopic | None = None,
        focus: LearningFocus | None = None,
        count: int = 10,
    ) -> Quiz:
        topic = topic or default_topic(profile)
        focus = focus or default_focus(profile)
        level = profile.proficiency_level

        async def run() -> Quiz:
            questions = await self._attempt(
                "Quiz generation",
                lambda g: g.generate_quiz(level, topic, focus, count),
            )
            title = f"AI: {topic.value} - {focus.value}"
            if not questions:
                questions = fallback.quiz_questions(count, level, topic, focus)
                title = f"Practice: {topic.value} - {focus.value}"
            return Quiz(
                title=title,
                questions=questions,
                estimated_duration=len(questions) * MINUTES_PER_QUESTION,
                topic=topic,
                difficulty=level,
            )

        return await self._track(OperationContext.QUIZ_GENERATION, run)

    async def generate_mistake_quiz(
        self,
        mistakes: list[MistakeRecord],
        profile: UserProfile,
    ) -> Quiz | NothingToReview:
        if not mistakes:
            return NothingToReview()
        sources = list(mistakes[:MAX_MISTAKES_PER_QUIZ])
        level = profile.proficiency_level

        async def run() -> Quiz:
            questions = await self._attempt(
                "Mistake quiz generation",
                lambda g: g.generate_mistake_quiz(sources, level),
            )
            if not questions:
                questions = fallback.mistake_questions(sources)
            questions = questions[: len(sources)]
            return Quiz(
                title="Review: Your Mistakes",
                questions=questions,
                estimated_duration=len(questions) * MINUTES_PER_REVIEW_QUESTION,
                topic=sources[0].topic,
                difficulty=level,
                based_on_mistakes=[m.id for m in sources[: len(questions)]],
            )

        return await self._track(OperationContext.MISTAKE_QUIZ_GENERATION, run)

    async def quick_review(
        self,
        profile: UserProfile,
        ledger: MistakeLedger,
        limit: int = 5,
    ) -> Quiz | NothingToReview:
        return await self.generate_mistake_quiz(ledger.pending_review()[:limit], profile)

    # ── Verification ──────────────────────────────────────────────────────

    async def verify_answer(
        self,
        question: str,
        correct_answer: str,
        user_answer: str,
        question_type: QuestionType,
        explanation: str = "",
    ) -> VerificationResult:
        async def run() -> VerificationResult:
            result = await self._attempt(
                "Answer verification",
                lambda g: g.verify_answer(question, correct_answer, user_answer, question_type),
            )
            if result is not None:
                return result
            is_correct = answers_match(user_answer, correct_answer)
            return VerificationResult(
                is_correct=is_correct,
                explanation=explanation or f"The correct answer is: {correct_answer}",
                feedback=(
                    "Great job!" if is_correct
                    else "Keep practicing! Review the explanation to understand the correct answer."
                ),
            )

        return await self._track(OperationContext.AI_VERIFICATION, run)

    def record_answer(
        self,
        ledger: MistakeLedger,
        quiz: Quiz,
        index: int,
        user_answer: str,
        verification: VerificationResult | None = None,
    ) -> bool:
        """Feed one answer back into the ledger; returns whether it counted as correct.

        Answers to a review quiz update the mistake the question came from.
        A review answered wrong in a new way is also kept as its own mistake.
        """
        question = quiz.questions[index]
        if verification is not None:
            is_correct = verification.is_correct
        else:
            is_correct = answers_match(user_answer, question.correct_answer)

        source: MistakeRecord | None = None
        if quiz.based_on_mistakes and index < len(quiz.based_on_mistakes):
            source_id = quiz.based_on_mistakes[index]
            source = ledger.get(source_id)
            ledger.mark_reviewed(source_id, is_correct)
            if is_correct or source is None or answers_match(user_answer, source.user_answer):
                return is_correct
        elif is_correct:
            return is_correct

        ledger.record(
            question.question,
            question.correct_answer,
            user_answer,
            question.explanation,
            question_type=question.type,
            difficulty=question.difficulty,
            topic=question.topic,
            focus=question.focus,
            feedback=verification.feedback if verification is not None else None,
            options=question.options,
        )
        return is_correct

    # ── Conversations & articles ──────────────────────────────────────────

    async def generate_conversation(
        self,
        level: ProficiencyLevel | UserProfile,
        topic: LearningTopic,
        focus: LearningFocus,
        scenario: str | None = None,
    ) -> ConversationWithQuestions:
        if isinstance(level, UserProfile):
            level = level.proficiency_level
        scenario = scenario or fallback.default_scenario(topic)

        async def run() -> ConversationWithQuestions:
            result = await self._attempt(
                "Conversation generation",
                lambda g: g.generate_conversation(level, topic, focus, scenario),
            )
            if result is None or not result.conversation.messages or not result.questions:
                result = fallback.conversation(level, topic, focus, scenario)
            return result

        return await self._track(OperationContext.QUIZ_GENERATION, run, "Generating conversation...")

    async def generate_article_with_questions(
        self,
        topic: LearningTopic,
        difficulty: ProficiencyLevel,
        focus: LearningFocus,
        word_count: int = 250,
        subject: str | None = None,
    ) -> ArticleWithQuestions:
        word_count = max(MIN_ARTICLE_WORDS, word_count)

        async def run() -> ArticleWithQuestions:
            result = await self._attempt(
                "Article generation",
                lambda g: g.generate_article(topic, difficulty, focus, word_count, subject),
            )
            if result is None or not result.article.content.strip() or not result.questions:
                result = fallback.article_with_questions(topic, difficulty, focus)
            return result

        return await self._track(OperationContext.QUIZ_GENERATION, run, "Generating article...")

    async def generate_questions_for_article(self, article: Article, count: int = 10):
        count = min(MAX_ARTICLE_QUESTIONS, max(MIN_ARTICLE_QUESTIONS, count))

        async def run():
            questions = await self._attempt(
                "Article question generation",
                lambda g: g.generate_article_questions(article, count),
            )
            return questions or fallback.article_questions(article, count)

        return await self._track(OperationContext.QUIZ_GENERATION, run, "Generating questions...")

    # ── Internals ─────────────────────────────────────────────────────────

    async def _attempt(
        self,
        what: str,
        call: Callable[[ContentGenerator], Awaitable[T]],
    ) -> T | None:
        """One external call; None means use local content."""
        if self.mode is GenerationMode.OFFLINE:
            log.debug("%s: offline, using local content", what)
            return None
        try:
            return await call(self.generator)
        except Exception as e:
            log.warning("%s failed, using local content: %s", what, e)
            return None

    async def _track(
        self,
        context: OperationContext,
        run: Callable[[], Awaitable[T]],
        message: str | None = None,
    ) -> T:
        if self.operations is None:
            return await run()
        return await self.operations.with_operation(context, run, message)
