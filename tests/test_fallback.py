"""Tests for the deterministic offline content."""
from __future__ import annotations

from aielearn import fallback
from aielearn.models import (
    Article,
    LearningFocus,
    LearningTopic,
    MistakeRecord,
    ProficiencyLevel,
    QuestionType,
    utcnow,
)


def _mistake(qtype: QuestionType, options=None, user_answer="because") -> MistakeRecord:
    return MistakeRecord(
        question="I stayed home ___ it was raining.",
        correct_answer="because",
        user_answer=user_answer,
        explanation="'Because' gives a reason.",
        question_type=qtype,
        difficulty=ProficiencyLevel.BEGINNER,
        topic=LearningTopic.GRAMMAR,
        focus=LearningFocus.GRAMMAR,
        created_at=utcnow(),
        options=options,
    )


class TestQuizPool:
    def test_tagged_as_requested(self):
        qs = fallback.quiz_questions(3, ProficiencyLevel.ADVANCED, LearningTopic.TRAVEL, LearningFocus.WRITING)
        assert len(qs) == 3
        assert {(q.difficulty, q.topic, q.focus) for q in qs} == {
            (ProficiencyLevel.ADVANCED, LearningTopic.TRAVEL, LearningFocus.WRITING)
        }

    def test_answers_are_options(self):
        for q in fallback.quiz_questions(10, ProficiencyLevel.BEGINNER, LearningTopic.GENERAL,
                                         LearningFocus.VOCABULARY):
            assert q.correct_answer in q.options

    def test_zero(self):
        assert fallback.quiz_questions(0, ProficiencyLevel.BEGINNER, LearningTopic.GENERAL,
                                       LearningFocus.VOCABULARY) == []


class TestMistakeQuestions:
    def test_multiple_choice_without_options(self):
        m = _mistake(QuestionType.MULTIPLE_CHOICE, user_answer="although")
        q = fallback.mistake_questions([m])[0]
        assert q.question == "Review: I stayed home ___ it was raining."
        assert q.options[:2] == ["because", "although"]
        assert len(q.options) == 4
        assert len(set(o.lower() for o in q.options)) == 4

    def test_multiple_choice_keeps_stored_options(self):
        m = _mistake(QuestionType.MULTIPLE_CHOICE, options=["because", "so", "but", "or"])
        assert fallback.mistake_questions([m])[0].options == ["because", "so", "but", "or"]

    def test_distractors_are_deterministic(self):
        m = _mistake(QuestionType.MULTIPLE_CHOICE, user_answer="since")
        first = fallback.mistake_questions([m])[0].options
        second = fallback.mistake_questions([m])[0].options
        assert first == second

    def test_fill_in_the_blank(self):
        q = fallback.mistake_questions([_mistake(QuestionType.FILL_IN_THE_BLANK)])[0]
        assert q.question == "I stayed home ___ it was raining."
        assert q.explanation.startswith("Let's review this concept: ")
        assert q.type is QuestionType.FILL_IN_THE_BLANK

    def test_other_types(self):
        q = fallback.mistake_questions([_mistake(QuestionType.TRANSLATION)])[0]
        assert q.explanation.startswith("Review: ")

    def test_capped_at_ten(self):
        mistakes = [_mistake(QuestionType.TRUE_FALSE) for _ in range(14)]
        assert len(fallback.mistake_questions(mistakes)) == 10


class TestConversation:
    def test_default_scenarios(self):
        assert fallback.default_scenario(LearningTopic.TRAVEL) == "At the Airport"
        assert fallback.default_scenario(LearningTopic.TECHNOLOGY) == "Tech Support Call"

    def test_travel_script(self):
        result = fallback.conversation(ProficiencyLevel.BEGINNER, LearningTopic.TRAVEL, LearningFocus.SPEAKING)
        assert result.conversation.messages[0].speaker == "Sarah"
        assert result.conversation.title == "Conversation: At the Airport"

    def test_questions_answerable_from_elements(self):
        result = fallback.conversation(ProficiencyLevel.BEGINNER, LearningTopic.ACADEMIC, LearningFocus.SPEAKING,
                                       scenario="Library chat")
        assert result.conversation.scenario == "Library chat"
        elements = [el for msg in result.conversation.messages for el in msg.learning_elements]
        mc = [q for q in result.questions if q.type is QuestionType.MULTIPLE_CHOICE]
        assert len(mc) == len(elements)
        for q in mc:
            assert q.correct_answer in q.options
            assert len(set(q.options)) == 4


class TestArticles:
    def test_choice_by_topic(self):
        a = fallback.article_with_questions(LearningTopic.GENERAL, ProficiencyLevel.BEGINNER, LearningFocus.READING)
        b = fallback.article_with_questions(LearningTopic.TRAVEL, ProficiencyLevel.BEGINNER, LearningFocus.READING)
        assert a.article.title != b.article.title
        assert a.article.topic is LearningTopic.GENERAL

    def test_article_questions_use_metadata(self):
        article = Article("Trains", "word " * 400, LearningTopic.TRAVEL, ProficiencyLevel.ADVANCED)
        qs = fallback.article_questions(article, 5)
        assert qs[0].correct_answer == "Trains"
        assert qs[2].correct_answer == "2"
        assert "400" in qs[4].question
        assert all(q.focus is LearningFocus.READING for q in qs)
