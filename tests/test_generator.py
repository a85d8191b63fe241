"""Tests for the external content generator (JSON extraction, parsing, error mapping)."""
from __future__ import annotations

import pytest

from conftest import FakeLLM, as_response, question_json

from aielearn.errors import ParseError, ProviderNotConfigured, StatusError, TransportError
from aielearn.generator import ContentGenerator, extract_json, parse_question
from aielearn.models import (
    Article,
    LearningElementType,
    LearningFocus,
    LearningTopic,
    MistakeRecord,
    ProficiencyLevel,
    QuestionType,
    utcnow,
)

LEVEL = ProficiencyLevel.INTERMEDIATE
TOPIC = LearningTopic.TRAVEL
FOCUS = LearningFocus.VOCABULARY


class TestExtractJson:
    def test_bare_object(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_bare_array(self):
        assert extract_json('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_code_fence(self):
        assert extract_json('Sure!\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_code_fence_array_no_lang(self):
        assert extract_json('```\n[1, 2]\n```') == [1, 2]

    def test_think_block_stripped(self):
        text = '<think>maybe {"a": 0}?</think>\n{"a": 1}'
        assert extract_json(text) == {"a": 1}

    def test_surrounding_prose(self):
        text = 'Here it is:\n\n{"value": 42, "nested": {"x": "}"}}\n\nHope that helps!'
        assert extract_json(text) == {"value": 42, "nested": {"x": "}"}}

    def test_prefers_last_value(self):
        text = 'Draft: {"a": 1}\nFinal: {"a": 2}'
        assert extract_json(text) == {"a": 2}

    def test_not_json(self):
        assert extract_json("This is not JSON at all.") is None

    def test_unbalanced(self):
        assert extract_json('{"stem": "missing closing brace"') is None


class TestParseQuestion:
    def test_full_question(self):
        q = parse_question(question_json(1)[0], LEVEL, TOPIC, FOCUS)
        assert q.type is QuestionType.MULTIPLE_CHOICE
        assert q.correct_answer == "answer 1"
        assert q.options == ["answer 1", "b", "c", "d"]
        assert q.topic is TOPIC

    def test_true_false_gets_default_options(self):
        data = {"type": "trueFalse", "question": "Q", "correctAnswer": True, "explanation": "E"}
        q = parse_question(data, LEVEL, TOPIC, FOCUS)
        assert q.options == ["True", "False"]
        assert q.correct_answer == "True"

    def test_numeric_answer_coerced(self):
        data = {"type": "fillInTheBlank", "question": "2+3=___", "correctAnswer": 5, "explanation": "E"}
        assert parse_question(data, LEVEL, TOPIC, FOCUS).correct_answer == "5"

    def test_missing_field(self):
        with pytest.raises(ParseError):
            parse_question({"question": "Q", "explanation": "E"}, LEVEL, TOPIC, FOCUS)

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            parse_question(["Q"], LEVEL, TOPIC, FOCUS)

    def test_bad_options(self):
        data = {"question": "Q", "correctAnswer": "A", "explanation": "E", "options": "A, B"}
        with pytest.raises(ParseError):
            parse_question(data, LEVEL, TOPIC, FOCUS)


def _mistake(i: int, topic=LearningTopic.GRAMMAR) -> MistakeRecord:
    return MistakeRecord(
        question=f"Old question {i}",
        correct_answer=f"right {i}",
        user_answer=f"wrong {i}",
        explanation="E",
        question_type=QuestionType.FILL_IN_THE_BLANK,
        difficulty=ProficiencyLevel.BEGINNER,
        topic=topic,
        focus=LearningFocus.GRAMMAR,
        created_at=utcnow(),
    )


class TestContentGenerator:
    def test_requires_provider(self):
        with pytest.raises(ProviderNotConfigured):
            ContentGenerator(None)

    @pytest.mark.asyncio
    async def test_generate_quiz(self):
        llm = FakeLLM([as_response(question_json(3))])
        questions = await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 3)
        assert len(questions) == 3
        assert llm.call_count == 1
        assert "3 engaging" in llm.prompts[0]
        assert all(q.difficulty is LEVEL for q in questions)

    @pytest.mark.asyncio
    async def test_quiz_capped_at_count(self):
        llm = FakeLLM([as_response(question_json(12))])
        questions = await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 10)
        assert len(questions) == 10

    @pytest.mark.asyncio
    async def test_quiz_wrapped_in_object(self):
        llm = FakeLLM([as_response({"questions": question_json(2)})])
        questions = await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 2)
        assert len(questions) == 2

    @pytest.mark.asyncio
    async def test_unparseable_response(self):
        llm = FakeLLM(["I cannot help with that."])
        with pytest.raises(ParseError):
            await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 3)

    @pytest.mark.asyncio
    async def test_provider_errors_pass_through(self):
        llm = FakeLLM(error=StatusError(429, "rate limited"))
        with pytest.raises(StatusError) as exc:
            await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 3)
        assert exc.value.status_code == 429

    @pytest.mark.asyncio
    async def test_unknown_errors_become_transport_errors(self):
        llm = FakeLLM(error=ConnectionResetError("peer reset"))
        with pytest.raises(TransportError):
            await ContentGenerator(llm).generate_quiz(LEVEL, TOPIC, FOCUS, 3)

    @pytest.mark.asyncio
    async def test_mistake_quiz_truncated_and_classified(self):
        mistakes = [_mistake(1, LearningTopic.TRAVEL), _mistake(2, LearningTopic.BUSINESS)]
        llm = FakeLLM([as_response(question_json(5))])
        questions = await ContentGenerator(llm).generate_mistake_quiz(mistakes, LEVEL)
        assert len(questions) == 2
        assert [q.topic for q in questions] == [LearningTopic.TRAVEL, LearningTopic.BUSINESS]
        assert all(q.difficulty is ProficiencyLevel.BEGINNER for q in questions)
        assert "wrong 1" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_verify_answer(self):
        llm = FakeLLM(['{"isCorrect": "true", "explanation": "Close enough.", "feedback": "Nice!"}'])
        result = await ContentGenerator(llm).verify_answer("Q", "colour", "color", QuestionType.FILL_IN_THE_BLANK)
        assert result.is_correct is True
        assert result.feedback == "Nice!"

    @pytest.mark.asyncio
    async def test_verify_answer_rejects_missing_verdict(self):
        llm = FakeLLM(['{"explanation": "?", "feedback": "?"}'])
        with pytest.raises(ParseError):
            await ContentGenerator(llm).verify_answer("Q", "a", "b", QuestionType.FILL_IN_THE_BLANK)

    @pytest.mark.asyncio
    async def test_generate_conversation(self):
        payload = {
            "conversation": {
                "title": "Check-in",
                "scenario": "At the hotel desk",
                "messages": [
                    {"speaker": "Ana", "message": "I'd like to check in.",
                     "learningElements": [{"text": "check in", "type": "phrasalVerb", "explanation": "Register"}]},
                    {"speaker": "Clerk", "message": "Of course."},
                ],
                "estimatedReadingTime": 2,
            },
            "questions": question_json(2),
        }
        result = await ContentGenerator(FakeLLM([as_response(payload)])).generate_conversation(
            LEVEL, TOPIC, FOCUS, "At the hotel desk"
        )
        conv = result.conversation
        assert conv.title == "Check-in"
        assert conv.estimated_reading_time == 2
        assert conv.messages[0].learning_elements[0].type is LearningElementType.PHRASAL_VERB
        assert conv.messages[1].learning_elements == []
        assert all(q.conversation is conv for q in result.questions)

    @pytest.mark.asyncio
    async def test_generate_article(self):
        payload = {
            "article": {"title": "Trains", "content": "Trains are fast. " * 60,
                        "summary": "About trains.", "tags": ["travel"]},
            "questions": question_json(10),
        }
        llm = FakeLLM([as_response(payload)])
        result = await ContentGenerator(llm).generate_article(TOPIC, LEVEL, FOCUS, 250, subject="Rail travel")
        assert result.article.title == "Trains"
        assert result.article.tags == ["travel"]
        assert len(result.questions) == 10
        assert "Rail travel" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_article_questions_capped(self):
        article = Article("Trains", "Trains are fast.", TOPIC, LEVEL)
        llm = FakeLLM([as_response({"questions": question_json(8)})])
        questions = await ContentGenerator(llm).generate_article_questions(article, 6)
        assert len(questions) == 6
        assert all(q.focus is LearningFocus.READING for q in questions)
