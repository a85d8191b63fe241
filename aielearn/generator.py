"""Talk to an LLM provider and turn its JSON answers into content models.

Every method makes exactly one provider call.  Anything that goes wrong
surfaces as a ``GenerationError`` subclass; callers decide how to fall back.
"""
from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from aielearn.errors import GenerationError, ParseError, ProviderNotConfigured, TransportError
from aielearn.models import (
    Article,
    ArticleWithQuestions,
    Conversation,
    ConversationMessage,
    ConversationWithQuestions,
    LearningElement,
    LearningElementType,
    LearningFocus,
    LearningTopic,
    MistakeRecord,
    ProficiencyLevel,
    QuestionType,
    QuizQuestion,
    VerificationResult,
)
from aielearn.prompts import (
    ARTICLE_PROMPT,
    ARTICLE_QUESTIONS_PROMPT,
    CONVERSATION_PROMPT,
    MISTAKE_QUIZ_PROMPT,
    QUIZ_PROMPT,
    VERIFY_PROMPT,
    format_article,
    format_mistakes,
    question_shape,
)

if TYPE_CHECKING:
    from aielearn.providers.base import LLMProvider

_log = logging.getLogger("aielearn.generator")


def extract_json(text: str) -> Any | None:
    """Extract a JSON object or array from an LLM response.

    Strips ``<think>`` blocks, then tries a code-fenced block, then the whole
    text, then balanced ``{…}`` / ``[…]`` substrings, preferring the last
    one since models often draft partial JSON before the final answer.
    """
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()

    m = re.search(r"```(?:json)?\s*\n?([\[{].*?[\]}])\s*\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for candidate in reversed(_find_json_values(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def _find_json_values(text: str) -> list[str]:
    """Find balanced top-level ``{…}`` and ``[…]`` substrings in *text*."""
    pairs = {"{": "}", "[": "]"}
    results: list[str] = []
    i = 0
    while i < len(text):
        opener = text[i]
        if opener not in pairs:
            i += 1
            continue
        closer = pairs[opener]
        depth = 0
        in_str = False
        escape = False
        for j in range(i, len(text)):
            ch = text[j]
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_str = not in_str
                continue
            if in_str:
                continue
            if ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    results.append(text[i : j + 1])
                    i = j + 1
                    break
        else:
            # Unbalanced, skip this opener
            i += 1
    return results


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        raise ParseError(f"missing field {key!r}")
    if isinstance(value, (int, float, bool)):
        # "correctAnswer": 5 or true shows up often enough
        value = str(value) if not isinstance(value, bool) else ("True" if value else "False")
    if not isinstance(value, str):
        raise ParseError(f"field {key!r} must be a string (got {type(value).__name__})")
    return value


def parse_question(
    data: Any,
    difficulty: ProficiencyLevel,
    topic: LearningTopic,
    focus: LearningFocus,
    conversation: Conversation | None = None,
) -> QuizQuestion:
    if not isinstance(data, dict):
        raise ParseError(f"question must be an object (got {type(data).__name__})")
    qtype = QuestionType.parse(data.get("type"))
    options = data.get("options")
    if options is not None:
        if not isinstance(options, list):
            raise ParseError("options must be a list")
        options = [str(o) for o in options]
    elif qtype is QuestionType.TRUE_FALSE:
        options = ["True", "False"]
    return QuizQuestion(
        type=qtype,
        question=_require_str(data, "question"),
        correct_answer=_require_str(data, "correctAnswer"),
        options=options,
        explanation=_require_str(data, "explanation"),
        difficulty=difficulty,
        topic=topic,
        focus=focus,
        conversation=conversation,
    )


def _question_list(payload: Any, key: str | None = None) -> list:
    if key is not None:
        if not isinstance(payload, dict) or key not in payload:
            raise ParseError(f"expected an object with {key!r}")
        payload = payload[key]
    if isinstance(payload, dict) and "questions" in payload:
        payload = payload["questions"]
    if not isinstance(payload, list):
        raise ParseError(f"expected a list of questions (got {type(payload).__name__})")
    return payload


class ContentGenerator:
    """External content source backed by an LLM provider."""

    def __init__(self, llm: LLMProvider | None):
        if llm is None:
            raise ProviderNotConfigured()
        self.llm = llm

    def name(self) -> str:
        return self.llm.name()

    async def _ask(self, prompt: str, temperature: float, max_tokens: int) -> Any:
        try:
            response = await self.llm.generate(prompt, temperature=temperature, max_tokens=max_tokens)
        except GenerationError:
            raise
        except Exception as e:
            # Unknown provider failures are treated as transport problems
            raise TransportError(f"{type(e).__name__}: {e}") from e
        data = extract_json(response)
        if data is None:
            _log.debug("Raw response: %.300s", response)
            raise ParseError("response did not contain valid JSON")
        return data

    async def generate_quiz(
        self,
        level: ProficiencyLevel,
        topic: LearningTopic,
        focus: LearningFocus,
        count: int,
    ) -> list[QuizQuestion]:
        prompt = QUIZ_PROMPT.format(
            count=count,
            level=level.value.lower(),
            focus=focus.value,
            focus_lower=focus.value.lower(),
            topic=topic.value,
            question_shape=question_shape(),
        )
        data = await self._ask(prompt, temperature=0.7, max_tokens=2000)
        questions = [parse_question(q, level, topic, focus) for q in _question_list(data)[:count]]
        _log.info("Parsed %d quiz questions", len(questions))
        return questions

    async def generate_mistake_quiz(
        self,
        mistakes: list[MistakeRecord],
        level: ProficiencyLevel,
    ) -> list[QuizQuestion]:
        """One question per mistake, in order, keeping each mistake's classification."""
        prompt = MISTAKE_QUIZ_PROMPT.format(
            level=level.value.lower(),
            mistakes=format_mistakes(mistakes),
            count=len(mistakes),
            question_shape=question_shape("Explanation connecting to their previous mistake"),
        )
        data = await self._ask(prompt, temperature=0.8, max_tokens=2500)
        raw = _question_list(data)[: len(mistakes)]
        questions = [
            parse_question(q, m.difficulty, m.topic, m.focus)
            for q, m in zip(raw, mistakes)
        ]
        _log.info("Parsed %d mistake-based questions", len(questions))
        return questions

    async def verify_answer(
        self,
        question: str,
        correct_answer: str,
        user_answer: str,
        question_type: QuestionType,
    ) -> VerificationResult:
        prompt = VERIFY_PROMPT.format(
            question=question,
            correct_answer=correct_answer,
            user_answer=user_answer,
            question_type=question_type.value,
        )
        data = await self._ask(prompt, temperature=0.3, max_tokens=500)
        if not isinstance(data, dict):
            raise ParseError("verification must be an object")
        is_correct = data.get("isCorrect")
        if isinstance(is_correct, str) and is_correct.strip().lower() in ("true", "false"):
            is_correct = is_correct.strip().lower() == "true"
        if not isinstance(is_correct, bool):
            raise ParseError(f"isCorrect must be a boolean (got {is_correct!r})")
        return VerificationResult(
            is_correct=is_correct,
            explanation=_require_str(data, "explanation"),
            feedback=_require_str(data, "feedback"),
        )

    async def generate_conversation(
        self,
        level: ProficiencyLevel,
        topic: LearningTopic,
        focus: LearningFocus,
        scenario: str,
    ) -> ConversationWithQuestions:
        prompt = CONVERSATION_PROMPT.format(
            level=level.value.lower(),
            topic=topic.value,
            scenario=scenario,
            focus=focus.value,
            question_shape=question_shape("Why this is the correct answer"),
        )
        data = await self._ask(prompt, temperature=0.7, max_tokens=2500)
        if not isinstance(data, dict) or not isinstance(data.get("conversation"), dict):
            raise ParseError("expected an object with 'conversation'")
        conv = data["conversation"]
        messages_raw = conv.get("messages")
        if not isinstance(messages_raw, list):
            raise ParseError("conversation.messages must be a list")

        messages = []
        for msg in messages_raw:
            if not isinstance(msg, dict):
                raise ParseError("conversation message must be an object")
            elements = [
                LearningElement(
                    text=_require_str(el, "text"),
                    type=LearningElementType.parse(el.get("type")),
                    explanation=_require_str(el, "explanation"),
                )
                for el in msg.get("learningElements") or []
                if isinstance(el, dict)
            ]
            messages.append(ConversationMessage(
                speaker=_require_str(msg, "speaker"),
                message=_require_str(msg, "message"),
                learning_elements=elements,
            ))

        reading_time = conv.get("estimatedReadingTime", 3)
        conversation = Conversation(
            title=_require_str(conv, "title"),
            scenario=conv.get("scenario") or scenario,
            messages=messages,
            topic=topic,
            difficulty=level,
            learning_focus=focus,
            estimated_reading_time=reading_time if isinstance(reading_time, int) else 3,
        )
        questions = [
            parse_question(q, level, topic, focus, conversation=conversation)
            for q in _question_list(data, "questions")
        ]
        return ConversationWithQuestions(conversation=conversation, questions=questions)

    async def generate_article(
        self,
        topic: LearningTopic,
        difficulty: ProficiencyLevel,
        focus: LearningFocus,
        word_count: int,
        subject: str | None = None,
    ) -> ArticleWithQuestions:
        prompt = ARTICLE_PROMPT.format(
            word_count=word_count,
            level=difficulty.value.lower(),
            subject=subject or topic.value,
            topic=topic.value,
            focus=focus.value,
            question_shape=question_shape("Why this is correct and how it relates to the article"),
        )
        data = await self._ask(prompt, temperature=0.7, max_tokens=3000)
        if not isinstance(data, dict) or not isinstance(data.get("article"), dict):
            raise ParseError("expected an object with 'article'")
        art = data["article"]
        tags = art.get("tags") or []
        article = Article(
            title=_require_str(art, "title"),
            content=_require_str(art, "content"),
            topic=topic,
            difficulty=difficulty,
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            summary=art.get("summary") or "",
        )
        questions = [
            parse_question(q, difficulty, topic, focus)
            for q in _question_list(data, "questions")
        ]
        return ArticleWithQuestions(article=article, questions=questions)

    async def generate_article_questions(self, article: Article, count: int) -> list[QuizQuestion]:
        prompt = ARTICLE_QUESTIONS_PROMPT.format(
            count=count,
            level=article.difficulty.value.lower(),
            title=article.title,
            content=format_article(article),
            question_shape=question_shape("Why this is correct and how it relates to the article"),
        )
        data = await self._ask(prompt, temperature=0.7, max_tokens=2500)
        return [
            parse_question(q, article.difficulty, article.topic, LearningFocus.READING)
            for q in _question_list(data)[:count]
        ]
