"""CLI entry point for aielearn.

Usage:
  python -m aielearn quiz [--count N] [--topic TOPIC] [--focus FOCUS] [--level LEVEL]
  python -m aielearn review [--limit N] [--level LEVEL]
  python -m aielearn mistakes [--clear-mastered]
  python -m aielearn verify QUESTION CORRECT_ANSWER USER_ANSWER
  python -m aielearn article [--topic TOPIC] [--focus FOCUS] [--level LEVEL] [--words N]
"""
from __future__ import annotations

import asyncio
import logging
import sys
from enum import Enum
from typing import TypeVar

E = TypeVar("E", bound=Enum)


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")
    args = sys.argv[1:]
    command = args[0] if args else "quiz"

    if command == "quiz":
        _quiz(args[1:])
    elif command == "review":
        _review(args[1:])
    elif command == "mistakes":
        _mistakes(args[1:])
    elif command == "verify":
        _verify(args[1:])
    elif command == "article":
        _article(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: quiz, review, mistakes, verify, article")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str | None) -> str | None:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _parse_enum(enum_cls: type[E], raw: str | None) -> E | None:
    if raw is None:
        return None
    wanted = raw.strip().lower().replace("_", " ")
    for member in enum_cls:
        if member.value.lower() == wanted or member.name.lower().replace("_", " ") == wanted:
            return member
    choices = ", ".join(m.value for m in enum_cls)
    print(f"Unknown {enum_cls.__name__} {raw!r}. Choose from: {choices}")
    sys.exit(1)


def _setup():
    from aielearn.config import load_settings
    from aielearn.mistakes import MistakeLedger, ReviewSchedule
    from aielearn.operations import OperationManager
    from aielearn.pipeline import ContentPipeline
    from aielearn.storage import SqliteKeyValueStore

    settings = load_settings()
    store = SqliteKeyValueStore(settings.db_full_path)
    ledger = MistakeLedger(
        store,
        schedule=ReviewSchedule.from_settings(settings),
        storage_key=settings.mistakes_storage_key,
    )
    operations = OperationManager.from_settings(settings)
    pipeline = ContentPipeline.from_settings(settings, operations=operations)
    return settings, store, ledger, pipeline


def _profile(args: list[str]):
    from aielearn.models import LearningFocus, LearningTopic, ProficiencyLevel, UserProfile

    level = _parse_enum(ProficiencyLevel, _parse_flag(args, "--level", None))
    topic = _parse_enum(LearningTopic, _parse_flag(args, "--topic", None))
    focus = _parse_enum(LearningFocus, _parse_flag(args, "--focus", None))
    return UserProfile(
        proficiency_level=level or ProficiencyLevel.BEGINNER,
        selected_topics={topic} if topic else set(),
        learning_focuses={focus} if focus else set(),
    )


def _ask(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


async def _run_quiz(pipeline, ledger, quiz) -> None:
    print(f"\n{quiz.title}  ({quiz.total_questions} questions, ~{quiz.estimated_duration} min)")
    print("=" * 60)
    correct = 0
    answered = 0
    for i, q in enumerate(quiz.questions):
        print(f"\n{i + 1}. {q.question}")
        for j, opt in enumerate(q.safe_options):
            print(f"   {chr(ord('a') + j)}) {opt}")
        answer = _ask("> ")
        if answer is None:
            break
        # Accept the option letter as shorthand
        opts = q.safe_options
        if len(answer.strip()) == 1 and opts:
            idx = ord(answer.strip().lower()) - ord("a")
            if 0 <= idx < len(opts):
                answer = opts[idx]
        result = await pipeline.verify_answer(q.question, q.correct_answer, answer, q.type, q.explanation)
        ok = pipeline.record_answer(ledger, quiz, i, answer, result)
        answered += 1
        correct += ok
        print("Correct!" if ok else f"Not quite. Answer: {q.correct_answer}")
        print(f"   {result.explanation}")
    if answered:
        print(f"\nScore: {correct}/{answered}")


def _quiz(args: list[str]):
    settings, store, ledger, pipeline = _setup()
    count = int(_parse_flag(args, "--count", str(settings.quiz_question_count)))
    profile = _profile(args)
    print(f"Generating {count} questions ({pipeline.mode.value})...")

    async def run():
        quiz = await pipeline.generate_quiz(profile, count=count)
        await _run_quiz(pipeline, ledger, quiz)

    asyncio.run(run())
    store.close()


def _review(args: list[str]):
    from aielearn.models import NothingToReview

    limit = int(_parse_flag(args, "--limit", "5"))
    settings, store, ledger, pipeline = _setup()
    profile = _profile(args)

    async def run():
        quiz = await pipeline.quick_review(profile, ledger, limit=limit)
        if isinstance(quiz, NothingToReview):
            print(quiz.message)
            return
        await _run_quiz(pipeline, ledger, quiz)

    asyncio.run(run())
    store.close()


def _mistakes(args: list[str]):
    settings, store, ledger, pipeline = _setup()
    if "--clear-mastered" in args:
        removed = ledger.clear_mastered()
        print(f"Removed {removed} mastered mistakes")

    print("Mistakes")
    print("=" * 40)
    print(f"Total:          {ledger.total_count}")
    print(f"Pending review: {ledger.pending_review_count}")
    print(f"Mastered:       {ledger.mastered_count}")
    for m in ledger.mistakes:
        if m.is_mastered:
            state = "mastered"
        elif ledger.needs_review(m):
            state = "due"
        else:
            state = "waiting"
        print(f"\n[{state}] {m.question}")
        print(f"   your answer: {m.user_answer}  correct: {m.correct_answer}")
        print(f"   {m.topic.value} / {m.focus.value}, reviewed {m.review_count}x, "
              f"{m.days_since_created()} days ago")
    store.close()


def _verify(args: list[str]):
    from aielearn.models import QuestionType

    if len(args) < 3:
        print("Usage: python -m aielearn verify QUESTION CORRECT_ANSWER USER_ANSWER")
        sys.exit(1)
    question, correct, user = args[:3]
    settings, store, ledger, pipeline = _setup()
    result = asyncio.run(
        pipeline.verify_answer(question, correct, user, QuestionType.FILL_IN_THE_BLANK)
    )
    print("Correct" if result.is_correct else "Incorrect")
    print(result.explanation)
    print(result.feedback)
    store.close()


def _article(args: list[str]):
    from aielearn.models import LearningFocus, LearningTopic, ProficiencyLevel

    words = int(_parse_flag(args, "--words", "250"))
    topic = _parse_enum(LearningTopic, _parse_flag(args, "--topic", None)) or LearningTopic.GENERAL
    focus = _parse_enum(LearningFocus, _parse_flag(args, "--focus", None)) or LearningFocus.READING
    level = _parse_enum(ProficiencyLevel, _parse_flag(args, "--level", None)) or ProficiencyLevel.INTERMEDIATE
    settings, store, ledger, pipeline = _setup()

    result = asyncio.run(pipeline.generate_article_with_questions(topic, level, focus, word_count=words))
    article = result.article
    print(article.title)
    print("=" * len(article.title))
    print(f"{article.word_count} words, ~{article.estimated_reading_time} min read")
    print()
    print(article.content)
    print()
    for i, q in enumerate(result.questions, 1):
        print(f"{i}. {q.question}")
        for opt in q.safe_options:
            print(f"   - {opt}")
    store.close()


if __name__ == "__main__":
    main()
