"""Prompt templates for content generation."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aielearn.models import Article, MistakeRecord

QUESTION_JSON_SHAPE = """\
  {{
    "type": "multipleChoice",
    "question": "Question text here",
    "correctAnswer": "Correct answer",
    "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
    "explanation": "{explanation_hint}"
  }}"""

QUIZ_PROMPT = """\
Create {count} engaging English language learning quiz questions for a \
{level} level student.

English Skill Focus: {focus}
Context: {topic}

Use varied, engaging scenarios and teach practical vocabulary, grammar and \
language patterns.

Please return ONLY a valid JSON array with this exact format:
[
{question_shape}
]

Requirements:
- Mix question types: multipleChoice, fillInTheBlank, trueFalse
- Focus on {focus_lower} skills
- Appropriate difficulty for {level} level English learners
- For multiple choice, always provide exactly 4 options
- For fill in the blank, put the blank as "___" in the question
- For true/false, the correctAnswer should be "True" or "False"

Return ONLY the JSON array, no other text.
"""

MISTAKE_QUIZ_PROMPT = """\
Create a personalized review quiz based on the user's previous mistakes. \
The user is at {level} level.

Previous Mistakes:
{mistakes}

Create questions that help the user master these concepts. Don't just repeat \
the exact same questions - create similar questions that test the same \
underlying concepts and patterns.

Please return ONLY a valid JSON array with this exact format:
[
{question_shape}
]

Requirements:
- Create exactly {count} questions, one per mistake above, in the same order
- Focus on the same concepts but with slight variations to ensure understanding
- Include the user's previous wrong answer as a distractor where the question type allows options
- Provide explanations that reference their learning progress
- Use encouraging language

Return ONLY the JSON array, no other text.
"""

VERIFY_PROMPT = """\
Verify this English learning quiz answer:

Question: {question}
Correct Answer: {correct_answer}
User Answer: {user_answer}
Question Type: {question_type}

Please return ONLY a valid JSON object with this exact format:
{{
  "isCorrect": true,
  "explanation": "Detailed explanation of the correct answer",
  "feedback": "Encouraging feedback for the user"
}}

Guidelines:
- Be accurate but understanding; consider minor spelling variations
- If incorrect, explain why and provide the right approach
- Keep feedback encouraging and educational

Return ONLY the JSON object, no other text.
"""

CONVERSATION_PROMPT = """\
Create a realistic English conversation between 2 people for {level} level \
English learners.

Topic: {topic}
Scenario: {scenario}
Learning Focus: {focus}

Requirements:
1. A natural conversation with 6-8 exchanges between 2 speakers
2. 4-6 learning elements (phrasal verbs, idioms, vocabulary, grammar, expressions)
3. Then 5 comprehension questions about the conversation content

Please return ONLY a valid JSON object with this exact format:
{{
  "conversation": {{
    "title": "Conversation title",
    "scenario": "Brief scenario description",
    "messages": [
      {{
        "speaker": "Speaker name",
        "message": "What they said",
        "learningElements": [
          {{"text": "phrasal verb or idiom", "type": "phrasalVerb|idiom|vocabulary|grammar|expression", "explanation": "What it means"}}
        ]
      }}
    ],
    "estimatedReadingTime": 3
  }},
  "questions": [
{question_shape}
  ]
}}

Return ONLY the JSON object, no other text.
"""

ARTICLE_PROMPT = """\
Create an educational article with about {word_count} words (minimum 200) for \
English language learners at {level} level.

Requirements:
- Topic: {subject} (related to {topic})
- Focus: {focus}
- Natural, flowing paragraphs with vocabulary appropriate for the level

After the article, create exactly 10 comprehension questions.

Please return ONLY a valid JSON object with this exact format:
{{
  "article": {{
    "title": "Article title here",
    "content": "Full article content here",
    "summary": "Brief 1-2 sentence summary",
    "tags": ["tag1", "tag2", "tag3"]
  }},
  "questions": [
{question_shape}
  ]
}}

Return ONLY the JSON object, no other text.
"""

ARTICLE_QUESTIONS_PROMPT = """\
Based on the following article, create exactly {count} comprehension questions \
for English language learners at {level} level.

Article Title: {title}
Article Content: {content}

Requirements:
- Mix question types: multipleChoice, fillInTheBlank, trueFalse
- Questions should reference specific parts of the article
- Include detailed explanations for each answer

Please return ONLY a valid JSON object with this exact format:
{{
  "questions": [
{question_shape}
  ]
}}

Return ONLY the JSON object, no other text.
"""


def question_shape(explanation_hint: str = "Detailed explanation of why this is correct") -> str:
    return QUESTION_JSON_SHAPE.format(explanation_hint=explanation_hint)


def format_mistakes(mistakes: list[MistakeRecord]) -> str:
    blocks = []
    for m in mistakes:
        blocks.append(
            f'- Question: "{m.question}"\n'
            f'- Correct Answer: "{m.correct_answer}"\n'
            f'- User\'s Wrong Answer: "{m.user_answer}"\n'
            f"- Type: {m.question_type.value}\n"
            f"- Topic: {m.topic.value}\n"
            f"- Focus: {m.focus.value}\n"
            f"- Explanation: {m.explanation}"
        )
    return "\n\n".join(blocks)


def format_article(article: Article, max_chars: int = 6000) -> str:
    content = article.content
    if len(content) > max_chars:
        content = content[:max_chars] + "..."
    return content
