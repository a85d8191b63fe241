"""Deterministic offline content.

Used whenever no provider is configured or the provider call fails, so
callers always receive something usable.  Same input, same output.
"""
from __future__ import annotations

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
)

MAX_MISTAKE_QUESTIONS = 10

MC = QuestionType.MULTIPLE_CHOICE
FB = QuestionType.FILL_IN_THE_BLANK
TF = QuestionType.TRUE_FALSE

# (type, question, correct answer, options, explanation)
QUIZ_POOL: list[tuple[QuestionType, str, str, list[str], str]] = [
    (MC, "Which word means 'extremely tired'?", "exhausted",
     ["exhausted", "excited", "excellent", "expensive"],
     "'Exhausted' means completely drained of energy. It is stronger than 'tired'."),
    (FB, "I need to ___ up early tomorrow for my interview.", "wake",
     ["wake", "get", "stand", "pick"],
     "'Wake up' is a phrasal verb meaning to stop sleeping."),
    (MC, "What does the idiom 'break the ice' mean?", "start a conversation",
     ["start a conversation", "fix something", "be very cold", "break something"],
     "'Break the ice' means to start a conversation or help people feel comfortable."),
    (FB, "She ___ been working on this project all week.", "has",
     ["has", "have", "had", "having"],
     "Present perfect uses 'has' with he, she and it."),
    (MC, "Which combination is correct?", "make a decision",
     ["make a decision", "do a decision", "take a decision", "have a decision"],
     "'Make a decision' is the most natural collocation in English."),
    (TF, "The word 'beautiful' can describe both people and things.", "True",
     ["True", "False"],
     "'Beautiful' can describe people, objects, places and experiences."),
    (FB, "This movie is really ___.", "entertaining",
     ["entertaining", "entertainment", "entertained", "entertain"],
     "'Entertaining' is the adjective for something that provides enjoyment."),
    (MC, "What's the best way to grow your English vocabulary?",
     "Read regularly and use new words in context",
     ["Read regularly and use new words in context", "Memorize word lists only",
      "Avoid difficult words", "Use only translation apps"],
     "Reading and using new words in context helps you remember them."),
    (FB, "I'm looking ___ to seeing you next week.", "forward",
     ["forward", "ahead", "up", "down"],
     "'Look forward to' means to anticipate something with pleasure."),
    (MC, "Which sentence has the correct word order?", "I usually drink coffee in the morning.",
     ["I usually drink coffee in the morning.", "I drink usually coffee in the morning.",
      "Usually I drink coffee in morning.", "I drink coffee usually in the morning."],
     "Adverbs of frequency usually come before the main verb."),
]

DISTRACTORS = [
    "although", "however", "because", "therefore",
    "meanwhile", "nevertheless", "furthermore", "consequently",
]

SCENARIOS = {
    LearningTopic.GENERAL: "General Conversation",
    LearningTopic.TRAVEL: "At the Airport",
    LearningTopic.BUSINESS: "Job Interview",
    LearningTopic.DAILY_CONVERSATION: "Meeting a Friend",
    LearningTopic.ACADEMIC: "Study Group Discussion",
    LearningTopic.ENTERTAINMENT: "Planning a Movie Night",
    LearningTopic.TECHNOLOGY: "Tech Support Call",
    LearningTopic.GRAMMAR: "English Lesson",
}

PV = LearningElementType.PHRASAL_VERB
ID = LearningElementType.IDIOM

# (speaker, line, [(element text, type, meaning)])
_TRAVEL_SCRIPT = [
    ("Sarah", "I'm really looking forward to our trip to Italy!",
     [("looking forward to", PV, "Anticipating something with pleasure")]),
    ("Mike", "Me too! I've been brushing up on my Italian phrases.",
     [("brushing up on", PV, "Reviewing something you learned before")]),
    ("Sarah", "Smart. Those phrases will definitely come in handy.",
     [("come in handy", ID, "To be useful")]),
    ("Mike", "And the forecast says sunshine all week. We lucked out!",
     [("lucked out", PV, "Had good luck")]),
]

_BUSINESS_SCRIPT = [
    ("Interviewer", "Thanks for coming in. Could you walk me through your experience?",
     [("walk me through", PV, "Explain something step by step")]),
    ("Candidate", "Of course. I've worked in marketing for five years and I'm eager to take on new challenges.",
     [("take on", PV, "Accept and begin to handle something")]),
    ("Interviewer", "Great. We need someone who can hit the ground running.",
     [("hit the ground running", ID, "Start working effectively immediately")]),
]

_DEFAULT_SCRIPT = [
    ("Alex", "Hey! How have you been? It's been ages since we caught up.",
     [("it's been ages", LearningElementType.EXPRESSION, "It has been a very long time")]),
    ("Jordan", "I know! I've been swamped with work lately. How about you?",
     [("swamped", LearningElementType.VOCABULARY, "Extremely busy")]),
    ("Alex", "Same here, but I'm trying to slow down and take it easy this month.",
     [("take it easy", ID, "Relax and avoid working too hard")]),
]

SCRIPTS = {
    LearningTopic.TRAVEL: _TRAVEL_SCRIPT,
    LearningTopic.BUSINESS: _BUSINESS_SCRIPT,
}

# (title, summary, tags, paragraphs, [(type, question, answer, options, explanation)])
ARTICLES = [
    (
        "The Power of Reading",
        "How regular reading builds vocabulary, focus and empathy.",
        ["education", "learning", "language skills"],
        [
            "Reading is one of the most effective ways to learn a language and to grow as a "
            "person. Every page we read exposes us to new words, new sentence patterns and new "
            "ideas. Over time these small encounters add up to a much richer vocabulary and a "
            "better feel for how the language works.",
            "Unlike watching television, reading requires active engagement. We have to imagine "
            "the scenes, follow the argument and connect ideas across paragraphs. Researchers "
            "have found that this kind of effort strengthens memory and concentration, skills "
            "that help in every subject, not only in language classes.",
            "Reading also teaches grammar without a textbook. When we meet well written "
            "sentences again and again, we absorb correct structures without conscious effort. "
            "Language learners who read widely often notice that their own writing becomes "
            "clearer and more natural.",
            "Fiction has a special benefit: it lets us see the world through other people's "
            "eyes. Following a character's thoughts and choices helps us develop empathy and "
            "understand points of view that differ from our own.",
            "Experts recommend reading a variety of genres, from novels to newspapers. The most "
            "important thing, however, is consistency. Fifteen minutes a day is enough to make "
            "real progress, and in a world full of distractions the ability to focus on a text "
            "is more valuable than ever. Choose something you enjoy, keep it close at hand "
            "and let the habit grow naturally.",
        ],
        [
            (MC, "According to the article, what does reading expose us to?",
             "New words, sentence patterns and ideas",
             ["New words, sentence patterns and ideas", "Only difficult grammar rules",
              "Mostly historical facts", "Television programmes"],
             "The first paragraph says every page exposes us to new words, sentence patterns and ideas."),
            (TF, "The article says reading requires more active engagement than watching television.",
             "True", ["True", "False"],
             "The second paragraph contrasts reading's active engagement with watching television."),
            (FB, "When we meet well written sentences, we absorb correct ___ without conscious effort.",
             "structures", ["structures", "accents", "spellings", "stories"],
             "The third paragraph says we absorb correct structures without conscious effort."),
            (MC, "What special benefit of fiction does the article mention?", "It helps develop empathy",
             ["It helps develop empathy", "It improves mathematics", "It teaches history",
              "It builds physical strength"],
             "Fiction lets us see the world through other people's eyes, which develops empathy."),
            (TF, "The article claims you must read for several hours a day to make progress.",
             "False", ["True", "False"],
             "The article says fifteen minutes a day is enough to make real progress."),
            (MC, "What do experts recommend according to the article?", "Reading a variety of genres",
             ["Reading a variety of genres", "Reading only novels", "Reading very fast",
              "Reading only newspapers"],
             "The last paragraph recommends reading a variety of genres."),
            (FB, "The most important thing about a reading habit is ___.", "consistency",
             ["consistency", "speed", "difficulty", "price"],
             "The article says the most important thing is consistency."),
            (TF, "Reading widely can make a learner's own writing clearer.", "True", ["True", "False"],
             "Learners who read widely often notice their writing becomes clearer and more natural."),
        ],
    ),
    (
        "Sustainable Living: Small Changes, Big Impact",
        "Practical everyday habits that reduce our environmental footprint.",
        ["environment", "sustainability", "lifestyle"],
        [
            "Climate change can feel like a problem too large for any one person, but everyday "
            "choices add up. Sustainable living is not about perfection. It is about making "
            "slightly better decisions again and again until they become habits.",
            "Energy at home is an easy place to start. Switching to LED bulbs, unplugging "
            "chargers and adjusting the thermostat by a degree or two all reduce energy use. "
            "These changes take little effort, and they usually lower the electricity bill as "
            "well.",
            "Transport is another important area. Walking, cycling and public transport produce "
            "far fewer emissions than driving alone. When a car is necessary, sharing rides and "
            "planning errands to avoid extra trips still make a difference.",
            "Waste can be reduced by following three simple words: reduce, reuse and recycle. "
            "Before buying something new, ask whether you really need it. Repair or repurpose "
            "what you already own, and compost food scraps instead of sending them to a "
            "landfill.",
            "Food and water matter too. Eating local, seasonal produce cuts transport emissions, "
            "and eating less meat lowers greenhouse gases. Shorter showers and fixing leaks "
            "quickly save water.",
            "Finally, sustainable living is easier together. Talking with friends and family "
            "about what works, joining a community garden or supporting local repair cafes "
            "spreads good ideas quickly. Start with one or two changes, and add more once they "
            "feel natural. Small steps, repeated by many people, really do add up.",
        ],
        [
            (MC, "According to the article, what is sustainable living about?",
             "Making slightly better decisions until they become habits",
             ["Making slightly better decisions until they become habits", "Being perfect",
              "Buying new eco products", "Moving to the countryside"],
             "The first paragraph says it is about better decisions repeated until they become habits."),
            (TF, "The article says saving energy at home usually costs more money.", "False",
             ["True", "False"],
             "The article says these changes usually lower the electricity bill."),
            (FB, "Walking, cycling and public transport produce far fewer ___ than driving alone.",
             "emissions", ["emissions", "jobs", "accidents", "roads"],
             "The third paragraph compares the emissions of different kinds of transport."),
            (MC, "Which three words does the article use for reducing waste?",
             "Reduce, reuse and recycle",
             ["Reduce, reuse and recycle", "Buy, use and throw", "Save, spend and share",
              "Repair, replace and return"],
             "The fourth paragraph names reduce, reuse and recycle."),
            (TF, "The article suggests eating local, seasonal produce.", "True", ["True", "False"],
             "Local, seasonal produce cuts transport emissions."),
            (FB, "Instead of sending food scraps to a landfill, you can ___ them.", "compost",
             ["compost", "freeze", "burn", "sell"],
             "The article recommends composting food scraps."),
            (MC, "How does the article suggest starting?", "With one or two changes",
             ["With one or two changes", "By changing everything at once", "By buying an electric car",
              "By moving house"],
             "The last paragraph advises starting with one or two changes."),
            (TF, "According to the article, fixing leaks quickly helps save water.", "True",
             ["True", "False"],
             "Shorter showers and fixing leaks quickly save water."),
        ],
    ),
]


def quiz_questions(
    count: int,
    difficulty: ProficiencyLevel,
    topic: LearningTopic,
    focus: LearningFocus,
) -> list[QuizQuestion]:
    """The first ``min(count, len(QUIZ_POOL))`` pool questions, tagged as requested."""
    return [
        QuizQuestion(
            type=qtype,
            question=question,
            correct_answer=answer,
            options=list(options),
            explanation=explanation,
            difficulty=difficulty,
            topic=topic,
            focus=focus,
        )
        for qtype, question, answer, options, explanation in QUIZ_POOL[: max(0, count)]
    ]


def _distractors(seed: int, exclude: set[str], n: int = 2) -> list[str]:
    picked: list[str] = []
    i = seed * n
    while len(picked) < n:
        word = DISTRACTORS[i % len(DISTRACTORS)]
        if word.lower() not in exclude and word not in picked:
            picked.append(word)
        i += 1
        if i > seed * n + len(DISTRACTORS) * 2:
            break
    return picked


def mistake_questions(mistakes: list[MistakeRecord]) -> list[QuizQuestion]:
    """Replay each mistake verbatim, with an explanation pointing back at it."""
    questions = []
    for i, m in enumerate(mistakes[:MAX_MISTAKE_QUESTIONS]):
        options = list(m.options) if m.options else None
        if m.question_type is QuestionType.MULTIPLE_CHOICE:
            question = f"Review: {m.question}"
            explanation = f"This is based on a mistake you made before. {m.explanation}"
            if options is None:
                exclude = {m.correct_answer.lower(), m.user_answer.lower()}
                options = [m.correct_answer, m.user_answer, *_distractors(i, exclude)]
        elif m.question_type is QuestionType.FILL_IN_THE_BLANK:
            question = m.question
            explanation = f"Let's review this concept: {m.explanation}"
        else:
            question = m.question
            explanation = f"Review: {m.explanation}"
        questions.append(QuizQuestion(
            type=m.question_type,
            question=question,
            correct_answer=m.correct_answer,
            options=options,
            explanation=explanation,
            difficulty=m.difficulty,
            topic=m.topic,
            focus=m.focus,
        ))
    return questions


def default_scenario(topic: LearningTopic) -> str:
    return SCENARIOS.get(topic, "General Conversation")


def conversation(
    level: ProficiencyLevel,
    topic: LearningTopic,
    focus: LearningFocus,
    scenario: str | None = None,
) -> ConversationWithQuestions:
    scenario = scenario or default_scenario(topic)
    script = SCRIPTS.get(topic, _DEFAULT_SCRIPT)
    messages = [
        ConversationMessage(
            speaker=speaker,
            message=line,
            learning_elements=[LearningElement(text, etype, meaning) for text, etype, meaning in elements],
        )
        for speaker, line, elements in script
    ]
    conv = Conversation(
        title=f"Conversation: {scenario}",
        scenario=scenario,
        messages=messages,
        topic=topic,
        difficulty=level,
        learning_focus=focus,
        estimated_reading_time=3,
    )

    elements = [el for msg in messages for el in msg.learning_elements]
    meanings = [el.explanation for el in elements]
    generic = ["Being worried about something", "Forgetting about something", "Leaving quickly"]
    questions = []
    for i, el in enumerate(elements):
        others = [m for m in meanings if m != el.explanation] + generic
        # rotate so each question gets different distractors
        others = others[i % len(others):] + others[: i % len(others)]
        questions.append(QuizQuestion(
            type=MC,
            question=f"What does '{el.text}' mean in the conversation?",
            correct_answer=el.explanation,
            options=[el.explanation, *others[:3]],
            explanation=f"'{el.text}' ({el.type.value.lower()}) means: {el.explanation.lower()}.",
            difficulty=level,
            topic=topic,
            focus=focus,
            conversation=conv,
        ))
    speakers = sorted({msg.speaker for msg in messages})
    questions.append(QuizQuestion(
        type=TF,
        question=f"The conversation takes place between {speakers[0]} and {speakers[-1]}.",
        correct_answer="True",
        options=["True", "False"],
        explanation=f"{speakers[0]} and {speakers[-1]} are the two speakers.",
        difficulty=level,
        topic=topic,
        focus=focus,
        conversation=conv,
    ))
    return ConversationWithQuestions(conversation=conv, questions=questions)


def article_with_questions(
    topic: LearningTopic,
    difficulty: ProficiencyLevel,
    focus: LearningFocus,
) -> ArticleWithQuestions:
    idx = list(LearningTopic).index(topic) % len(ARTICLES)
    title, summary, tags, paragraphs, qs = ARTICLES[idx]
    article = Article(
        title=title,
        content="\n\n".join(paragraphs),
        topic=topic,
        difficulty=difficulty,
        tags=list(tags),
        summary=summary,
    )
    questions = [
        QuizQuestion(
            type=qtype,
            question=question,
            correct_answer=answer,
            options=list(options),
            explanation=explanation,
            difficulty=difficulty,
            topic=topic,
            focus=focus,
        )
        for qtype, question, answer, options, explanation in qs
    ]
    return ArticleWithQuestions(article=article, questions=questions)


def article_questions(article: Article, count: int) -> list[QuizQuestion]:
    """Generic comprehension questions built from the article's own metadata."""
    level = article.difficulty.value.lower()
    minutes = article.estimated_reading_time

    def q(qtype, question, answer, options, explanation):
        return QuizQuestion(
            type=qtype,
            question=question,
            correct_answer=answer,
            options=options,
            explanation=explanation,
            difficulty=article.difficulty,
            topic=article.topic,
            focus=LearningFocus.READING,
        )

    questions = [
        q(MC, "What is the main topic of this article?", article.title,
          [article.title, "General Education", "Science Facts", "Historical Events"],
          "The main topic is reflected in the article's title and content."),
        q(TF, f"This article is written at {level} level.", "True", ["True", "False"],
          f"The article is designed for {level} level learners."),
        q(FB, "The estimated reading time for this article is ___ minutes.", str(minutes),
          [str(minutes), str(minutes + 1), str(minutes + 2), str(minutes + 3)],
          f"At about 200 words per minute this article takes roughly {minutes} minutes to read."),
        q(MC, "Which learning topic does this article belong to?", article.topic.value,
          [article.topic.value, "Mathematics", "Science", "History"],
          f"This article is categorized under {article.topic.value}."),
        q(TF, f"This article contains approximately {article.word_count} words.", "True",
          ["True", "False"],
          f"The article has {article.word_count} words."),
    ]
    return questions[: max(0, count)]
