"""Sample quizzes seeded into an empty store so a fresh portal has content."""

from __future__ import annotations

from quiz_portal.constants.quiz_constants import DEFAULT_TIME_ALLOCATION_SECONDS
from quiz_portal.core.models import Question, Quiz
from quiz_portal.utils.formatting import iso_timestamp

SAMPLE_QUESTION_COUNT = 30

# (question, options, correct option index, explanation)
_SAMPLE_TEMPLATES: dict[str, list[tuple[str, list[str], int, str]]] = {
    "General Knowledge": [
        (
            "What is the capital of India?",
            ["Mumbai", "New Delhi", "Kolkata", "Chennai"],
            1,
            "New Delhi is the capital of India.",
        ),
        (
            "Who is known as the Father of the Nation in India?",
            ["Jawaharlal Nehru", "Mahatma Gandhi", "Sardar Patel", "Subhas Chandra Bose"],
            1,
            "Mahatma Gandhi is called the Father of the Nation.",
        ),
        (
            "Which is the largest state in India by area?",
            ["Maharashtra", "Rajasthan", "Madhya Pradesh", "Uttar Pradesh"],
            1,
            "Rajasthan is the largest state by area.",
        ),
    ],
    "English": [
        (
            "Choose the correct spelling:",
            ["Accommodate", "Accomodate", "Acommodate", "Acomodate"],
            0,
            "Accommodate is the correct spelling.",
        ),
        (
            "What is the synonym of 'happy'?",
            ["Sad", "Joyful", "Angry", "Tired"],
            1,
            "Joyful means happy.",
        ),
        (
            "Choose the antonym of 'difficult':",
            ["Hard", "Tough", "Easy", "Complex"],
            2,
            "Easy is the opposite of difficult.",
        ),
    ],
}

_SAMPLE_SCHEDULE = [
    ("quiz_sample_1", "2025-10-18", "General Knowledge"),
    ("quiz_sample_2", "2025-10-19", "English"),
]


def generate_sample_questions(subject: str, count: int = SAMPLE_QUESTION_COUNT) -> list[Question]:
    templates = _SAMPLE_TEMPLATES.get(subject, _SAMPLE_TEMPLATES["General Knowledge"])
    questions: list[Question] = []
    for index in range(count):
        text, options, correct, explanation = templates[index % len(templates)]
        questions.append(
            Question(
                question=text,
                options=list(options),
                correct_answer=correct,
                explanation=explanation,
                time_allocation=DEFAULT_TIME_ALLOCATION_SECONDS,
            )
        )
    return questions


def build_sample_quizzes() -> list[Quiz]:
    created_at = iso_timestamp()
    quizzes: list[Quiz] = []
    for quiz_id, date, subject in _SAMPLE_SCHEDULE:
        questions = generate_sample_questions(subject)
        quizzes.append(
            Quiz(
                quiz_id=quiz_id,
                date=date,
                subject=subject,
                questions=questions,
                total_questions=len(questions),
                time_limit=sum(question.allocated_seconds for question in questions),
                created_at=created_at,
            )
        )
    return quizzes
