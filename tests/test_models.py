"""Tests for record conversion to and from the stored camelCase format."""

import json

from quiz_portal.core.models import Attempt, Question, Quiz, QuizResults, QuizState


class TestQuestion:
    def test_allocation_defaults_to_sixty_seconds(self):
        question = Question.from_dict(
            {"question": "Q", "options": ["a", "b", "c", "d"], "correctAnswer": 2, "explanation": "E"}
        )
        assert question.time_allocation is None
        assert question.allocated_seconds == 60
        assert "timeAllocation" not in question.to_dict()

    def test_numeric_strings_are_accepted(self):
        question = Question.from_dict(
            {
                "question": "Q",
                "options": ["a", "b", "c", "d"],
                "correctAnswer": "3",
                "explanation": "E",
                "timeAllocation": "45",
            }
        )
        assert question.correct_answer == 3
        assert question.allocated_seconds == 45


class TestQuiz:
    def test_remote_row_with_questions_json(self):
        questions = [
            {"question": "Q1", "options": ["a", "b", "c", "d"], "correctAnswer": 0, "explanation": "E1"},
            {"question": "Q2", "options": ["a", "b", "c", "d"], "correctAnswer": 1, "explanation": "E2"},
        ]
        quiz = Quiz.from_dict(
            {"quizId": "quiz_9", "date": "2025-10-20", "subject": "Science", "questionsJson": json.dumps(questions)}
        )
        assert quiz.total_questions == 2
        assert quiz.time_limit == 120
        assert [question.question for question in quiz.questions] == ["Q1", "Q2"]

    def test_broken_questions_json_gives_empty_quiz(self):
        quiz = Quiz.from_dict({"quizId": "quiz_9", "questionsJson": "not json"})
        assert quiz.questions == []
        assert quiz.total_questions == 0

    def test_round_trip(self):
        data = {
            "quizId": "quiz_1",
            "date": "2025-10-18",
            "subject": "Maths",
            "questions": [
                {"question": "Q", "options": ["a", "b", "c", "d"], "correctAnswer": 1, "explanation": "E"}
            ],
            "totalQuestions": 1,
            "timeLimit": 60,
            "createdAt": "2025-10-01T08:00:00.000Z",
        }
        assert Quiz.from_dict(data).to_dict() == data


class TestAttempt:
    def test_remote_leaderboard_row_is_normalized(self):
        attempt = Attempt.from_dict(
            {
                "quizId": "quiz_1",
                "userName": "Ravi",
                "email": "ravi@example.com",
                "score": "4",
                "totalQuestions": "5",
                "percentage": "80",
                "timeTaken": "03:10",
                "attemptDate": "2025-10-18",
            }
        )
        assert attempt.attempt_id == "remote_quiz_1_ravi@example.com_2025-10-18"
        assert attempt.score == 4
        assert attempt.total == 5
        assert attempt.accuracy == 80.0
        assert attempt.time == "03:10"
        assert attempt.natural_key == ("ravi@example.com", "quiz_1", "2025-10-18")


class TestQuizState:
    def test_stored_under_current_question_with_string_keys(self):
        state = QuizState(
            quiz_id="quiz_1",
            current_question_index=2,
            user_answers={0: 1, 3: 0},
            marked_for_review={4, 1},
            time_remaining=250,
        )
        assert state.to_dict() == {
            "quizId": "quiz_1",
            "currentQuestion": 2,
            "userAnswers": {"0": 1, "3": 0},
            "markedForReview": [1, 4],
            "timeRemaining": 250,
        }

    def test_reads_either_index_name(self):
        legacy = QuizState.from_dict({"quizId": "quiz_1", "currentQuestionIndex": 3, "userAnswers": {"1": 2}})
        current = QuizState.from_dict({"quizId": "quiz_1", "currentQuestion": 3, "userAnswers": {"1": 2}})
        assert legacy == current
        assert legacy.user_answers == {1: 2}

    def test_round_trip_is_identical(self):
        state = QuizState("quiz_1", 1, {0: 0, 2: 3}, {2}, 0)
        assert QuizState.from_dict(json.loads(json.dumps(state.to_dict()))) == state


class TestQuizResults:
    def test_answers_keys_survive_storage(self):
        results = QuizResults("quiz_1", 5, 3, 1, 1, 3, 60.0, "02:00", {0: 0, 1: 1}, "2025-10-18")
        assert QuizResults.from_dict(json.loads(json.dumps(results.to_dict()))) == results
