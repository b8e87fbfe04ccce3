"""Static metadata describing Quiz Portal."""

APP_NAME = "Quiz Portal"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Quiz Portal runs timed multiple-choice quizzes with autosave and resume, "
    "keeps every attempt locally and mirrors quizzes and attempts to a "
    "spreadsheet-backed endpoint whenever it is reachable."
)

QUESTION_TEMPLATE = """[
  {
    "question": "What is the capital of India?",
    "options": ["Mumbai", "New Delhi", "Kolkata", "Chennai"],
    "correctAnswer": 1,
    "explanation": "New Delhi is the capital of India.",
    "timeAllocation": 60
  },
  {
    "question": "Which is the largest state in India by area?",
    "options": ["Maharashtra", "Rajasthan", "Madhya Pradesh", "Uttar Pradesh"],
    "correctAnswer": 1,
    "explanation": "Rajasthan is the largest state by area.",
    "timeAllocation": 60
  }
]"""
