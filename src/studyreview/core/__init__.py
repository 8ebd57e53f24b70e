"""Core study review logic.

Modules:
- grader: LLM grading of free-text answers
- tutor: deep-dive chat with the tutor persona
- quiz: practice / timed exam state machine
- history: persisted exam records
- navigation: view switching and unit accordion
- preferences: theme flag
"""

__all__ = [
    "grader",
    "tutor",
    "quiz",
    "history",
    "navigation",
    "preferences",
]
