"""
SQLAlchemy ORM models for Dentalogix Backend.
"""

from .quiz import DentalProcedure, QuizQuestion, QuizOption, QuizSubmission, QuizAnswer

__all__ = [
    "DentalProcedure",
    "QuizQuestion",
    "QuizOption",
    "QuizSubmission",
    "QuizAnswer",
]
