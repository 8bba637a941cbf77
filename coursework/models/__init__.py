"""Models Package - Export all models for easy imports"""

from coursework.models.base import BaseModel, JSONDocument
from coursework.models.enums import *
from coursework.models.assessment import Assignment, Submission


__all__ = [
    # Base classes
    "BaseModel",
    "JSONDocument",

    # Enums
    "UserRole",
    "AssignmentKind",
    "QuestionKind",
    "Correctness",
    "SubmissionState",

    # Assessment
    "Assignment",
    "Submission",
]
