"""Centralized Enum Definitions"""

import enum


# Identity
class UserRole(str, enum.Enum):
    """Roles carried in the access token"""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


# Assignments
class AssignmentKind(str, enum.Enum):
    """Assignment types"""
    MINI_PROJECT = "mini_project"
    MAJOR_PROJECT = "major_project"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    ESSAY = "essay"


class QuestionKind(str, enum.Enum):
    """Quiz question types"""
    MULTIPLE_CHOICE = "multiple_choice"
    IDENTIFICATION = "identification"
    ENUMERATION = "enumeration"
    ESSAY = "essay"
    FILE_UPLOAD = "file_upload"

    @property
    def is_auto_gradable(self) -> bool:
        return self not in (QuestionKind.ESSAY, QuestionKind.FILE_UPLOAD)


# Submissions
class Correctness(str, enum.Enum):
    """Per-answer grading outcome; UNKNOWN until someone can judge it"""
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNKNOWN = "unknown"

    @classmethod
    def from_bool(cls, value: bool) -> "Correctness":
        return cls.CORRECT if value else cls.INCORRECT


class SubmissionState(str, enum.Enum):
    """Derived lifecycle state of a submission"""
    SUBMITTED = "submitted"
    RESUBMITTED = "resubmitted"
    GRADED = "graded"
