"""Assignment, question, answer and submission schemas"""

from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from coursework.models.enums import AssignmentKind, Correctness, QuestionKind, SubmissionState


def _to_text(value: Any) -> Any:
    """Numbers are accepted wherever a text answer is expected (e.g. an option index)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        # 1.0 is sent by some clients for option index 1
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _to_text_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [_to_text(item) for item in value]
    return value


def _to_kind(value: Any) -> Any:
    # Older clients send hyphenated kinds ("multiple-choice")
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_")
    return value


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC (TIMESTAMP WITHOUT TIME ZONE)."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class FileRef(BaseModel):
    """Reference to a stored file; url/storage_id are empty without a storage backend"""
    filename: Optional[str] = None
    url: Optional[str] = None
    file_type: Optional[str] = None
    storage_id: Optional[str] = None


# --- Questions ---
class Question(BaseModel):
    """One quiz question embedded in an assignment"""
    id: str = Field(default_factory=lambda: uuid4().hex)
    text: str = Field(..., min_length=1, validation_alias=AliasChoices("text", "question"))
    kind: QuestionKind = QuestionKind.MULTIPLE_CHOICE
    options: List[str] = []
    correct_answer: str = ""
    correct_answers: List[str] = []
    points: float = Field(1, gt=0)
    order: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def default_id(cls, v: Any) -> Any:
        if v is None or v == "":
            return uuid4().hex
        return _to_text(v)

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("kind", mode="before")
    @classmethod
    def default_kind(cls, v: Any) -> Any:
        if v is None or v == "":
            return QuestionKind.MULTIPLE_CHOICE
        return _to_kind(v)

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, v: Any) -> Any:
        # Missing, null and zero all mean the default of one point
        if v is None or v == "" or v == 0:
            return 1
        return v

    @field_validator("correct_answer", mode="before")
    @classmethod
    def normalize_correct_answer(cls, v: Any) -> Any:
        return "" if v is None else _to_text(v)

    @field_validator("options", "correct_answers", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> Any:
        return _to_text_list(v)


# --- Answers ---
class AnswerIn(BaseModel):
    """A student's raw answer as posted with a submission"""
    question_id: str
    kind: Optional[QuestionKind] = Field(None, validation_alias=AliasChoices("kind", "type"))
    answer: Optional[str] = None
    answers: List[str] = []
    file_index: Optional[int] = Field(None, ge=0)

    @field_validator("question_id", "answer", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _to_text(v)

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> Any:
        return _to_kind(v)

    @field_validator("answers", mode="before")
    @classmethod
    def coerce_answers(cls, v: Any) -> Any:
        return _to_text_list(v)


class Answer(BaseModel):
    """A stored answer with its grading annotations"""
    question_id: str
    answer: Optional[str] = None
    answers: List[str] = []
    files: List[FileRef] = []
    correctness: Correctness = Correctness.UNKNOWN
    points: float = 0
    feedback: Optional[str] = None


# --- Auto-grading ---
class GradedAnswer(BaseModel):
    question_id: str
    question: str
    kind: QuestionKind
    answer: str = ""
    answers: List[str] = []
    correctness: Correctness
    points: float
    max_points: float


class GradingResult(BaseModel):
    total_score: float = 0
    total_points: float = 0
    graded_answers: List[GradedAnswer] = []


# --- Assignments ---
class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    kind: AssignmentKind = AssignmentKind.ASSIGNMENT
    due_date: Optional[datetime] = None
    lesson_id: Optional[UUID] = None
    # Raw payload (JSON text or list); normalized by AssignmentService.parse_questions
    questions: Optional[Any] = None
    allow_automatic_grading: Optional[bool] = None
    allow_resubmission: Optional[bool] = None

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> Any:
        return _to_kind(v)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    kind: Optional[AssignmentKind] = None
    due_date: Optional[datetime] = None
    lesson_id: Optional[UUID] = None
    questions: Optional[Any] = None
    allow_automatic_grading: Optional[bool] = None
    allow_resubmission: Optional[bool] = None
    remove_attachment_ids: List[str] = []

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> Any:
        return _to_kind(v)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)


class AssignmentBrief(BaseModel):
    id: UUID
    title: str
    kind: AssignmentKind

    model_config = ConfigDict(from_attributes=True)


class AssignmentResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    kind: AssignmentKind
    due_date: Optional[datetime] = None
    lesson_id: Optional[UUID] = None
    created_by: UUID
    questions: List[Question] = []
    total_points: float = 0
    allow_automatic_grading: bool
    allow_resubmission: bool
    attachments: List[FileRef] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --- Submissions ---
class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    content: Optional[str] = None
    answers: List[Answer] = []
    files: List[FileRef] = []
    grade: Optional[float] = None
    total_points: Optional[float] = None
    feedback: Optional[str] = None
    is_graded: bool
    auto_graded: bool
    state: SubmissionState
    submitted_at: datetime
    graded_at: Optional[datetime] = None
    resubmitted: bool
    resubmitted_at: Optional[datetime] = None
    previous_content: Optional[str] = None
    previous_answers: Optional[List[Answer]] = None
    previous_files: Optional[List[FileRef]] = None

    model_config = ConfigDict(from_attributes=True)


class StudentSubmissionResponse(SubmissionResponse):
    assignment: AssignmentBrief


class AnswerGrade(BaseModel):
    """Teacher override for a single answer"""
    question_id: str
    points: Optional[float] = Field(None, ge=0)
    feedback: Optional[str] = None
    is_correct: Optional[bool] = None

    @field_validator("question_id", mode="before")
    @classmethod
    def coerce_question_id(cls, v: Any) -> Any:
        return _to_text(v)


class GradeSubmissionRequest(BaseModel):
    grade: Optional[float] = Field(None, ge=0)
    feedback: Optional[str] = None
    answers: Optional[List[AnswerGrade]] = None


# --- Statistics ---
class GradeDistribution(BaseModel):
    excellent: int = 0
    good: int = 0
    satisfactory: int = 0
    needs_improvement: int = 0
    ungraded: int = 0


class SubmissionSummary(BaseModel):
    id: UUID
    student_id: UUID
    grade: Optional[float] = None
    submitted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssignmentStatistics(BaseModel):
    total: int
    graded: int
    ungraded: int
    average: float
    distribution: GradeDistribution
    submissions: List[SubmissionSummary] = []
