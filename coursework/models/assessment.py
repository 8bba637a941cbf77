"""Assessment Models (Assignments and Submissions)"""

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from coursework.models.base import BaseModel, JSONDocument
from coursework.models.enums import AssignmentKind, SubmissionState


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Assignment(BaseModel):
    """
    Gradable unit of work created by a teacher.
    Quiz questions are embedded documents owned by the assignment.
    """
    __tablename__ = "assignments"

    created_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    lesson_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)  # HTML allowed
    instructions = Column(Text, nullable=True)
    kind = Column(
        Enum(AssignmentKind, name="assignment_kind", values_callable=_enum_values),
        default=AssignmentKind.ASSIGNMENT,
        nullable=False,
    )
    due_date = Column(DateTime, nullable=True)

    # Quiz definition; total_points always equals the sum of question points
    questions = Column(JSONDocument, default=list, nullable=False)
    total_points = Column(Float, default=0, nullable=False)
    allow_automatic_grading = Column(Boolean, default=True, nullable=False)
    allow_resubmission = Column(Boolean, default=False, nullable=False)

    attachments = Column(JSONDocument, default=list, nullable=False)

    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")

    @property
    def is_quiz(self) -> bool:
        return self.kind == AssignmentKind.QUIZ

    def is_owned_by(self, user_id) -> bool:
        return self.created_by == user_id

    def __repr__(self) -> str:
        return f"<Assignment {self.title}>"


class Submission(BaseModel):
    """
    One student's attempt at an assignment.
    Resubmission updates the row in place and keeps a single previous snapshot.
    """
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submissions_assignment_student"),
    )

    assignment_id = Column(Uuid(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    content = Column(Text, nullable=True)
    answers = Column(JSONDocument, default=list, nullable=False)
    files = Column(JSONDocument, default=list, nullable=False)

    # Grading
    grade = Column(Float, nullable=True)
    total_points = Column(Float, nullable=True)  # Points scale at grading time
    feedback = Column(Text, nullable=True)
    is_graded = Column(Boolean, default=False, nullable=False)
    auto_graded = Column(Boolean, default=False, nullable=False)

    submitted_at = Column(DateTime, nullable=False)
    graded_at = Column(DateTime, nullable=True)

    # Resubmission tracking (one level of history only)
    resubmitted = Column(Boolean, default=False, nullable=False)
    resubmitted_at = Column(DateTime, nullable=True)
    previous_content = Column(Text, nullable=True)
    previous_answers = Column(JSONDocument, nullable=True)
    previous_files = Column(JSONDocument, nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")

    @property
    def state(self) -> SubmissionState:
        if self.is_graded:
            return SubmissionState.GRADED
        if self.resubmitted:
            return SubmissionState.RESUBMITTED
        return SubmissionState.SUBMITTED

    def __repr__(self) -> str:
        return f"<Submission {self.student_id} for {self.assignment_id}>"
