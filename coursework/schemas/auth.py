from uuid import UUID
from pydantic import BaseModel

from coursework.models.enums import UserRole


class CurrentUser(BaseModel):
    """Authenticated principal resolved from the access token"""
    id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT
