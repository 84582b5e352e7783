"""Classroom schema definitions.

Request and response models for the classroom (roster) endpoints.
"""

from typing import List, Optional

from pydantic import Field

from schemas.base import CamelModel


class CreateClassroomRequest(CamelModel):
    name: str = Field(default="", description="Display name of the classroom.")
    request_limit: Optional[int] = Field(
        default=None, ge=0, description="Per-student request quota."
    )
    max_students: Optional[int] = Field(
        default=None, ge=0, description="Maximum number of active students."
    )


class CreateClassroomResponse(CamelModel):
    """Returned once; the teacher token cannot be recovered later."""

    classroom_id: str
    join_code: str
    teacher_token: str


class JoinClassroomRequest(CamelModel):
    join_code: str = Field(default="", description="Code shown by the teacher.")
    display_name: str = Field(default="", description="Name shown to the teacher.")


class JoinClassroomResponse(CamelModel):
    student_token: str
    classroom_id: str
    classroom_name: str


class UpdateClassroomRequest(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = None
    request_limit: Optional[int] = Field(default=None, ge=0)
    max_students: Optional[int] = Field(default=None, ge=0)
    active: Optional[bool] = None


class StudentInfo(CamelModel):
    id: str
    display_name: str
    requests_used: int
    active: bool
    joined_at: str


class ClassroomInfo(CamelModel):
    id: str
    name: str
    join_code: str
    request_limit: int
    max_students: int
    active: bool
    created_at: str


class ClassroomDetail(ClassroomInfo):
    students: List[StudentInfo] = Field(default_factory=list)


class ClassroomListResponse(CamelModel):
    classrooms: List[ClassroomInfo] = Field(default_factory=list)


class OkResponse(CamelModel):
    ok: bool = True
