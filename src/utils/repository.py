"""Classroom repository interface.

The authorization engine and the routes only talk to the store through this
interface. Each operation is atomic with respect to a single record.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from models.classroom import ClassroomModel
from models.student import StudentModel


@dataclass
class ClassroomCredentials:
    """Values handed to the teacher once, at classroom creation."""

    classroom_id: str
    join_code: str
    teacher_token: str


@dataclass
class StudentCredentials:
    student_id: str
    student_token: str


@dataclass
class JoinResult:
    """Outcome of a successful join."""

    student_id: str
    student_token: str
    classroom_id: str
    classroom_name: str


class ClassroomRepository(ABC):
    """Abstract store for classrooms and students."""

    @abstractmethod
    def create_classroom(
        self, name: str, request_limit: int, max_students: int
    ) -> ClassroomCredentials:
        """Create a classroom with a fresh join code and teacher token."""

    @abstractmethod
    def get_classroom(self, classroom_id: str) -> Optional[ClassroomModel]:
        """Return the classroom by id, active or not."""

    @abstractmethod
    def find_classroom_by_teacher_hash(
        self, token_hash: str
    ) -> Optional[ClassroomModel]:
        """Return the classroom owned by a hashed teacher token."""

    @abstractmethod
    def list_classrooms_by_teacher_hash(
        self, token_hash: str
    ) -> List[ClassroomModel]:
        """Return every classroom owned by a hashed teacher token."""

    @abstractmethod
    def find_classroom_by_join_code(self, code: str) -> Optional[ClassroomModel]:
        """Return the active classroom for a join code."""

    @abstractmethod
    def count_active_students(self, classroom_id: str) -> int:
        """Count active students in a classroom."""

    @abstractmethod
    def create_student(
        self, classroom_id: str, display_name: str
    ) -> StudentCredentials:
        """Create a student with a fresh bearer token."""

    @abstractmethod
    def find_student_by_hash(self, token_hash: str) -> Optional[StudentModel]:
        """Return the student for a hashed token."""

    @abstractmethod
    def list_students(self, classroom_id: str) -> List[StudentModel]:
        """Return the classroom's students ordered by join time."""

    @abstractmethod
    def increment_usage(self, student_id: str) -> None:
        """Unconditionally add one to a student's request counter."""

    @abstractmethod
    def consume_request(self, student_id: str, request_limit: int) -> bool:
        """Atomically add one to the counter if the student is active and
        below request_limit.

        Returns:
            True if the counter was incremented.
        """

    @abstractmethod
    def deactivate_student(self, student_id: str, classroom_id: str) -> bool:
        """Deactivate an active student of the given classroom.

        Returns:
            False if no matching active student exists.
        """

    @abstractmethod
    def reset_usage(self, classroom_id: str) -> None:
        """Set requests_used back to zero for every student of a classroom."""

    @abstractmethod
    def update_classroom(self, classroom_id: str, fields: Dict[str, Any]) -> bool:
        """Apply a partial update.

        Returns:
            False if there is nothing to update or no such classroom.
        """

    @abstractmethod
    def join_classroom(self, join_code: str, display_name: str) -> JoinResult:
        """Join the active classroom behind a join code.

        Raises:
            InvalidJoinCodeError: If the code is unknown or the classroom is
                inactive.
            ClassroomFullError: If the classroom is at max_students.
        """
