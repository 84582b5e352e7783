"""Classroom and student persistence.

SQLAlchemy implementation of ClassroomRepository. The manager is created once
by the application entry point and opens a short session per operation.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from config import DEFAULT_MAX_STUDENTS, DEFAULT_REQUEST_LIMIT
from core.exceptions import ClassroomFullError, InvalidJoinCodeError
from models.classroom import ClassroomModel
from models.student import StudentModel
from utils.repository import (
    ClassroomCredentials,
    ClassroomRepository,
    JoinResult,
    StudentCredentials,
)
from utils.tokens import (
    generate_id,
    generate_join_code,
    hash_token,
    issue_token,
    normalize_join_code,
)

logger = logging.getLogger(__name__)

# Attempts before a unique-index collision on generated values is surfaced
MAX_CREATE_ATTEMPTS = 5

UPDATABLE_CLASSROOM_FIELDS = ("name", "request_limit", "max_students", "active")


def _now() -> str:
    return datetime.now(pytz.utc).isoformat()


class ClassroomManager(ClassroomRepository):
    """Manages classroom and student records using SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker):
        """Initialize ClassroomManager.

        Args:
            session_factory: Factory producing SQLAlchemy sessions.
        """
        self._session_factory = session_factory
        self._join_lock = threading.Lock()

    # --- classrooms ---

    def create_classroom(
        self,
        name: str,
        request_limit: Optional[int] = None,
        max_students: Optional[int] = None,
    ) -> ClassroomCredentials:
        """Create a classroom.

        Join code and teacher token are regenerated when they collide with an
        existing row.

        Args:
            name: Display name.
            request_limit: Per-student request quota. Defaults to 50.
            max_students: Capacity. Defaults to 40.

        Returns:
            ClassroomCredentials holding the raw teacher token.
        """
        if request_limit is None:
            request_limit = DEFAULT_REQUEST_LIMIT
        if max_students is None:
            max_students = DEFAULT_MAX_STUDENTS

        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            credentials = ClassroomCredentials(
                classroom_id=generate_id(),
                join_code=generate_join_code(),
                teacher_token=issue_token(),
            )
            model = ClassroomModel(
                classroom_id=credentials.classroom_id,
                name=name,
                join_code=credentials.join_code,
                teacher_token_hash=hash_token(credentials.teacher_token),
                request_limit=request_limit,
                max_students=max_students,
                active=True,
                created_at=_now(),
            )
            with self._session_factory() as db:
                db.add(model)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.warning(
                        "Classroom creation collided on a unique value (attempt %d/%d)",
                        attempt,
                        MAX_CREATE_ATTEMPTS,
                    )
                    if attempt == MAX_CREATE_ATTEMPTS:
                        raise
                    continue
            logger.info(
                "Created classroom %s (request_limit=%d, max_students=%d)",
                credentials.classroom_id,
                request_limit,
                max_students,
            )
            return credentials

    def get_classroom(self, classroom_id: str) -> Optional[ClassroomModel]:
        with self._session_factory() as db:
            return (
                db.query(ClassroomModel)
                .filter(ClassroomModel.classroom_id == classroom_id)
                .first()
            )

    def find_classroom_by_teacher_hash(
        self, token_hash: str
    ) -> Optional[ClassroomModel]:
        with self._session_factory() as db:
            return (
                db.query(ClassroomModel)
                .filter(ClassroomModel.teacher_token_hash == token_hash)
                .first()
            )

    def list_classrooms_by_teacher_hash(
        self, token_hash: str
    ) -> List[ClassroomModel]:
        with self._session_factory() as db:
            return (
                db.query(ClassroomModel)
                .filter(ClassroomModel.teacher_token_hash == token_hash)
                .order_by(ClassroomModel.created_at.desc())
                .all()
            )

    def find_classroom_by_join_code(self, code: str) -> Optional[ClassroomModel]:
        with self._session_factory() as db:
            return self._find_active_by_join_code(db, code)

    def _find_active_by_join_code(
        self, db: Session, code: str
    ) -> Optional[ClassroomModel]:
        return (
            db.query(ClassroomModel)
            .filter(
                ClassroomModel.join_code == normalize_join_code(code),
                ClassroomModel.active.is_(True),
            )
            .first()
        )

    def update_classroom(self, classroom_id: str, fields: Dict[str, Any]) -> bool:
        """Apply a partial update to a classroom.

        Unknown keys and None values are ignored.

        Args:
            classroom_id: Classroom ID.
            fields: Mapping of column name to new value.

        Returns:
            True if a row was updated.
        """
        values = {
            key: fields[key]
            for key in UPDATABLE_CLASSROOM_FIELDS
            if fields.get(key) is not None
        }
        if not values:
            return False
        with self._session_factory() as db:
            updated = (
                db.query(ClassroomModel)
                .filter(ClassroomModel.classroom_id == classroom_id)
                .update(values, synchronize_session=False)
            )
            db.commit()
        if updated:
            logger.info(
                "Updated classroom %s: %s", classroom_id, ", ".join(sorted(values))
            )
        return updated > 0

    # --- students ---

    def count_active_students(self, classroom_id: str) -> int:
        with self._session_factory() as db:
            return self._count_active(db, classroom_id)

    def _count_active(self, db: Session, classroom_id: str) -> int:
        return (
            db.query(func.count(StudentModel.student_id))
            .filter(
                StudentModel.classroom_id == classroom_id,
                StudentModel.active.is_(True),
            )
            .scalar()
        )

    def create_student(
        self, classroom_id: str, display_name: str
    ) -> StudentCredentials:
        with self._session_factory() as db:
            credentials = self._add_student(db, classroom_id, display_name)
            db.commit()
        return credentials

    def _add_student(
        self, db: Session, classroom_id: str, display_name: str
    ) -> StudentCredentials:
        credentials = StudentCredentials(
            student_id=generate_id(), student_token=issue_token()
        )
        db.add(
            StudentModel(
                student_id=credentials.student_id,
                classroom_id=classroom_id,
                display_name=display_name,
                token_hash=hash_token(credentials.student_token),
                requests_used=0,
                active=True,
                joined_at=_now(),
            )
        )
        return credentials

    def join_classroom(self, join_code: str, display_name: str) -> JoinResult:
        """Create a student in the active classroom behind a join code.

        Lookup, capacity check and insert run under one lock and one
        transaction, so concurrent joins cannot overfill a classroom.

        Args:
            join_code: Code as typed by the student (any case).
            display_name: Name shown to the teacher.

        Returns:
            JoinResult with the raw student token.

        Raises:
            InvalidJoinCodeError: If the code is unknown or inactive.
            ClassroomFullError: If the classroom is at capacity.
        """
        with self._join_lock, self._session_factory() as db:
            classroom = self._find_active_by_join_code(db, join_code)
            if classroom is None:
                raise InvalidJoinCodeError()
            if self._count_active(db, classroom.classroom_id) >= classroom.max_students:
                logger.info("Join rejected: classroom %s is full", classroom.classroom_id)
                raise ClassroomFullError()
            credentials = self._add_student(db, classroom.classroom_id, display_name)
            db.commit()
            logger.info(
                "Student %s joined classroom %s",
                credentials.student_id,
                classroom.classroom_id,
            )
            return JoinResult(
                student_id=credentials.student_id,
                student_token=credentials.student_token,
                classroom_id=classroom.classroom_id,
                classroom_name=classroom.name,
            )

    def find_student_by_hash(self, token_hash: str) -> Optional[StudentModel]:
        with self._session_factory() as db:
            return (
                db.query(StudentModel)
                .filter(StudentModel.token_hash == token_hash)
                .first()
            )

    def list_students(self, classroom_id: str) -> List[StudentModel]:
        with self._session_factory() as db:
            return (
                db.query(StudentModel)
                .filter(StudentModel.classroom_id == classroom_id)
                .order_by(StudentModel.joined_at)
                .all()
            )

    def increment_usage(self, student_id: str) -> None:
        with self._session_factory() as db:
            db.query(StudentModel).filter(
                StudentModel.student_id == student_id
            ).update(
                {StudentModel.requests_used: StudentModel.requests_used + 1},
                synchronize_session=False,
            )
            db.commit()

    def consume_request(self, student_id: str, request_limit: int) -> bool:
        """Take one request from the student's quota.

        The limit check and the increment are a single UPDATE, so two
        concurrent requests cannot both take the last remaining slot.

        Args:
            student_id: Student ID.
            request_limit: Classroom request limit.

        Returns:
            True if the counter was incremented, False if the student is
            inactive or already at the limit.
        """
        with self._session_factory() as db:
            updated = (
                db.query(StudentModel)
                .filter(
                    StudentModel.student_id == student_id,
                    StudentModel.active.is_(True),
                    StudentModel.requests_used < request_limit,
                )
                .update(
                    {StudentModel.requests_used: StudentModel.requests_used + 1},
                    synchronize_session=False,
                )
            )
            db.commit()
        return updated > 0

    def deactivate_student(self, student_id: str, classroom_id: str) -> bool:
        with self._session_factory() as db:
            updated = (
                db.query(StudentModel)
                .filter(
                    StudentModel.student_id == student_id,
                    StudentModel.classroom_id == classroom_id,
                    StudentModel.active.is_(True),
                )
                .update({StudentModel.active: False}, synchronize_session=False)
            )
            db.commit()
        if updated:
            logger.info("Deactivated student %s in classroom %s", student_id, classroom_id)
        return updated > 0

    def reset_usage(self, classroom_id: str) -> None:
        with self._session_factory() as db:
            db.query(StudentModel).filter(
                StudentModel.classroom_id == classroom_id
            ).update({StudentModel.requests_used: 0}, synchronize_session=False)
            db.commit()
        logger.info("Reset usage counters for classroom %s", classroom_id)
