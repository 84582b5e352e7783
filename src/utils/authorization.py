"""Admission decisions for generation requests.

Each request is decided on its own, with three modes checked in order:

1. Static token: the presented credential equals the configured
   SERVER_APP_TOKEN. Admitted without touching the store or any counter.
2. Student token: any other non-empty credential. It is hashed and resolved to
   a student; revoked students, paused classrooms and exhausted quotas are
   refused. On admission one request is taken from the quota before the
   caller dispatches the generation ("pay to attempt").
3. Open: no credential at all. Admitted only when no static token is
   configured.

A non-empty credential never falls through to open mode.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from core.exceptions import ForbiddenError, RateLimitedError, UnauthorizedError
from utils.repository import ClassroomRepository
from utils.tokens import hash_token

logger = logging.getLogger(__name__)

PRINCIPAL_APP = "app"
PRINCIPAL_STUDENT = "student"
PRINCIPAL_ANONYMOUS = "anonymous"


@dataclass
class Principal:
    """The identity a request was admitted under.

    Attributes:
        kind: One of "app", "student" or "anonymous".
        student_id: Set for student principals.
        classroom_id: Set for student principals.
        request_limit: Classroom quota, set for student principals.
        requests_used: Counter value after this request was charged.
    """

    kind: str
    student_id: Optional[str] = None
    classroom_id: Optional[str] = None
    request_limit: Optional[int] = None
    requests_used: Optional[int] = None

    @property
    def metered(self) -> bool:
        return self.kind == PRINCIPAL_STUDENT


class Authorizer:
    """Decides whether a generation request may proceed."""

    def __init__(self, repository: ClassroomRepository, static_token: str = ""):
        """Initialize Authorizer.

        Args:
            repository: Classroom store used to resolve student tokens.
            static_token: Process-wide secret; empty disables static-token
                mode and allows open access for callers without a token.
        """
        self.repository = repository
        self.static_token = static_token or ""

    def authorize(self, credential: Optional[str]) -> Principal:
        """Resolve the presented bearer credential to a Principal.

        Args:
            credential: Raw bearer token, or None/empty when absent.

        Returns:
            The admitted Principal.

        Raises:
            UnauthorizedError: Unknown credential, or no credential while a
                static token is configured.
            ForbiddenError: Student deactivated or classroom paused/missing.
            RateLimitedError: Student quota exhausted.
        """
        if credential:
            if self.static_token and secrets.compare_digest(
                credential.encode("utf-8"), self.static_token.encode("utf-8")
            ):
                return Principal(kind=PRINCIPAL_APP)
            return self._authorize_student(credential)

        if self.static_token:
            logger.info("Rejected request without credential (token required)")
            raise UnauthorizedError()
        return Principal(kind=PRINCIPAL_ANONYMOUS)

    def _authorize_student(self, credential: str) -> Principal:
        student = self.repository.find_student_by_hash(hash_token(credential))
        if student is None:
            logger.info("Rejected request with unknown credential")
            raise UnauthorizedError()
        if not student.active:
            logger.info("Rejected deactivated student %s", student.student_id)
            raise ForbiddenError("Your access has been deactivated by the teacher")

        classroom = self.repository.get_classroom(student.classroom_id)
        if classroom is None or not classroom.active:
            logger.info(
                "Rejected student %s: classroom %s paused",
                student.student_id,
                student.classroom_id,
            )
            raise ForbiddenError("Classroom is currently paused")

        limit = classroom.request_limit
        if student.requests_used >= limit:
            logger.info("Student %s reached request limit %d", student.student_id, limit)
            raise RateLimitedError(limit)

        # Loses only to a concurrent request from the same student that took
        # the last slot, or to a deactivation in between.
        if not self.repository.consume_request(student.student_id, limit):
            logger.info(
                "Student %s lost the last request slot to a concurrent request",
                student.student_id,
            )
            raise RateLimitedError(limit)

        return Principal(
            kind=PRINCIPAL_STUDENT,
            student_id=student.student_id,
            classroom_id=classroom.classroom_id,
            request_limit=limit,
            requests_used=student.requests_used + 1,
        )
