from unittest import mock

import pytest
from sqlalchemy.exc import IntegrityError

from core.exceptions import ClassroomFullError, InvalidJoinCodeError
from models.classroom import ClassroomModel
from models.student import StudentModel
from utils.classroom_manager import MAX_CREATE_ATTEMPTS
from utils.tokens import hash_token


def _student_count(session_factory) -> int:
    with session_factory() as db:
        return db.query(StudentModel).count()


def test_create_classroom_applies_defaults(classroom_manager):
    creds = classroom_manager.create_classroom("Period 3")

    classroom = classroom_manager.find_classroom_by_teacher_hash(
        hash_token(creds.teacher_token)
    )
    assert classroom is not None
    assert classroom.classroom_id == creds.classroom_id
    assert classroom.name == "Period 3"
    assert classroom.join_code == creds.join_code
    assert classroom.request_limit == 50
    assert classroom.max_students == 40
    assert classroom.active is True
    # Only the hash is stored
    assert classroom.teacher_token_hash != creds.teacher_token


def test_create_classroom_with_explicit_limits(classroom_manager):
    creds = classroom_manager.create_classroom("Club", request_limit=5, max_students=2)
    classroom = classroom_manager.get_classroom(creds.classroom_id)
    assert classroom.request_limit == 5
    assert classroom.max_students == 2


def test_find_by_join_code_is_case_insensitive_and_active_only(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")

    found = classroom_manager.find_classroom_by_join_code(creds.join_code.lower())
    assert found.classroom_id == creds.classroom_id

    classroom_manager.update_classroom(creds.classroom_id, {"active": False})
    assert classroom_manager.find_classroom_by_join_code(creds.join_code) is None


def test_join_classroom_creates_student(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")

    result = classroom_manager.join_classroom(creds.join_code, "Ada")

    assert result.classroom_id == creds.classroom_id
    assert result.classroom_name == "Period 1"
    student = classroom_manager.find_student_by_hash(hash_token(result.student_token))
    assert student.student_id == result.student_id
    assert student.display_name == "Ada"
    assert student.requests_used == 0
    assert student.active is True
    assert classroom_manager.count_active_students(creds.classroom_id) == 1


def test_join_full_classroom_is_rejected_without_creating_rows(
    classroom_manager, session_factory
):
    creds = classroom_manager.create_classroom("Tiny", max_students=1)
    classroom_manager.join_classroom(creds.join_code, "First")

    with pytest.raises(ClassroomFullError):
        classroom_manager.join_classroom(creds.join_code, "Second")
    assert _student_count(session_factory) == 1


def test_deactivated_students_free_capacity(classroom_manager):
    creds = classroom_manager.create_classroom("Tiny", max_students=1)
    first = classroom_manager.join_classroom(creds.join_code, "First")
    classroom_manager.deactivate_student(first.student_id, creds.classroom_id)

    second = classroom_manager.join_classroom(creds.join_code, "Second")
    assert second.student_id != first.student_id


def test_join_unknown_code_is_rejected(classroom_manager, session_factory):
    classroom_manager.create_classroom("Period 1")

    with pytest.raises(InvalidJoinCodeError):
        classroom_manager.join_classroom("ZZZZZZ", "Ada")
    assert _student_count(session_factory) == 0


def test_join_inactive_classroom_is_rejected(classroom_manager, session_factory):
    creds = classroom_manager.create_classroom("Period 1")
    classroom_manager.update_classroom(creds.classroom_id, {"active": False})

    with pytest.raises(InvalidJoinCodeError):
        classroom_manager.join_classroom(creds.join_code, "Ada")
    assert _student_count(session_factory) == 0


def test_create_student_directly(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")
    student_creds = classroom_manager.create_student(creds.classroom_id, "Grace")

    student = classroom_manager.find_student_by_hash(
        hash_token(student_creds.student_token)
    )
    assert student.student_id == student_creds.student_id
    assert student.classroom_id == creds.classroom_id


def test_consume_request_stops_at_limit(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1", request_limit=2)
    joined = classroom_manager.join_classroom(creds.join_code, "Ada")

    assert classroom_manager.consume_request(joined.student_id, 2) is True
    assert classroom_manager.consume_request(joined.student_id, 2) is True
    assert classroom_manager.consume_request(joined.student_id, 2) is False

    student = classroom_manager.find_student_by_hash(hash_token(joined.student_token))
    assert student.requests_used == 2


def test_consume_request_refuses_inactive_student(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")
    joined = classroom_manager.join_classroom(creds.join_code, "Ada")
    classroom_manager.deactivate_student(joined.student_id, creds.classroom_id)

    assert classroom_manager.consume_request(joined.student_id, 50) is False


def test_increment_usage_and_reset(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")
    ada = classroom_manager.join_classroom(creds.join_code, "Ada")
    bob = classroom_manager.join_classroom(creds.join_code, "Bob")

    classroom_manager.increment_usage(ada.student_id)
    classroom_manager.increment_usage(ada.student_id)
    classroom_manager.increment_usage(bob.student_id)
    used = {s.display_name: s.requests_used for s in classroom_manager.list_students(creds.classroom_id)}
    assert used == {"Ada": 2, "Bob": 1}

    classroom_manager.reset_usage(creds.classroom_id)
    used = {s.display_name: s.requests_used for s in classroom_manager.list_students(creds.classroom_id)}
    assert used == {"Ada": 0, "Bob": 0}


def test_reset_usage_only_touches_own_classroom(classroom_manager):
    first = classroom_manager.create_classroom("A")
    second = classroom_manager.create_classroom("B")
    a = classroom_manager.join_classroom(first.join_code, "Ada")
    b = classroom_manager.join_classroom(second.join_code, "Bob")
    classroom_manager.increment_usage(a.student_id)
    classroom_manager.increment_usage(b.student_id)

    classroom_manager.reset_usage(first.classroom_id)

    assert classroom_manager.find_student_by_hash(hash_token(a.student_token)).requests_used == 0
    assert classroom_manager.find_student_by_hash(hash_token(b.student_token)).requests_used == 1


def test_deactivate_student_requires_matching_active_row(classroom_manager):
    first = classroom_manager.create_classroom("A")
    other = classroom_manager.create_classroom("B")
    joined = classroom_manager.join_classroom(first.join_code, "Ada")

    assert classroom_manager.deactivate_student(joined.student_id, other.classroom_id) is False
    assert classroom_manager.deactivate_student(joined.student_id, first.classroom_id) is True
    assert classroom_manager.deactivate_student(joined.student_id, first.classroom_id) is False
    assert classroom_manager.deactivate_student("missing", first.classroom_id) is False


def test_update_classroom(classroom_manager):
    creds = classroom_manager.create_classroom("Old")

    assert classroom_manager.update_classroom(creds.classroom_id, {}) is False
    assert classroom_manager.update_classroom(creds.classroom_id, {"join_code": "X"}) is False
    assert classroom_manager.update_classroom("missing", {"name": "New"}) is False

    assert classroom_manager.update_classroom(
        creds.classroom_id, {"name": "New", "request_limit": 10, "max_students": 3}
    ) is True
    classroom = classroom_manager.get_classroom(creds.classroom_id)
    assert (classroom.name, classroom.request_limit, classroom.max_students) == ("New", 10, 3)
    # Join code is not updatable
    assert classroom.join_code == creds.join_code


def test_list_classrooms_by_teacher_hash(classroom_manager):
    creds = classroom_manager.create_classroom("Mine")
    classroom_manager.create_classroom("Someone else's")

    classrooms = classroom_manager.list_classrooms_by_teacher_hash(
        hash_token(creds.teacher_token)
    )
    assert [c.name for c in classrooms] == ["Mine"]
    assert classroom_manager.list_classrooms_by_teacher_hash(hash_token("nope")) == []


def test_list_students_in_join_order(classroom_manager):
    creds = classroom_manager.create_classroom("Period 1")
    for name in ("Ada", "Bob", "Cy"):
        classroom_manager.join_classroom(creds.join_code, name)

    names = [s.display_name for s in classroom_manager.list_students(creds.classroom_id)]
    assert names == ["Ada", "Bob", "Cy"]


def _classroom_count(session_factory) -> int:
    with session_factory() as db:
        return db.query(ClassroomModel).count()


def test_create_classroom_retries_join_code_collision(classroom_manager, session_factory):
    existing = classroom_manager.create_classroom("First")

    with mock.patch(
        "utils.classroom_manager.generate_join_code",
        side_effect=[existing.join_code, "FRESH2"],
    ) as generator:
        creds = classroom_manager.create_classroom("Second")

    assert generator.call_count == 2
    assert creds.join_code == "FRESH2"
    classroom = classroom_manager.find_classroom_by_teacher_hash(
        hash_token(creds.teacher_token)
    )
    assert classroom.name == "Second"
    assert classroom.join_code == "FRESH2"
    assert _classroom_count(session_factory) == 2


def test_create_classroom_gives_up_after_max_attempts(classroom_manager, session_factory):
    existing = classroom_manager.create_classroom("First")

    with mock.patch(
        "utils.classroom_manager.generate_join_code",
        return_value=existing.join_code,
    ) as generator:
        with pytest.raises(IntegrityError):
            classroom_manager.create_classroom("Second")

    assert generator.call_count == MAX_CREATE_ATTEMPTS
    assert _classroom_count(session_factory) == 1
