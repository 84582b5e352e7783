"""Classroom management routes.

Teachers create a classroom and receive a teacher token; every other teacher
action presents that token as a bearer credential. Students join with the
classroom's join code and receive their own token for generation requests.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from core.dependencies import BearerTokenDep, ClassroomManagerDep
from core.exceptions import VibbitError
from models.classroom import ClassroomModel
from models.student import StudentModel
from schemas.classroom import (
    ClassroomDetail,
    ClassroomInfo,
    ClassroomListResponse,
    CreateClassroomRequest,
    CreateClassroomResponse,
    JoinClassroomRequest,
    JoinClassroomResponse,
    OkResponse,
    StudentInfo,
    UpdateClassroomRequest,
)
from utils.tokens import hash_token, normalize_join_code

router = APIRouter(prefix="/classroom", tags=["Classroom"])


def _build_classroom_info(model: ClassroomModel) -> ClassroomInfo:
    return ClassroomInfo(
        id=model.classroom_id,
        name=model.name,
        join_code=model.join_code,
        request_limit=model.request_limit,
        max_students=model.max_students,
        active=bool(model.active),
        created_at=model.created_at,
    )


def _build_student_info(model: StudentModel) -> StudentInfo:
    return StudentInfo(
        id=model.student_id,
        display_name=model.display_name,
        requests_used=model.requests_used,
        active=bool(model.active),
        joined_at=model.joined_at,
    )


def get_teacher_classroom(
    token: BearerTokenDep,
    classroom_manager: ClassroomManagerDep,
) -> ClassroomModel:
    """Resolve the teacher bearer token to its classroom.

    Args:
        token: Raw bearer token.
        classroom_manager: Injected classroom store.

    Returns:
        The classroom owned by the token.

    Raises:
        HTTPException: 401 if the token is missing or unknown.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing teacher token",
        )
    classroom = classroom_manager.find_classroom_by_teacher_hash(hash_token(token))
    if classroom is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid teacher token",
        )
    return classroom


@router.post(
    "/create",
    response_model=CreateClassroomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a classroom",
)
def create_classroom(
    req: CreateClassroomRequest,
    classroom_manager: ClassroomManagerDep,
) -> CreateClassroomResponse:
    name = req.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="'name' is required",
        )
    credentials = classroom_manager.create_classroom(
        name, req.request_limit, req.max_students
    )
    return CreateClassroomResponse(
        classroom_id=credentials.classroom_id,
        join_code=credentials.join_code,
        teacher_token=credentials.teacher_token,
    )


@router.post("/join", response_model=JoinClassroomResponse, summary="Join a classroom")
def join_classroom(
    req: JoinClassroomRequest,
    classroom_manager: ClassroomManagerDep,
) -> JoinClassroomResponse:
    """Exchange a join code and display name for a student token.

    Args:
        req: Join request.
        classroom_manager: Injected classroom store.

    Returns:
        JoinClassroomResponse with the raw student token.

    Raises:
        HTTPException: 400 if fields are missing, the code is invalid or
            inactive, or the classroom is full.
    """
    join_code = normalize_join_code(req.join_code)
    display_name = req.display_name.strip()
    if not join_code or not display_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="'joinCode' and 'displayName' are required",
        )
    try:
        result = classroom_manager.join_classroom(join_code, display_name)
    except VibbitError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
    return JoinClassroomResponse(
        student_token=result.student_token,
        classroom_id=result.classroom_id,
        classroom_name=result.classroom_name,
    )


@router.get("/mine", response_model=ClassroomDetail, summary="Classroom details")
def get_my_classroom(
    classroom_manager: ClassroomManagerDep,
    classroom: ClassroomModel = Depends(get_teacher_classroom),
) -> ClassroomDetail:
    students = classroom_manager.list_students(classroom.classroom_id)
    info = _build_classroom_info(classroom)
    return ClassroomDetail(
        **info.model_dump(),
        students=[_build_student_info(student) for student in students],
    )


@router.get("/list", response_model=ClassroomListResponse, summary="List classrooms")
def list_classrooms(
    token: BearerTokenDep,
    classroom_manager: ClassroomManagerDep,
) -> ClassroomListResponse:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing teacher token",
        )
    models: List[ClassroomModel] = classroom_manager.list_classrooms_by_teacher_hash(
        hash_token(token)
    )
    return ClassroomListResponse(
        classrooms=[_build_classroom_info(model) for model in models]
    )


@router.patch("/mine", response_model=OkResponse, summary="Update classroom")
def update_my_classroom(
    req: UpdateClassroomRequest,
    classroom_manager: ClassroomManagerDep,
    classroom: ClassroomModel = Depends(get_teacher_classroom),
) -> OkResponse:
    """Update name, limits or the active flag of the teacher's classroom.

    Pausing a classroom (active=false) makes every student request fail with
    403 until it is re-activated.
    """
    fields = req.model_dump(exclude_none=True)
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        if not fields["name"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Classroom name cannot be empty.",
            )
    classroom_manager.update_classroom(classroom.classroom_id, fields)
    return OkResponse()


@router.post("/mine/reset", response_model=OkResponse, summary="Reset student usage")
def reset_usage(
    classroom_manager: ClassroomManagerDep,
    classroom: ClassroomModel = Depends(get_teacher_classroom),
) -> OkResponse:
    classroom_manager.reset_usage(classroom.classroom_id)
    return OkResponse()


@router.delete(
    "/students/{student_id}",
    response_model=OkResponse,
    summary="Remove a student",
)
def remove_student(
    student_id: str,
    classroom_manager: ClassroomManagerDep,
    classroom: ClassroomModel = Depends(get_teacher_classroom),
) -> OkResponse:
    """Deactivate a student of the teacher's classroom.

    Raises:
        HTTPException: 404 if the student is not an active member of the
            classroom.
    """
    if not classroom_manager.deactivate_student(student_id, classroom.classroom_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    return OkResponse()
