from .classroom import ClassroomModel
from .student import StudentModel

__all__ = ["ClassroomModel", "StudentModel"]
