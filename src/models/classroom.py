"""Classroom database model.

This module defines the Classroom database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from config import DEFAULT_MAX_STUDENTS, DEFAULT_REQUEST_LIMIT
from .base import Base


class ClassroomModel(Base):
    """Classroom database model."""

    __tablename__ = "classrooms"

    classroom_id = Column("id", String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    join_code = Column(String, unique=True, index=True, nullable=False)
    teacher_token_hash = Column(String, unique=True, index=True, nullable=False)
    max_students = Column(Integer, nullable=False, default=DEFAULT_MAX_STUDENTS)
    request_limit = Column(Integer, nullable=False, default=DEFAULT_REQUEST_LIMIT)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False)  # ISO format string

    students = relationship("StudentModel", back_populates="classroom")
