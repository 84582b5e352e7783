"""Student database model.

This module defines the Student database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base


class StudentModel(Base):
    """Student database model."""

    __tablename__ = "students"

    student_id = Column("id", String, primary_key=True, index=True)
    classroom_id = Column(
        String, ForeignKey("classrooms.id"), index=True, nullable=False
    )
    display_name = Column(String, nullable=False)
    token_hash = Column(String, unique=True, index=True, nullable=False)
    requests_used = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(String, nullable=False)  # ISO format string

    classroom = relationship("ClassroomModel", back_populates="students")
