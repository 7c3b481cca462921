"""User model."""

from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from ..database import Base
from .enums import UserRole


class User(Base):
    """Instructor, teaching assistant, student or admin account."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    assignments = relationship("Assignment", back_populates="instructor")
    submissions = relationship("Submission", back_populates="student")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"

    @property
    def is_instructor(self) -> bool:
        return self.role in (UserRole.instructor, UserRole.admin)

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student
