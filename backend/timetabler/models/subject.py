import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from timetabler.db.base import Base


class ClassType(str, Enum):
    lecture = "lecture"
    tutorial = "tutorial"
    lab = "lab"
    practical = "practical"


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    semester: Mapped[str | None] = mapped_column(String(50), nullable=True)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    schedules: Mapped[list["ClassSchedule"]] = relationship(
        back_populates="subject",
        cascade="all, delete-orphan",
        order_by="ClassSchedule.created_order",
    )
    tutorials: Mapped[list["TutorialGroup"]] = relationship(
        back_populates="subject",
        cascade="all, delete-orphan",
        order_by="TutorialGroup.created_order",
    )


class ClassSchedule(Base):
    __tablename__ = "class_schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[ClassType] = mapped_column(SAEnum(ClassType, name="class_type"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)
    venue: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    instructor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    max_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True, default=30)
    created_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    subject: Mapped[Subject] = relationship(back_populates="schedules")


class TutorialGroup(Base):
    __tablename__ = "tutorial_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    group_name: Mapped[str] = mapped_column(String(100), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)
    venue: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    instructor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    max_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True, default=25)
    created_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    subject: Mapped[Subject] = relationship(back_populates="tutorials")
