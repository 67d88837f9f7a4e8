from pydantic import BaseModel, Field, field_validator, model_validator

from timetabler.models.subject import ClassType
from timetabler.services.timeutils import normalize_time, parse_interval


class SessionTimes(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    venue: str = Field(default="", max_length=200)
    instructor: str | None = Field(default=None, max_length=200)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def validate_time_order(self) -> "SessionTimes":
        parse_interval(self.start_time, self.end_time)
        return self


class ClassScheduleCreate(SessionTimes):
    type: ClassType
    max_capacity: int | None = Field(default=30, ge=1, le=2000)


class TutorialGroupCreate(SessionTimes):
    group_name: str = Field(min_length=1, max_length=100)
    max_capacity: int | None = Field(default=25, ge=1, le=2000)


class SubjectCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    credits: int = Field(default=3, ge=0, le=40)
    description: str | None = None
    semester: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=200)
    schedules: list[ClassScheduleCreate] = Field(default_factory=list, max_length=50)
    tutorials: list[TutorialGroupCreate] = Field(default_factory=list, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class ClassScheduleOut(BaseModel):
    id: str
    type: ClassType
    day_of_week: int
    start_time: str
    end_time: str
    venue: str
    instructor: str | None = None
    max_capacity: int | None = None

    model_config = {"from_attributes": True}


class TutorialGroupOut(BaseModel):
    id: str
    group_name: str
    day_of_week: int
    start_time: str
    end_time: str
    venue: str
    instructor: str | None = None
    max_capacity: int | None = None

    model_config = {"from_attributes": True}


class SubjectOut(BaseModel):
    id: str
    code: str
    name: str
    credits: int
    description: str | None = None
    semester: str | None = None
    department: str | None = None
    schedules: list[ClassScheduleOut] = Field(default_factory=list)
    tutorials: list[TutorialGroupOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}
