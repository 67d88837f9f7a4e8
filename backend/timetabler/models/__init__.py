from timetabler.models.subject import ClassSchedule, ClassType, Subject, TutorialGroup  # noqa: F401
from timetabler.models.timetable_session import TimetableSession  # noqa: F401
