"""Seed the sample subject catalog.

Run:
  PYTHONPATH=backend python scripts/seed_catalog.py
"""

from __future__ import annotations

import os

from sqlalchemy import func, select

from timetabler.db.bootstrap import ensure_schema
from timetabler.db.session import SessionLocal
from timetabler.models.subject import ClassSchedule, ClassType, Subject, TutorialGroup

SEMESTER = os.getenv("SEED_SEMESTER", "Fall 2024").strip() or "Fall 2024"
RESET_SCHEDULES = os.getenv("SEED_RESET_SCHEDULES", "true").strip().lower() in {"1", "true", "yes", "on"}

SUBJECTS = [
    {
        "code": "CS101",
        "name": "Introduction to Programming",
        "credits": 3,
        "description": "Fundamentals of programming using Python",
        "department": "Computer Science",
    },
    {
        "code": "MATH201",
        "name": "Calculus I",
        "credits": 4,
        "description": "Limits, derivatives, and integrals of algebraic and transcendental functions",
        "department": "Mathematics",
    },
    {
        "code": "ENG105",
        "name": "Academic Writing",
        "credits": 3,
        "description": "Principles of academic writing and research",
        "department": "English",
    },
]

# code -> (type, day, start, end, venue, instructor)
SCHEDULES: dict[str, list[tuple[ClassType, int, str, str, str, str]]] = {
    "CS101": [
        (ClassType.lecture, 1, "09:00", "10:30", "Room A101", "Dr. Smith"),
        (ClassType.lecture, 3, "09:00", "10:30", "Room A101", "Dr. Smith"),
        (ClassType.lab, 5, "14:00", "16:00", "Computer Lab 1", "Dr. Johnson"),
    ],
    "MATH201": [
        (ClassType.lecture, 2, "11:00", "12:30", "Room B201", "Prof. Williams"),
        (ClassType.lecture, 4, "11:00", "12:30", "Room B201", "Prof. Williams"),
        (ClassType.tutorial, 5, "10:00", "11:00", "Room B205", "Prof. Williams"),
    ],
    "ENG105": [
        (ClassType.lecture, 1, "14:00", "15:30", "Room C301", "Dr. Brown"),
        (ClassType.lecture, 4, "14:00", "15:30", "Room C301", "Dr. Brown"),
    ],
}

# code -> (group, day, start, end, venue, instructor)
TUTORIAL_GROUPS: dict[str, list[tuple[str, int, str, str, str, str]]] = {
    "CS101": [
        ("Tutorial Group A", 2, "13:00", "14:00", "Room A105", "Dr. Johnson"),
        ("Tutorial Group B", 2, "14:00", "15:00", "Room A105", "Dr. Johnson"),
        ("Tutorial Group C", 4, "13:00", "14:00", "Room A105", "Ms. Davis"),
    ],
    "MATH201": [
        ("Tutorial Group A", 3, "14:00", "15:00", "Room B202", "Mr. Wilson"),
        ("Tutorial Group B", 3, "15:00", "16:00", "Room B202", "Mr. Wilson"),
    ],
    "ENG105": [
        ("Tutorial Group A", 2, "16:00", "17:00", "Room C305", "Ms. Taylor"),
        ("Tutorial Group B", 5, "11:00", "12:00", "Room C305", "Ms. Taylor"),
    ],
}


def upsert_subject(session, payload: dict) -> Subject:
    subject = session.execute(select(Subject).where(Subject.code == payload["code"])).scalar_one_or_none()
    if subject is None:
        subject = Subject(code=payload["code"])
        session.add(subject)
    subject.name = payload["name"]
    subject.credits = payload["credits"]
    subject.description = payload["description"]
    subject.department = payload["department"]
    subject.semester = SEMESTER
    return subject


def replace_sessions(subject: Subject) -> None:
    if subject.schedules and subject.tutorials and not RESET_SCHEDULES:
        return
    subject.schedules = [
        ClassSchedule(
            type=class_type,
            day_of_week=day,
            start_time=start,
            end_time=end,
            venue=venue,
            instructor=instructor,
            created_order=index,
        )
        for index, (class_type, day, start, end, venue, instructor) in enumerate(SCHEDULES.get(subject.code, []))
    ]
    subject.tutorials = [
        TutorialGroup(
            group_name=group_name,
            day_of_week=day,
            start_time=start,
            end_time=end,
            venue=venue,
            instructor=instructor,
            created_order=index,
        )
        for index, (group_name, day, start, end, venue, instructor) in enumerate(TUTORIAL_GROUPS.get(subject.code, []))
    ]


def main() -> None:
    ensure_schema()
    with SessionLocal() as session:
        for payload in SUBJECTS:
            subject = upsert_subject(session, payload)
            replace_sessions(subject)

        session.commit()

        subject_count = session.execute(select(func.count(Subject.id))).scalar_one()
        schedule_count = session.execute(select(func.count(ClassSchedule.id))).scalar_one()
        group_count = session.execute(select(func.count(TutorialGroup.id))).scalar_one()

    print("Subject catalog seeded successfully.")
    print("")
    print(f"Semester: {SEMESTER}")
    print(f"Subjects: {subject_count}")
    print(f"Class schedules: {schedule_count}")
    print(f"Tutorial groups: {group_count}")


if __name__ == "__main__":
    main()
