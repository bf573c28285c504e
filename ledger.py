"""Enrollment ledger: the per-course set of enrolled students.

Each transition is one conditional statement against the ``enrollment``
table, so two concurrent requests for the same (course, student) pair can
never both succeed:

* enroll inserts; the composite primary key rejects a second insert.
* unenroll deletes by key; a rowcount of zero means there was nothing to
  remove.
"""
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import delete, exists, insert, select
from sqlalchemy.exc import IntegrityError

from errors import AlreadyEnrolled, NotEnrolled
from models import (
    Course,
    Enrollment,
    db,
    find_courses_where_not_student,
    find_courses_where_student,
    utcnow,
)

logger = logging.getLogger(__name__)


def is_enrolled(course_id: int, account_id: int) -> bool:
    stmt = select(
        exists().where(
            Enrollment.course_id == course_id, Enrollment.account_id == account_id
        )
    )
    return bool(db.session.scalar(stmt))


def enroll(course: Course, student_id: int) -> None:
    course_id = course.id
    try:
        db.session.execute(
            insert(Enrollment).values(
                course_id=course_id, account_id=student_id, enrolled_at=utcnow()
            )
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadyEnrolled(
            details={"studentId": student_id, "courseId": course_id, "enrolled": True}
        ) from exc
    logger.info("Account %s enrolled in course %s", student_id, course_id)


def unenroll(course: Course, student_id: int) -> None:
    course_id = course.id
    result = db.session.execute(
        delete(Enrollment).where(
            Enrollment.course_id == course_id, Enrollment.account_id == student_id
        )
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise NotEnrolled(
            details={"studentId": student_id, "courseId": course_id, "enrolled": False}
        )
    db.session.commit()
    logger.info("Account %s unenrolled from course %s", student_id, course_id)


def list_enrolled(account_id: int) -> List[Course]:
    return find_courses_where_student(account_id)


def list_available(account_id: int) -> List[Course]:
    return find_courses_where_not_student(account_id)
