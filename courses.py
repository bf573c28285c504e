"""Course lifecycle: who may create, change and delete a course and its content."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from errors import NotFound, ValidationFailed
from guards import require_course_owner_or_admin, require_enrolled, require_role
from models import (
    Account,
    Assignment,
    Course,
    Material,
    Submission,
    db,
    find_all_courses,
    find_course_by_id,
    find_courses_by_instructor,
    utcnow,
)

logger = logging.getLogger(__name__)

# instructor_id and the student set are never patched
PATCHABLE_FIELDS = ("title", "description", "start_date", "end_date", "is_active")


def get_course(course_id: int) -> Course:
    course = find_course_by_id(course_id)
    if course is None:
        raise NotFound("Course not found")
    return course


def list_courses() -> List[Course]:
    return find_all_courses()


def list_teaching(account: Account) -> List[Course]:
    return find_courses_by_instructor(account.id)


def create_course(instructor: Account, fields: Mapping[str, Any]) -> Course:
    require_role(instructor, "teacher", "admin")
    course = Course(
        instructor_id=instructor.id,
        **{k: v for k, v in fields.items() if k in PATCHABLE_FIELDS},
    )
    db.session.add(course)
    db.session.commit()
    logger.info("Course %s created by account %s", course.id, instructor.id)
    return course


def update_course(account: Account, course: Course, patch: Mapping[str, Any]) -> Course:
    require_course_owner_or_admin(account, course)
    changes = {k: v for k, v in patch.items() if k in PATCHABLE_FIELDS}
    start = changes.get("start_date", course.start_date)
    end = changes.get("end_date", course.end_date)
    if end < start:
        raise ValidationFailed(
            errors=[{"field": "endDate", "msg": "endDate must not be before startDate"}]
        )
    for key, value in changes.items():
        setattr(course, key, value)
    db.session.commit()
    return course


def delete_course(account: Account, course: Course) -> None:
    require_course_owner_or_admin(account, course)
    course_id = course.id
    db.session.delete(course)
    db.session.commit()
    logger.info("Course %s deleted by account %s", course_id, account.id)


# ───────────────────────────  COURSE CONTENT  ─────────────────────────
def add_assignment(account: Account, course: Course, fields: Mapping[str, Any]) -> Assignment:
    require_course_owner_or_admin(account, course)
    assignment = Assignment(course_id=course.id, **fields)
    db.session.add(assignment)
    db.session.commit()
    return assignment


def add_material(account: Account, course: Course, fields: Mapping[str, Any]) -> Material:
    require_course_owner_or_admin(account, course)
    material = Material(course_id=course.id, **fields)
    db.session.add(material)
    db.session.commit()
    return material


def get_assignment(course: Course, assignment_id: int) -> Assignment:
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None or assignment.course_id != course.id:
        raise NotFound("Assignment not found")
    return assignment


def submit_assignment(
    account: Account, course: Course, assignment_id: int, content: str
) -> Submission:
    """Hand in (or replace) the account's submission; resubmitting clears the grade."""
    require_enrolled(account, course)
    assignment = get_assignment(course, assignment_id)
    submission = Submission.query.filter_by(
        assignment_id=assignment.id, student_id=account.id
    ).first()
    if submission is None:
        submission = Submission(assignment_id=assignment.id, student_id=account.id)
        db.session.add(submission)
    submission.content = content
    submission.submitted_at = utcnow()
    submission.grade = None
    submission.feedback = None
    db.session.commit()
    return submission


def list_submissions(account: Account, course: Course, assignment_id: int) -> List[Submission]:
    require_course_owner_or_admin(account, course)
    return list(get_assignment(course, assignment_id).submissions)


def grade_submission(
    account: Account,
    course: Course,
    assignment_id: int,
    submission_id: int,
    grade: float,
    feedback: Optional[str] = None,
) -> Submission:
    require_course_owner_or_admin(account, course)
    assignment = get_assignment(course, assignment_id)
    submission = db.session.get(Submission, submission_id)
    if submission is None or submission.assignment_id != assignment.id:
        raise NotFound("Submission not found")
    submission.grade = grade
    submission.feedback = feedback
    db.session.commit()
    return submission


# ─────────────────────────────  SERIALIZE  ────────────────────────────
def _person(account: Optional[Account]) -> Optional[Dict[str, Any]]:
    if account is None:
        return None
    return {"id": account.id, "name": account.name, "email": account.email}


def course_to_dict(course: Course, detail: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "instructor": _person(course.instructor),
        "students": [_person(s) for s in course.students],
        "startDate": course.start_date.isoformat(),
        "endDate": course.end_date.isoformat(),
        "isActive": course.is_active,
        "createdAt": course.created_at.isoformat(),
    }
    if detail:
        data["assignments"] = [a.to_dict() for a in course.assignments]
        data["materials"] = [m.to_dict() for m in course.materials]
    return data
