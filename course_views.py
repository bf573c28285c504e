from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

import courses
import ledger
from guards import roles_required
from schemas import (
    AssignmentCreate,
    CourseCreate,
    CoursePatch,
    GradeRequest,
    MaterialCreate,
    SubmissionCreate,
    parse,
)

bp = Blueprint("courses", __name__, url_prefix="/api/courses")


def _many(items):
    return jsonify([courses.course_to_dict(c) for c in items])


@bp.post("")
@roles_required("teacher", "admin")
def create_course():
    body = parse(CourseCreate, request.get_json(silent=True))
    course = courses.create_course(current_user, body.model_dump())
    return jsonify(courses.course_to_dict(course, detail=True)), 201


@bp.get("")
@login_required
def list_courses():
    return _many(courses.list_courses())


@bp.get("/teaching")
@roles_required("teacher", "admin")
def teaching():
    return _many(courses.list_teaching(current_user))


@bp.get("/enrolled")
@roles_required("student")
def enrolled():
    return _many(ledger.list_enrolled(current_user.id))


@bp.get("/available")
@roles_required("student")
def available():
    return _many(ledger.list_available(current_user.id))


@bp.get("/<int:course_id>")
@login_required
def course_detail(course_id: int):
    return jsonify(courses.course_to_dict(courses.get_course(course_id), detail=True))


@bp.put("/<int:course_id>")
@roles_required("teacher", "admin")
def update_course(course_id: int):
    course = courses.get_course(course_id)
    body = parse(CoursePatch, request.get_json(silent=True))
    patch = body.model_dump(exclude_unset=True, exclude_none=True)
    course = courses.update_course(current_user, course, patch)
    return jsonify(courses.course_to_dict(course, detail=True))


@bp.delete("/<int:course_id>")
@roles_required("teacher", "admin")
def delete_course(course_id: int):
    courses.delete_course(current_user, courses.get_course(course_id))
    return jsonify({"message": "Course deleted successfully"})


# ─────────────────────────────  ENROLLMENT  ───────────────────────────
@bp.post("/<int:course_id>/enroll")
@roles_required("student")
def enroll(course_id: int):
    course = courses.get_course(course_id)
    ledger.enroll(course, current_user.id)
    return jsonify(
        {
            "message": "Successfully enrolled in course",
            "course": courses.course_to_dict(course),
        }
    )


@bp.delete("/<int:course_id>/unenroll")
@roles_required("student")
def unenroll(course_id: int):
    course = courses.get_course(course_id)
    ledger.unenroll(course, current_user.id)
    return jsonify(
        {"message": "Successfully unenrolled from course", "courseId": course_id}
    )


# ──────────────────────────  COURSE CONTENT  ──────────────────────────
@bp.post("/<int:course_id>/assignments")
@login_required
def add_assignment(course_id: int):
    course = courses.get_course(course_id)
    body = parse(AssignmentCreate, request.get_json(silent=True))
    assignment = courses.add_assignment(current_user, course, body.model_dump())
    return jsonify(assignment.to_dict()), 201


@bp.post("/<int:course_id>/materials")
@login_required
def add_material(course_id: int):
    course = courses.get_course(course_id)
    body = parse(MaterialCreate, request.get_json(silent=True))
    material = courses.add_material(current_user, course, body.model_dump())
    return jsonify(material.to_dict()), 201


@bp.get("/<int:course_id>/assignments/<int:assignment_id>/submissions")
@login_required
def list_submissions(course_id: int, assignment_id: int):
    course = courses.get_course(course_id)
    items = courses.list_submissions(current_user, course, assignment_id)
    return jsonify([s.to_dict() for s in items])


@bp.post("/<int:course_id>/assignments/<int:assignment_id>/submissions")
@roles_required("student")
def submit(course_id: int, assignment_id: int):
    course = courses.get_course(course_id)
    body = parse(SubmissionCreate, request.get_json(silent=True))
    submission = courses.submit_assignment(current_user, course, assignment_id, body.content)
    return jsonify(submission.to_dict()), 201


@bp.put("/<int:course_id>/assignments/<int:assignment_id>/submissions/<int:submission_id>")
@login_required
def grade(course_id: int, assignment_id: int, submission_id: int):
    course = courses.get_course(course_id)
    body = parse(GradeRequest, request.get_json(silent=True))
    submission = courses.grade_submission(
        current_user, course, assignment_id, submission_id, body.grade, body.feedback
    )
    return jsonify(submission.to_dict())
