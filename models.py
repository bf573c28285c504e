from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List

from flask import current_app
from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, UniqueConstraint, func, select
from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

db: SQLAlchemy = SQLAlchemy()

ROLES = ("student", "teacher", "admin")
MATERIAL_KINDS = ("document", "video", "link")


def _one_of(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# ─────────────────────────────  MODELS  ───────────────────────────────
class Account(db.Model, UserMixin):  # type: ignore[misc]
    __tablename__ = "account"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255))  # hash; placeholder for external-only
    google_id = db.Column(db.String(255), unique=True)
    role = db.Column(db.String(20), nullable=False, default="student")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login = db.Column(db.DateTime)

    enrollments = db.relationship(
        "Enrollment", back_populates="account", cascade="all, delete-orphan"
    )
    submissions = db.relationship(
        "Submission", back_populates="student", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "password IS NOT NULL OR google_id IS NOT NULL",
            name="ck_account_credential",
        ),
        CheckConstraint(_one_of("role", ROLES), name="ck_account_role"),
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return value.strip().lower()

    @validates("name")
    def _strip_name(self, _key: str, value: str) -> str:
        return value.strip()

    def set_password(self, raw: str) -> None:
        self.password = generate_password_hash(
            raw, method=current_app.config["PASSWORD_HASH_METHOD"]
        )

    def check_password(self, raw: str) -> bool:
        if not self.password:
            return False
        return check_password_hash(self.password, raw)

    def public_profile(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.public_profile()
        data.update(
            {
                "googleLinked": self.google_id is not None,
                "createdAt": _iso(self.created_at),
                "lastLogin": _iso(self.last_login),
            }
        )
        return data


class Enrollment(db.Model):  # type: ignore[misc]
    """One row per (course, student); the composite key keeps the set unique."""

    __tablename__ = "enrollment"

    course_id = db.Column(
        db.Integer, db.ForeignKey("course.id", ondelete="CASCADE"), primary_key=True
    )
    account_id = db.Column(
        db.Integer, db.ForeignKey("account.id", ondelete="CASCADE"), primary_key=True
    )
    enrolled_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    course = db.relationship("Course", back_populates="enrollments")
    account = db.relationship("Account", back_populates="enrollments")


class Course(db.Model):  # type: ignore[misc]
    __tablename__ = "course"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey("account.id"), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    instructor = db.relationship("Account", foreign_keys=[instructor_id])
    enrollments = db.relationship(
        "Enrollment", back_populates="course", cascade="all, delete-orphan"
    )
    students = db.relationship(
        "Account", secondary="enrollment", viewonly=True, order_by="Account.id"
    )
    assignments = db.relationship(
        "Assignment",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Assignment.id",
    )
    materials = db.relationship(
        "Material",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Material.id",
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_course_dates"),
    )


class Assignment(db.Model):  # type: ignore[misc]
    __tablename__ = "assignment"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer, db.ForeignKey("course.id", ondelete="CASCADE"), nullable=False
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    due_date = db.Column(db.DateTime)
    points = db.Column(db.Integer, nullable=False, default=0)

    course = db.relationship("Course", back_populates="assignments")
    submissions = db.relationship(
        "Submission",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="Submission.id",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": _iso(self.due_date),
            "points": self.points,
        }


class Submission(db.Model):  # type: ignore[misc]
    __tablename__ = "submission"

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(
        db.Integer, db.ForeignKey("assignment.id", ondelete="CASCADE"), nullable=False
    )
    student_id = db.Column(
        db.Integer, db.ForeignKey("account.id", ondelete="CASCADE"), nullable=False
    )
    submitted_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    content = db.Column(db.Text, nullable=False)
    grade = db.Column(db.Float)
    feedback = db.Column(db.Text)

    assignment = db.relationship("Assignment", back_populates="submissions")
    student = db.relationship("Account", back_populates="submissions")

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uix_submission_student"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assignmentId": self.assignment_id,
            "studentId": self.student_id,
            "submittedAt": _iso(self.submitted_at),
            "content": self.content,
            "grade": self.grade,
            "feedback": self.feedback,
        }


class Material(db.Model):  # type: ignore[misc]
    __tablename__ = "material"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer, db.ForeignKey("course.id", ondelete="CASCADE"), nullable=False
    )
    title = db.Column(db.String(200), nullable=False)
    kind = db.Column(db.String(20), nullable=False)
    content = db.Column(db.Text, nullable=False, default="")
    uploaded_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    course = db.relationship("Course", back_populates="materials")

    __table_args__ = (
        CheckConstraint(_one_of("kind", MATERIAL_KINDS), name="ck_material_kind"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.kind,
            "content": self.content,
            "uploadDate": _iso(self.uploaded_at),
        }


def _iso(value: dt.date | dt.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ─────────────────────────────  LOOKUPS  ──────────────────────────────
def find_account_by_id(account_id: int) -> Account | None:
    return db.session.get(Account, account_id)


def find_account_by_email(email: str) -> Account | None:
    return Account.query.filter(
        func.lower(Account.email) == email.strip().lower()
    ).first()


def find_account_by_external_id(external_id: str) -> Account | None:
    return Account.query.filter_by(google_id=external_id).first()


def find_course_by_id(course_id: int) -> Course | None:
    return db.session.get(Course, course_id)


def find_all_courses() -> List[Course]:
    return Course.query.order_by(Course.id).all()


def find_courses_by_instructor(account_id: int) -> List[Course]:
    return Course.query.filter_by(instructor_id=account_id).order_by(Course.id).all()


def enrolled_course_ids(account_id: int):
    return select(Enrollment.course_id).where(Enrollment.account_id == account_id)


def find_courses_where_student(account_id: int) -> List[Course]:
    return (
        Course.query.filter(Course.id.in_(enrolled_course_ids(account_id)))
        .order_by(Course.id)
        .all()
    )


def find_courses_where_not_student(account_id: int) -> List[Course]:
    return (
        Course.query.filter(Course.id.not_in(enrolled_course_ids(account_id)))
        .order_by(Course.id)
        .all()
    )
