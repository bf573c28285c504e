import datetime as dt

import pytest
from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

import ledger
from app import create_app
from conftest import TEST_CONFIG
from courses import create_course
from errors import AlreadyEnrolled, NotEnrolled
from models import Enrollment, db, utcnow


def _students(course_id):
    stmt = (
        select(Enrollment.account_id)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.account_id)
    )
    return list(db.session.scalars(stmt))


def _course(teacher, title="CS101"):
    return create_course(
        teacher,
        {
            "title": title,
            "description": f"{title} description",
            "start_date": dt.date(2024, 1, 1),
            "end_date": dt.date(2024, 5, 1),
        },
    )


@pytest.fixture()
def catalog(ctx, add_account):
    teacher = add_account("teacher@example.com", role="teacher")
    courses = [_course(teacher, title) for title in ("CS101", "CS102", "CS201")]
    student = add_account("student@example.com")
    return teacher, student, courses


def test_enroll_adds_membership(catalog):
    _, student, (cs101, _, _) = catalog
    ledger.enroll(cs101, student.id)
    assert ledger.is_enrolled(cs101.id, student.id)
    assert _students(cs101.id) == [student.id]


def test_second_enroll_fails_and_leaves_state(catalog):
    _, student, (cs101, _, _) = catalog
    ledger.enroll(cs101, student.id)
    with pytest.raises(AlreadyEnrolled) as exc:
        ledger.enroll(cs101, student.id)
    assert exc.value.details["enrolled"] is True
    assert _students(cs101.id) == [student.id]


def test_unenroll_without_enrollment_fails(catalog):
    _, student, (cs101, _, _) = catalog
    with pytest.raises(NotEnrolled):
        ledger.unenroll(cs101, student.id)
    assert _students(cs101.id) == []


def test_enroll_then_unenroll_restores_students(catalog, add_account):
    _, student, (cs101, _, _) = catalog
    other = add_account("other@example.com")
    ledger.enroll(cs101, other.id)
    before = set(_students(cs101.id))

    ledger.enroll(cs101, student.id)
    ledger.unenroll(cs101, student.id)

    assert set(_students(cs101.id)) == before


def test_enrolled_and_available_partition_all_courses(catalog):
    _, student, courses = catalog
    all_ids = {c.id for c in courses}

    def check():
        enrolled = {c.id for c in ledger.list_enrolled(student.id)}
        available = {c.id for c in ledger.list_available(student.id)}
        assert enrolled.isdisjoint(available)
        assert enrolled | available == all_ids
        return enrolled

    assert check() == set()
    ledger.enroll(courses[0], student.id)
    ledger.enroll(courses[2], student.id)
    assert check() == {courses[0].id, courses[2].id}
    ledger.unenroll(courses[0], student.id)
    assert check() == {courses[2].id}


# ─────────────────────  SEPARATE CONNECTIONS  ─────────────────────────
@pytest.fixture()
def shared_db(tmp_path):
    """A file-backed database, so a second Session gets its own connection."""
    uri = f"sqlite:///{tmp_path / 'eduvault.db'}"
    app = create_app(dict(TEST_CONFIG, SQLALCHEMY_DATABASE_URI=uri))
    with app.app_context():
        db.create_all()
        yield
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_racing_enroll_admits_exactly_one(shared_db, add_account):
    teacher = add_account("teacher@example.com", role="teacher")
    student = add_account("student@example.com")
    course = _course(teacher)

    with Session(db.engine) as rival:
        # both requests saw "not enrolled" before either wrote
        assert not ledger.is_enrolled(course.id, student.id)
        assert rival.scalar(select(Enrollment).filter_by(course_id=course.id)) is None

        rival.execute(
            insert(Enrollment).values(
                course_id=course.id, account_id=student.id, enrolled_at=utcnow()
            )
        )
        rival.commit()

    with pytest.raises(AlreadyEnrolled):
        ledger.enroll(course, student.id)
    assert _students(course.id) == [student.id]


def test_racing_unenroll_admits_exactly_one(shared_db, add_account):
    teacher = add_account("teacher@example.com", role="teacher")
    student = add_account("student@example.com")
    course = _course(teacher)
    ledger.enroll(course, student.id)

    with Session(db.engine) as rival:
        removed = rival.execute(
            delete(Enrollment).where(
                Enrollment.course_id == course.id, Enrollment.account_id == student.id
            )
        )
        rival.commit()
        assert removed.rowcount == 1

    with pytest.raises(NotEnrolled):
        ledger.unenroll(course, student.id)
    assert _students(course.id) == []
