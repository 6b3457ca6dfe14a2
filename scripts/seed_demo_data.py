"""Seed a verified teacher, a verified student and a sample course."""

from __future__ import annotations

from accounts import store
from app import create_app
from config import Config
from models import db
from models.course import Course, CourseModule
from models.user import User

TEACHER_EMAIL = "teacher@example.com"
STUDENT_EMAIL = "student@example.com"
DEMO_PASSWORD = "DemoPass123"
DEMO_COURSE_CODE = "CAREER-101"


def get_or_create_user(email: str, name: str, role: str, password: str) -> User:
    """Return a verified demo account, creating or resetting it as needed."""

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=name, role=role)
        db.session.add(user)
    user.name = name
    user.role = role
    user.set_password(password)
    db.session.flush()
    store.set_verification_fields(user.id, is_verified=True)
    return user


def get_or_create_course(teacher: User) -> Course:
    course = Course.query.filter_by(course_code=DEMO_COURSE_CODE).first()
    if course is not None:
        return course

    course = Course(
        name="Exploring Career Paths",
        course_code=DEMO_COURSE_CODE,
        points=10,
        description="An introduction to choosing and planning a career.",
        creator=teacher,
        modules=[
            CourseModule(
                title="Know your strengths",
                type="text",
                content="Reflect on the subjects and activities you enjoy most.",
                order=1,
            ),
            CourseModule(
                title="Talking to professionals",
                type="video",
                content="https://example.com/videos/informational-interviews",
                order=2,
            ),
        ],
    )
    db.session.add(course)
    return course


def main(config_class: type[Config] = Config) -> dict[str, int]:
    app = create_app(config_class)
    with app.app_context():
        db.create_all()
        teacher = get_or_create_user(TEACHER_EMAIL, "Demo Teacher", "teacher", DEMO_PASSWORD)
        student = get_or_create_user(STUDENT_EMAIL, "Demo Student", "student", DEMO_PASSWORD)
        course = get_or_create_course(teacher)
        db.session.commit()
        summary = {"teacher": teacher.id, "student": student.id, "course": course.id}
    print(f"Demo data ready: {summary}")
    return summary


if __name__ == "__main__":
    main()
