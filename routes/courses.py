"""Courses blueprint with listing, CRUD and enrollment."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import Conflict, Forbidden, NotFound

from accounts.store import store_errors
from models import db
from models.course import (
    DEFAULT_DESCRIPTION,
    MAX_MODULES,
    MIN_MODULES,
    MODULE_TYPES,
    Course,
    CourseModule,
)
from models.enrollment import Enrollment
from models.user import User
from utils.errors import ValidationError
from utils.request_validation import parse_json_request

courses_bp = Blueprint("courses", __name__)


def _get_current_user() -> User | None:
    identity = get_jwt_identity()
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def _get_course_or_404(course_id: int) -> Course:
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFound("Course not found.")
    return course


def _parse_points(value, errors: list[str]) -> int | None:
    if isinstance(value, bool):
        errors.append("points must be a non-negative integer")
        return None
    try:
        points = int(value)
    except (TypeError, ValueError):
        errors.append("points must be a non-negative integer")
        return None
    if points < 0 or str(points) != str(value).strip():
        errors.append("points must be a non-negative integer")
        return None
    return points


def _validate_modules(raw_modules, errors: list[str]) -> list[dict]:
    if not isinstance(raw_modules, list):
        errors.append("modules must be a list")
        return []
    if not MIN_MODULES <= len(raw_modules) <= MAX_MODULES:
        errors.append(
            f"A course must have between {MIN_MODULES} and {MAX_MODULES} modules"
        )

    modules = []
    for position, raw in enumerate(raw_modules, start=1):
        if not isinstance(raw, dict):
            errors.append(f"module {position} must be an object")
            continue
        title = (raw.get("title") or "").strip() if isinstance(raw.get("title"), str) else ""
        content = raw.get("content") if isinstance(raw.get("content"), str) else ""
        module_type = raw.get("type")
        if not title:
            errors.append(f"module {position} title is required")
        if module_type not in MODULE_TYPES:
            errors.append(f"module {position} type must be one of text, video")
        if not content:
            errors.append(f"module {position} content is required")
        order = raw.get("order", position)
        if isinstance(order, bool) or not isinstance(order, int):
            errors.append(f"module {position} order must be an integer")
            order = position
        modules.append(
            {"title": title, "type": module_type, "content": content, "order": order}
        )
    return modules


def _validate_course_payload(data: dict):
    errors: list[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("name is required")

    course_code = data.get("courseId")
    if not isinstance(course_code, str) or not course_code.strip():
        errors.append("courseId is required")

    points = None
    if data.get("points") in (None, ""):
        errors.append("points is required")
    else:
        points = _parse_points(data.get("points"), errors)

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        errors.append("description must be a string")

    modules = _validate_modules(data.get("modules"), errors)

    if errors:
        raise ValidationError("; ".join(errors))

    return {
        "name": name.strip(),
        "course_code": course_code.strip(),
        "points": points,
        "description": (description or "").strip() or DEFAULT_DESCRIPTION,
        "modules": modules,
    }


def _course_code_taken(course_code: str, exclude_id: int | None = None) -> bool:
    query = Course.query.filter(Course.course_code == course_code)
    if exclude_id is not None:
        query = query.filter(Course.id != exclude_id)
    return query.first() is not None


def _commit_course() -> None:
    try:
        with store_errors():
            db.session.commit()
    except IntegrityError as exc:
        raise Conflict("A course with this ID already exists.") from exc


@courses_bp.route("", methods=["GET"])
def list_courses():
    """Return courses, newest first, optionally filtered by teacher."""

    query = Course.query

    teacher_id = request.args.get("teacherId")
    if teacher_id:
        try:
            query = query.filter(Course.created_by == int(teacher_id))
        except ValueError:
            raise ValidationError("teacherId must be an integer.")

    with store_errors():
        courses = query.order_by(Course.created_at.desc(), Course.id.desc()).all()
        payload = [course.to_dict() for course in courses]

    return jsonify({"courses": payload, "count": len(payload)})


@courses_bp.route("", methods=["POST"])
@jwt_required()
def create_course():
    """Create a course. Teachers only."""

    user = _get_current_user()
    if user is None or user.role != "teacher":
        raise Forbidden("Only teachers can create courses.")

    data = _validate_course_payload(parse_json_request(request))
    if _course_code_taken(data["course_code"]):
        raise Conflict("A course with this ID already exists.")

    course = Course(
        name=data["name"],
        course_code=data["course_code"],
        points=data["points"],
        description=data["description"],
        created_by=user.id,
        modules=[CourseModule(**module) for module in data["modules"]],
    )
    db.session.add(course)
    _commit_course()

    return (
        jsonify(
            {
                "message": "Course created successfully.",
                "course": course.to_dict(include_modules=True),
            }
        ),
        201,
    )


@courses_bp.route("/<int:course_id>", methods=["GET"])
def get_course(course_id: int):
    course = _get_course_or_404(course_id)
    return jsonify({"course": course.to_dict(include_modules=True)})


@courses_bp.route("/<int:course_id>", methods=["PUT"])
@jwt_required()
def update_course(course_id: int):
    """Replace a course's fields and modules. Only its creator may do this."""

    course = _get_course_or_404(course_id)
    user = _get_current_user()
    if user is None or user.id != course.created_by:
        raise Forbidden("You do not have permission to update this course.")

    data = _validate_course_payload(parse_json_request(request))
    if data["course_code"] != course.course_code and _course_code_taken(
        data["course_code"], exclude_id=course.id
    ):
        raise Conflict("A course with this ID already exists.")

    course.name = data["name"]
    course.course_code = data["course_code"]
    course.points = data["points"]
    course.description = data["description"]
    course.modules = [CourseModule(**module) for module in data["modules"]]
    _commit_course()

    return jsonify(
        {
            "message": "Course updated successfully.",
            "course": course.to_dict(include_modules=True),
        }
    )


@courses_bp.route("/<int:course_id>/enroll", methods=["POST"])
@jwt_required()
def enroll(course_id: int):
    """Enroll the current student in a course."""

    course = _get_course_or_404(course_id)
    user = _get_current_user()
    if user is None or user.role != "student":
        raise Forbidden("Only students can enroll in courses.")
    if not user.is_verified:
        raise Forbidden("You must verify your email before enrolling.")

    existing = Enrollment.query.filter_by(user_id=user.id, course_id=course.id).first()
    if existing is not None:
        raise Conflict("You are already enrolled in this course.")

    enrollment = Enrollment(user_id=user.id, course_id=course.id)
    db.session.add(enrollment)
    try:
        with store_errors():
            db.session.commit()
    except IntegrityError as exc:
        raise Conflict("You are already enrolled in this course.") from exc

    return jsonify(enrollment.to_dict()), 201
