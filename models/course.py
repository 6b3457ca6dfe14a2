"""Course and course module models."""

from utils.clock import utcnow

from . import db


MODULE_TYPES = ("text", "video")
MIN_MODULES = 1
MAX_MODULES = 10
DEFAULT_DESCRIPTION = "Default course description"


class Course(db.Model):
    """A teacher-authored course made of ordered modules."""

    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    course_code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=False, default=DEFAULT_DESCRIPTION)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User", backref=db.backref("courses", lazy="dynamic"))
    modules = db.relationship(
        "CourseModule",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseModule.order",
    )

    def to_dict(self, include_modules: bool = False) -> dict:
        """Serialize the course; the listing view carries only a module count."""

        data = {
            "id": self.id,
            "name": self.name,
            "courseId": self.course_code,
            "points": self.points,
            "description": self.description or "",
            "moduleCount": len(self.modules),
            "createdBy": {
                "id": self.created_by,
                "name": self.creator.name if self.creator else "Unknown",
            },
            "enrollmentCount": self.enrollments.count(),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_modules:
            data["modules"] = [module.to_dict() for module in self.modules]
        return data


class CourseModule(db.Model):
    """A single text or video unit of a course."""

    __tablename__ = "course_modules"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(
        db.Integer,
        db.ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    type = db.Column(
        db.Enum(*MODULE_TYPES, name="course_module_type"),
        nullable=False,
    )
    content = db.Column(db.Text, nullable=False)
    order = db.Column(db.Integer, nullable=False)

    course = db.relationship("Course", back_populates="modules")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "content": self.content,
            "order": self.order,
        }
