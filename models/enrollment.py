"""Enrollment model."""

from utils.clock import utcnow

from . import db


class Enrollment(db.Model):
    """Represents a student enrolled in a course."""

    __tablename__ = "enrollments"
    __table_args__ = (
        db.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    course_id = db.Column(
        db.Integer, db.ForeignKey("courses.id"), nullable=False, index=True
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    student = db.relationship(
        "User", backref=db.backref("enrollments", lazy="dynamic")
    )
    course = db.relationship(
        "Course", backref=db.backref("enrollments", lazy="dynamic")
    )

    def to_dict(self) -> dict:
        """Serialize the enrollment."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
