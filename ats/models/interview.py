from ..extensions import db
from ..utils.time import utc_now, isoformat
from .base import TimestampMixin


class InterviewStatus:
    SCHEDULED = "SCHEDULED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    OPEN = frozenset({SCHEDULED, RESCHEDULED})
    TERMINAL = frozenset({COMPLETED, CANCELLED})


_not_cancelled = "status != 'CANCELLED'"


class Interview(db.Model, TimestampMixin):
    __tablename__ = "interviews"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey("applications.id"), nullable=False, index=True)
    round = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(200))
    scheduled_at = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Integer, nullable=False, default=60)  # minutes
    location = db.Column(db.String(255))
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=InterviewStatus.SCHEDULED)
    reschedule_reason = db.Column(db.Text)
    cancel_reason = db.Column(db.Text)
    scheduled_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    completed_at = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        # a cancelled round may be scheduled again
        db.Index(
            "uq_interviews_open_round", "application_id", "round", unique=True,
            sqlite_where=db.text(_not_cancelled), postgresql_where=db.text(_not_cancelled),
        ),
    )

    application = db.relationship("Application", back_populates="interviews")
    assignments = db.relationship("InterviewerAssignment", back_populates="interview",
                                  cascade="all, delete-orphan", order_by="InterviewerAssignment.id")

    @property
    def interviewer_ids(self):
        return [a.interviewer_id for a in self.assignments]

    def assignment_for(self, interviewer_id):
        for a in self.assignments:
            if a.interviewer_id == interviewer_id:
                return a
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "round": self.round,
            "title": self.title,
            "scheduled_at": isoformat(self.scheduled_at),
            "duration": self.duration,
            "location": self.location,
            "notes": self.notes,
            "status": self.status,
            "reschedule_reason": self.reschedule_reason,
            "cancel_reason": self.cancel_reason,
            "completed_at": isoformat(self.completed_at),
            "assignments": [a.to_dict() for a in self.assignments],
        }

    def __repr__(self) -> str:
        return f"<Interview id={self.id} application_id={self.application_id} round={self.round}>"


class InterviewerAssignment(db.Model):
    __tablename__ = "interviewer_assignments"

    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id"), nullable=False, index=True)
    interviewer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    attended = db.Column(db.Boolean)
    rating = db.Column(db.Integer)
    recommendation = db.Column(db.String(20))
    feedback = db.Column(db.Text)
    assigned_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    completed_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("interview_id", "interviewer_id", name="uq_interviewer_assignments_pair"),
    )

    interview = db.relationship("Interview", back_populates="assignments")

    def to_dict(self):
        return {
            "interviewer_id": self.interviewer_id,
            "attended": self.attended,
            "rating": self.rating,
            "recommendation": self.recommendation,
            "feedback": self.feedback,
            "completed_at": isoformat(self.completed_at),
        }
