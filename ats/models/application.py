import re

from ..extensions import db
from ..utils.time import isoformat
from .base import TimestampMixin

_INTERVIEW_RE = re.compile(r"^INTERVIEW_R([1-9][0-9]*)$")


class ApplicationStatus:
    APPLIED = "APPLIED"
    SCREENING = "SCREENING"
    SHORTLISTED = "SHORTLISTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    OFFERED = "OFFERED"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"

    TERMINAL = frozenset({HIRED, REJECTED, WITHDRAWN})
    # statuses that free the (applicant, vacancy) pair for a new application
    CLOSED = frozenset({REJECTED, WITHDRAWN})

    @staticmethod
    def interview(round_no: int) -> str:
        return f"INTERVIEW_R{int(round_no)}"

    @staticmethod
    def interview_round(status):
        """Round number encoded in an ``INTERVIEW_R{n}`` status, else None."""
        m = _INTERVIEW_RE.match(status or "")
        return int(m.group(1)) if m else None

    @classmethod
    def is_valid(cls, status) -> bool:
        if cls.interview_round(status) is not None:
            return True
        return status in (cls.APPLIED, cls.SCREENING, cls.SHORTLISTED, cls.UNDER_REVIEW,
                          cls.OFFERED, cls.HIRED, cls.REJECTED, cls.WITHDRAWN)


_active_only = "status NOT IN ('WITHDRAWN', 'REJECTED')"


class Application(db.Model, TimestampMixin):
    __tablename__ = "applications"
    id = db.Column(db.Integer, primary_key=True)
    vacancy_id = db.Column(db.Integer, db.ForeignKey("vacancies.id"), nullable=False, index=True)
    applicant_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    cv_id = db.Column(db.Integer, nullable=False)
    motivation_letter_id = db.Column(db.Integer)
    status = db.Column(db.String(30), nullable=False, default=ApplicationStatus.APPLIED, index=True)
    notes = db.Column(db.Text)
    withdrawn_reason = db.Column(db.Text)
    version = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        db.Index(
            "uq_applications_active_pair", "applicant_id", "vacancy_id", unique=True,
            sqlite_where=db.text(_active_only), postgresql_where=db.text(_active_only),
        ),
    )

    vacancy = db.relationship("Vacancy", lazy="joined")
    evaluations = db.relationship("Evaluation", back_populates="application",
                                  order_by="Evaluation.id", lazy="select")
    interviews = db.relationship("Interview", back_populates="application",
                                 order_by="Interview.id", lazy="select")
    test_attempts = db.relationship("TestAttempt", back_populates="application", lazy="select")

    @property
    def is_terminal(self):
        return self.status in ApplicationStatus.TERMINAL

    @property
    def interview_round(self):
        return ApplicationStatus.interview_round(self.status)

    def to_dict(self):
        return {
            "id": self.id,
            "vacancy_id": self.vacancy_id,
            "applicant_id": self.applicant_id,
            "cv_id": self.cv_id,
            "motivation_letter_id": self.motivation_letter_id,
            "status": self.status,
            "notes": self.notes,
            "withdrawn_reason": self.withdrawn_reason,
            "version": self.version,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Application id={self.id} status={self.status}>"
