from ..extensions import db
from ..utils.time import utc_now, isoformat


class Recommendation:
    STRONG_HIRE = "STRONG_HIRE"
    PROCEED = "PROCEED"
    HOLD = "HOLD"
    REJECT = "REJECT"

    ALL = (STRONG_HIRE, PROCEED, HOLD, REJECT)
    POSITIVE = frozenset({STRONG_HIRE, PROCEED})


class Evaluation(db.Model):
    """One scored review of an application. Rows are never updated."""
    __tablename__ = "evaluations"
    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey("applications.id"), nullable=False, index=True)
    evaluator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    evaluator_role = db.Column(db.String(20), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comments = db.Column(db.Text)
    strengths = db.Column(db.Text)
    weaknesses = db.Column(db.Text)
    recommendation = db.Column(db.String(20))  # STRONG_HIRE/PROCEED/HOLD/REJECT
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    application = db.relationship("Application", back_populates="evaluations")

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "evaluator_id": self.evaluator_id,
            "evaluator_role": self.evaluator_role,
            "rating": self.rating,
            "comments": self.comments,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "recommendation": self.recommendation,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Evaluation id={self.id} application_id={self.application_id} recommendation={self.recommendation}>"
