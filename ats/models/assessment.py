from ..extensions import db
from ..utils.time import utc_now, isoformat


class TestType:
    __test__ = False
    INTERNAL_QUIZ = "INTERNAL_QUIZ"
    EXTERNAL_LINK = "EXTERNAL_LINK"


class QuestionType:
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"

    ALL = (MULTIPLE_CHOICE, TRUE_FALSE, SHORT_ANSWER)


# question keys an applicant must never see
ANSWER_KEYS = ("correct_answer", "acceptable_answers")


class Test(db.Model):
    """Assessment template attached to a vacancy. Immutable once created."""
    __test__ = False
    __tablename__ = "tests"
    id = db.Column(db.Integer, primary_key=True)
    vacancy_id = db.Column(db.Integer, db.ForeignKey("vacancies.id"), nullable=False, index=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    type = db.Column(db.String(20), nullable=False)  # INTERNAL_QUIZ/EXTERNAL_LINK
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    instructions = db.Column(db.Text)
    duration = db.Column(db.Integer)  # minutes
    passing_score = db.Column(db.Integer)  # percentage 0-100
    total_score = db.Column(db.Integer)
    external_url = db.Column(db.String(500))
    questions = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def to_dict(self, include_answers=False):
        questions = None
        if self.questions is not None:
            questions = [
                {k: v for k, v in q.items() if include_answers or k not in ANSWER_KEYS}
                for q in self.questions
            ]
        return {
            "id": self.id,
            "vacancy_id": self.vacancy_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "instructions": self.instructions,
            "duration": self.duration,
            "passing_score": self.passing_score,
            "total_score": self.total_score,
            "external_url": self.external_url,
            "questions": questions,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Test id={self.id} type={self.type}>"


class TestAttempt(db.Model):
    """Binds one application to one test. Immutable once completed."""
    __test__ = False
    __tablename__ = "test_attempts"
    id = db.Column(db.Integer, primary_key=True)
    test_id = db.Column(db.Integer, db.ForeignKey("tests.id"), nullable=False)
    application_id = db.Column(db.Integer, db.ForeignKey("applications.id"), nullable=False, index=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    answers = db.Column(db.JSON)
    score = db.Column(db.Integer)
    is_passed = db.Column(db.Boolean)
    external_completed = db.Column(db.Boolean, nullable=False, default=False)
    external_notes = db.Column(db.Text)
    started_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    completed_at = db.Column(db.DateTime)
    version = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        db.UniqueConstraint("application_id", "test_id", name="uq_test_attempts_application_test"),
    )

    test = db.relationship("Test", lazy="joined")
    application = db.relationship("Application", back_populates="test_attempts")

    @property
    def is_completed(self):
        return self.completed_at is not None

    @property
    def percentage(self):
        if self.score is None or not self.test or not self.test.total_score:
            return None
        return round(self.score / self.test.total_score * 100)

    def to_dict(self):
        return {
            "id": self.id,
            "test_id": self.test_id,
            "application_id": self.application_id,
            "candidate_id": self.candidate_id,
            "score": self.score,
            "total_score": self.test.total_score if self.test else None,
            "percentage": self.percentage,
            "is_passed": self.is_passed,
            "external_completed": self.external_completed,
            "external_notes": self.external_notes,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at),
        }

    def __repr__(self) -> str:
        return f"<TestAttempt id={self.id} application_id={self.application_id} test_id={self.test_id}>"
