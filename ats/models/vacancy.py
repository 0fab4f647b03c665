from ..extensions import db
from .base import TimestampMixin


class VacancyStatus:
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Vacancy(db.Model, TimestampMixin):
    __tablename__ = "vacancies"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=VacancyStatus.DRAFT)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"))

    @property
    def accepts_applications(self):
        return self.status == VacancyStatus.OPEN and bool(self.is_published)

    def __repr__(self) -> str:
        return f"<Vacancy id={self.id} title={self.title!r}>"
