from secrets import token_urlsafe

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from ..extensions import db
from ..roles import Roles
from .base import TimestampMixin


class User(db.Model, UserMixin, TimestampMixin):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120))
    last_name = db.Column(db.String(120))
    role = db.Column(db.String(20), nullable=False, default=Roles.APPLICANT, index=True)
    api_token = db.Column(db.String(64), unique=True, index=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    @property
    def is_active(self):
        return bool(self.active)

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email

    def set_password(self, raw):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw):
        return check_password_hash(self.password_hash, raw)

    def issue_token(self):
        self.api_token = token_urlsafe(32)
        return self.api_token

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"
