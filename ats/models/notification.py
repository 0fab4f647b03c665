from ..extensions import db
from ..utils.time import isoformat
from .base import TimestampMixin


class Notification(db.Model, TimestampMixin):
    __tablename__ = "notifications"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    application_id = db.Column(db.Integer, db.ForeignKey("applications.id"))
    event_id = db.Column(db.Integer, db.ForeignKey("domain_events.id"), index=True)
    type = db.Column(db.String(50))
    title = db.Column(db.String(255))
    message = db.Column(db.Text)
    sent_to = db.Column(db.String(255))
    provider_message_id = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    sent_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_notifications_event_user"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "application_id": self.application_id,
            "is_read": self.is_read,
            "sent_at": isoformat(self.sent_at),
            "created_at": isoformat(self.created_at),
        }
