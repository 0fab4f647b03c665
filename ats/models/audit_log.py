from ..extensions import db
from ..utils.time import utc_now


class AuditLog(db.Model):
    """Append-only change log, one row per domain event."""
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    action = db.Column(db.String(50), nullable=False)
    entity = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    changes = db.Column(db.JSON)
    event_id = db.Column(db.Integer, db.ForeignKey("domain_events.id"), unique=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} {self.action} {self.entity}#{self.entity_id}>"
