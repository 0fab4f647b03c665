from ..extensions import db
from ..utils.time import utc_now, isoformat


class DomainEvent(db.Model):
    """Outbox row, committed in the same transaction as the change it describes.

    ``notified_at`` / ``audited_at`` are stamped by the two sinks once they
    have consumed the event; rows with either still empty get relayed again.
    """
    __tablename__ = "domain_events"
    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(50), nullable=False, index=True)
    entity = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    application_id = db.Column(db.Integer, db.ForeignKey("applications.id"), index=True)
    actor_id = db.Column(db.Integer)
    actor_role = db.Column(db.String(20))
    payload = db.Column(db.JSON, nullable=False, default=dict)
    occurred_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    notified_at = db.Column(db.DateTime)
    audited_at = db.Column(db.DateTime)

    application = db.relationship("Application")

    @property
    def delivered(self):
        return self.notified_at is not None and self.audited_at is not None

    def to_dict(self):
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "application_id": self.application_id,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "payload": self.payload,
            "occurred_at": isoformat(self.occurred_at),
        }

    def __repr__(self) -> str:
        return f"<DomainEvent id={self.id} type={self.event_type}>"
