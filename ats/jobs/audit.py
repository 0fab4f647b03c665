from flask import current_app

from ..extensions import db
from ..models.audit_log import AuditLog
from ..models.domain_event import DomainEvent
from ..utils.time import utc_now


def audit_event(event_id: int):
    """Append the audit row for one event. Re-running it is a no-op."""
    event = db.session.get(DomainEvent, event_id)
    if event is None:
        current_app.logger.warning("audit_event: event %s not found", event_id)
        return None

    try:
        entry = AuditLog.query.filter_by(event_id=event.id).first()
        if entry is None:
            entry = AuditLog(user_id=event.actor_id, action=event.event_type, entity=event.entity,
                             entity_id=event.entity_id, changes=event.payload, event_id=event.id,
                             created_at=event.occurred_at)
            db.session.add(entry)
        if event.audited_at is None:
            event.audited_at = utc_now()
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("audit_event failed for event %s", event_id)
        raise
    return entry.id
