"""Domain events and their delivery.

Services stage events with :func:`emit` inside their transaction, so an
event row exists if and only if the change it describes was committed.
After commit :func:`publish` hands the event to the notification and audit
sinks as two independent jobs. Delivery is at-least-once:
:func:`relay_pending_events` re-publishes rows a sink has not stamped yet.
"""

from flask import current_app

from .extensions import db, rq
from .models.domain_event import DomainEvent


class EventType:
    APPLICATION_SUBMITTED = "ApplicationSubmitted"
    STATUS_CHANGED = "StatusChanged"
    EVALUATION_SUBMITTED = "EvaluationSubmitted"
    TEST_CREATED = "TestCreated"
    TEST_INVITED = "TestInvited"
    TEST_COMPLETED = "TestCompleted"
    INTERVIEW_SCHEDULED = "InterviewScheduled"
    INTERVIEW_RESCHEDULED = "InterviewRescheduled"
    INTERVIEW_CANCELLED = "InterviewCancelled"
    INTERVIEWERS_ASSIGNED = "InterviewersAssigned"
    INTERVIEW_COMPLETED = "InterviewCompleted"


def emit(event_type, entity, entity_id, actor=None, application_id=None, **payload):
    """Stage an outbox row in the current session. The caller commits."""
    event = DomainEvent(
        event_type=event_type,
        entity=entity,
        entity_id=entity_id,
        application_id=application_id,
        actor_id=getattr(actor, "id", None),
        actor_role=getattr(actor, "role", None),
        payload=payload,
    )
    db.session.add(event)
    return event


def publish(event):
    from .jobs.notify import notify_event
    from .jobs.audit import audit_event

    for job in (notify_event, audit_event):
        try:
            rq.enqueue(job, event.id, job_timeout=60)
        except Exception:
            # the outbox row is already committed; the relay will retry
            current_app.logger.exception("Failed to enqueue %s for event %s", job.__name__, event.id)


def relay_pending_events(limit=100):
    pending = (
        DomainEvent.query
        .filter(db.or_(DomainEvent.notified_at.is_(None), DomainEvent.audited_at.is_(None)))
        .order_by(DomainEvent.id.asc())
        .limit(limit)
        .all()
    )
    for event in pending:
        publish(event)
    if pending:
        current_app.logger.info("Relayed %d pending domain events", len(pending))
    return len(pending)


def application_events(application_id):
    return (
        DomainEvent.query
        .filter_by(application_id=application_id)
        .order_by(DomainEvent.occurred_at.asc(), DomainEvent.id.asc())
        .all()
    )
