"""Notification sink.

Consumes one domain event: writes an in-app notification per recipient and,
when SendGrid is configured, emails it. Interview events carry an .ics
invite. Safe to run more than once for the same event.
"""

from datetime import timedelta

from flask import current_app

from ..events import EventType
from ..extensions import db
from ..models.application import ApplicationStatus
from ..models.domain_event import DomainEvent
from ..models.interview import Interview
from ..models.notification import Notification
from ..models.user import User
from ..services.ics import build_ics, interview_uid
from ..services.mail import mail_enabled, send_notification
from ..utils.time import utc_now

INTERVIEW_EVENTS = {EventType.INTERVIEW_SCHEDULED, EventType.INTERVIEW_RESCHEDULED,
                    EventType.INTERVIEW_CANCELLED, EventType.INTERVIEWERS_ASSIGNED}


def _when(dt):
    return dt.strftime("%Y-%m-%d %H:%M UTC") if dt else "TBD"


def _status_message(status, vacancy):
    if status == ApplicationStatus.REJECTED:
        return ("Application Update",
                f"Thank you for your interest in {vacancy}. After careful consideration, "
                "we have decided to move forward with other candidates.")
    if status == ApplicationStatus.OFFERED:
        return ("Congratulations! Job Offer", f"We are delighted to offer you the position of {vacancy}.")
    if status == ApplicationStatus.HIRED:
        return ("Welcome aboard", f"Your hiring for {vacancy} is confirmed.")
    if status == ApplicationStatus.WITHDRAWN:
        return ("Application Withdrawn", f"Your application for {vacancy} has been withdrawn.")
    return ("Application Update", f"Your application for {vacancy} is now {status.replace('_', ' ').lower()}.")


def build_messages(event, application, interview=None):
    """List of ``(user_id, title, message)`` for one event."""
    p = event.payload or {}
    vacancy = application.vacancy.title if application and application.vacancy else "this vacancy"
    applicant_id = application.applicant_id if application else None
    t = event.event_type

    if t == EventType.APPLICATION_SUBMITTED:
        return [(applicant_id, "Application Received",
                 f"Your application for {vacancy} has been received and is under review.")]
    if t == EventType.STATUS_CHANGED:
        return [(applicant_id, *_status_message(p.get("to", ""), vacancy))]
    if t == EventType.TEST_INVITED:
        return [(applicant_id, "Test Invitation",
                 f"You have been invited to take the test \"{p.get('test_title')}\" for {vacancy}.")]
    if t not in INTERVIEW_EVENTS or interview is None:
        return []

    title = interview.title
    when = _when(interview.scheduled_at)
    if t == EventType.INTERVIEWERS_ASSIGNED:
        msg = f"You have been assigned to conduct an interview \"{title}\" for {vacancy} on {when}."
        return [(i, "Interview Assignment", msg) for i in p.get("interviewer_ids", [])]
    if t == EventType.INTERVIEW_SCHEDULED:
        out = [(applicant_id, "Interview Scheduled",
                f"Your interview \"{title}\" for {vacancy} has been scheduled for {when}.")]
        msg = f"You have been assigned to conduct an interview \"{title}\" for {vacancy} on {when}."
        return out + [(i, "Interview Assignment", msg) for i in p.get("interviewer_ids", [])]
    if t == EventType.INTERVIEW_RESCHEDULED:
        msg = f"Interview \"{title}\" for {vacancy} has been rescheduled to {when}. Reason: {p.get('reason')}"
        title_ = "Interview Rescheduled"
    else:
        msg = f"Interview \"{title}\" for {vacancy} scheduled for {when} has been cancelled. Reason: {p.get('reason')}"
        title_ = "Interview Cancelled"
    return [(u, title_, msg) for u in [applicant_id] + list(p.get("interviewer_ids", []))]


def _invite(event, interview):
    cfg = current_app.config
    start = interview.scheduled_at
    end = start + timedelta(minutes=interview.duration or 60)
    sequence = {EventType.INTERVIEW_RESCHEDULED: 1, EventType.INTERVIEW_CANCELLED: 2}.get(event.event_type, 0)
    return build_ics(cfg["UID_DOMAIN"], interview.title, start, end,
                     location=interview.location or "", description=interview.notes or "",
                     uid=interview_uid(interview.id, cfg["UID_DOMAIN"]), sequence=sequence,
                     cancelled=event.event_type == EventType.INTERVIEW_CANCELLED)


def notify_event(event_id: int):
    event = db.session.get(DomainEvent, event_id)
    if event is None:
        current_app.logger.warning("notify_event: event %s not found", event_id)
        return None
    if event.notified_at is not None:
        return 0

    try:
        application = event.application
        interview = db.session.get(Interview, event.entity_id) if event.entity == "Interview" else None
        ics = None
        if interview is not None and event.event_type != EventType.INTERVIEWERS_ASSIGNED:
            ics = _invite(event, interview)

        created = 0
        for user_id, title, message in build_messages(event, application, interview):
            if user_id is None:
                continue
            if Notification.query.filter_by(event_id=event.id, user_id=user_id).first():
                continue
            user = db.session.get(User, user_id)
            n = Notification(user_id=user_id, application_id=event.application_id, event_id=event.id,
                             type=event.event_type, title=title, message=message,
                             sent_to=user.email if user else None)
            if user and mail_enabled():
                try:
                    status, headers = send_notification(user.email, title, f"<p>{message}</p>", ics=ics)
                    n.provider_message_id = str(headers.get("X-Message-Id", "")) if headers else None
                    n.sent_at = utc_now()
                except Exception:
                    # in-app notification still lands; the email is not retried
                    current_app.logger.exception("Email for event %s to user %s failed", event.id, user_id)
            db.session.add(n)
            created += 1

        event.notified_at = utc_now()
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("notify_event failed for event %s", event_id)
        raise

    current_app.logger.info("Event %s (%s): %d notification(s)", event_id, event.event_type, created)
    return created
