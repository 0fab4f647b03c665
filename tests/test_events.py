from datetime import datetime, timedelta

import pytest

from ats.errors import Unauthorized
from ats.events import EventType, relay_pending_events
from ats.extensions import db, rq
from ats.jobs import notify
from ats.jobs.audit import audit_event
from ats.jobs.notify import notify_event
from ats.models.application import Application, ApplicationStatus as S
from ats.models.audit_log import AuditLog
from ats.models.domain_event import DomainEvent
from ats.models.notification import Notification
from ats.services import applications, interviews
from ats.services.ics import build_ics, interview_uid


def _last_event(event_type):
    db.session.expire_all()
    return DomainEvent.query.filter_by(event_type=event_type).order_by(DomainEvent.id.desc()).first()


@pytest.fixture
def sent(app, monkeypatch):
    app.config["SENDGRID_API_KEY"] = "test-key"
    calls = []

    def fake_send(to_email, subject, html, ics=None):
        calls.append({"to": to_email, "subject": subject, "html": html, "ics": ics})
        return 202, {"X-Message-Id": f"msg-{len(calls)}"}

    monkeypatch.setattr(notify, "send_notification", fake_send)
    return calls


def test_transition_is_delivered_to_both_sinks(application, applicant, recruiter):
    applications.request_transition(application.id, S.SCREENING, recruiter)
    event = _last_event(EventType.STATUS_CHANGED)
    assert event.delivered

    audit = AuditLog.query.filter_by(event_id=event.id).one()
    assert audit.action == EventType.STATUS_CHANGED
    assert audit.user_id == recruiter.id
    assert audit.changes["from"] == S.APPLIED
    assert audit.changes["to"] == S.SCREENING

    note = Notification.query.filter_by(event_id=event.id).one()
    assert note.user_id == applicant.id
    assert note.title == "Application Update"
    assert "screening" in note.message


def test_every_submission_is_audited(application, applicant):
    event = _last_event(EventType.APPLICATION_SUBMITTED)
    assert AuditLog.query.filter_by(event_id=event.id).one().user_id == applicant.id
    assert Notification.query.filter_by(event_id=event.id).one().title == "Application Received"


def test_sink_failure_keeps_the_transition(application, recruiter, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("template store down")

    monkeypatch.setattr(notify, "build_messages", broken)
    moved = applications.request_transition(application.id, S.SCREENING, recruiter)
    assert moved.status == S.SCREENING

    event = _last_event(EventType.STATUS_CHANGED)
    assert event.notified_at is None
    assert event.audited_at is not None
    assert db.session.get(Application, application.id).status == S.SCREENING

    monkeypatch.undo()
    assert relay_pending_events() >= 1
    event = _last_event(EventType.STATUS_CHANGED)
    assert event.delivered
    assert Notification.query.filter_by(event_id=event.id).count() == 1
    assert AuditLog.query.filter_by(event_id=event.id).count() == 1


def test_enqueue_failure_is_relayed_later(application, recruiter, monkeypatch):
    def unreachable(*args, **kwargs):
        raise ConnectionError("redis down")

    monkeypatch.setattr(rq, "enqueue", unreachable)
    applications.request_transition(application.id, S.REJECTED, recruiter)
    event = _last_event(EventType.STATUS_CHANGED)
    assert event.notified_at is None and event.audited_at is None

    monkeypatch.undo()
    relay_pending_events()
    assert _last_event(EventType.STATUS_CHANGED).delivered
    assert relay_pending_events() == 0


def test_sinks_are_idempotent(application, recruiter):
    applications.request_transition(application.id, S.SCREENING, recruiter)
    event = _last_event(EventType.STATUS_CHANGED)

    assert notify_event(event.id) == 0
    event.notified_at = None
    event.audited_at = None
    db.session.commit()
    notify_event(event.id)
    audit_event(event.id)

    assert Notification.query.filter_by(event_id=event.id).count() == 1
    assert AuditLog.query.filter_by(event_id=event.id).count() == 1
    assert _last_event(EventType.STATUS_CHANGED).delivered


def test_missing_event_is_ignored(app):
    assert notify_event(12345) is None
    assert audit_event(12345) is None


def test_failed_transition_emits_nothing(application, applicant):
    events, audits, notes = DomainEvent.query.count(), AuditLog.query.count(), Notification.query.count()
    with pytest.raises(Unauthorized):
        applications.request_transition(application.id, S.SCREENING, applicant)
    assert DomainEvent.query.count() == events
    assert AuditLog.query.count() == audits
    assert Notification.query.count() == notes


def test_interview_emails_carry_a_calendar_invite(sent, application, applicant, recruiter, interviewer, when):
    sent.clear()
    interview = interviews.schedule_interview(application.id, 1, when, [interviewer.id], recruiter,
                                              title="Technical interview")
    assert len(sent) == 2
    assert {c["subject"] for c in sent} == {"Interview Scheduled", "Interview Assignment"}
    for call in sent:
        assert "BEGIN:VCALENDAR" in call["ics"]
        assert "METHOD:REQUEST" in call["ics"]
        assert interview_uid(interview.id, "example.local") in call["ics"]

    event = _last_event(EventType.INTERVIEW_SCHEDULED)
    recipients = {n.user_id: n for n in Notification.query.filter_by(event_id=event.id)}
    assert set(recipients) == {applicant.id, interviewer.id}
    assert all(n.sent_at is not None for n in recipients.values())
    assert recipients[applicant.id].provider_message_id.startswith("msg-")

    interviews.cancel_interview(interview.id, "Position on hold", recruiter)
    assert "METHOD:CANCEL" in sent[-1]["ics"]
    assert "Position on hold" in sent[-1]["html"]


def test_mail_failure_still_records_notification(app, application, recruiter, monkeypatch):
    app.config["SENDGRID_API_KEY"] = "test-key"

    def bounce(*args, **kwargs):
        raise RuntimeError("sendgrid 500")

    monkeypatch.setattr(notify, "send_notification", bounce)
    applications.request_transition(application.id, S.SCREENING, recruiter)
    event = _last_event(EventType.STATUS_CHANGED)
    note = Notification.query.filter_by(event_id=event.id).one()
    assert note.sent_at is None
    assert event.delivered


def test_assignment_notifies_only_new_interviewers(sent, application, recruiter, interviewer, manager, when):
    interview = interviews.schedule_interview(application.id, 1, when, [interviewer.id], recruiter)
    interviews.assign_interviewers(interview.id, [interviewer.id, manager.id], recruiter)
    event = _last_event(EventType.INTERVIEWERS_ASSIGNED)
    assert event.payload["interviewer_ids"] == [manager.id]
    assert [n.user_id for n in Notification.query.filter_by(event_id=event.id)] == [manager.id]


def test_build_ics_escapes_text():
    start = datetime(2030, 5, 1, 9, 30)
    ics = build_ics("example.local", "Round 1; backend, python", start, start + timedelta(hours=1),
                    location="HQ", uid="interview-1@example.local")
    assert ics.startswith("BEGIN:VCALENDAR\r\n")
    assert "SUMMARY:Round 1\\; backend\\, python\r\n" in ics
    assert "DTSTART:20300501T093000Z" in ics
    assert "UID:interview-1@example.local" in ics
