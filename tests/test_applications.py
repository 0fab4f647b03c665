import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from ats import pipeline
from ats.errors import (ConcurrentModification, DuplicateAction, IllegalTransition, NotFound,
                        Unauthorized, ValidationError)
from ats.events import EventType
from ats.extensions import db
from ats.models.application import Application, ApplicationStatus as S
from ats.models.domain_event import DomainEvent
from ats.models.vacancy import VacancyStatus
from ats.services import applications
from ats.services.unit_of_work import transaction


def _status_events(application_id):
    return DomainEvent.query.filter_by(application_id=application_id,
                                       event_type=EventType.STATUS_CHANGED).order_by(DomainEvent.id).all()


def test_submit_application(application, applicant, vacancy):
    assert application.status == S.APPLIED
    assert application.applicant_id == applicant.id
    assert application.vacancy_id == vacancy.id
    assert application.version == 1
    event = DomainEvent.query.filter_by(application_id=application.id).one()
    assert event.event_type == EventType.APPLICATION_SUBMITTED
    assert event.actor_id == applicant.id


def test_only_one_active_application_per_vacancy(application, applicant, vacancy):
    with pytest.raises(DuplicateAction):
        applications.submit_application(vacancy.id, applicant, cv_id=2)
    assert Application.query.filter_by(applicant_id=applicant.id).count() == 1


def test_reapply_after_withdrawal(application, applicant, vacancy):
    applications.withdraw_application(application.id, applicant, reason="Accepted another offer")
    again = applications.submit_application(vacancy.id, applicant, cv_id=2)
    assert again.id != application.id
    assert again.status == S.APPLIED


def test_reapply_after_rejection(application, applicant, vacancy, advance):
    advance(application.id, S.REJECTED)
    assert applications.submit_application(vacancy.id, applicant, cv_id=3).status == S.APPLIED


def test_partial_index_backs_the_duplicate_check(application, applicant, vacancy, monkeypatch):
    # the existence check misses; the index still rejects the second row
    monkeypatch.setattr(applications, "_active_application", lambda *a: None)
    with pytest.raises(DuplicateAction):
        applications.submit_application(vacancy.id, applicant, cv_id=2)


def test_submit_validation(applicant, recruiter, make_vacancy, vacancy):
    with pytest.raises(Unauthorized):
        applications.submit_application(vacancy.id, recruiter, cv_id=1)
    with pytest.raises(ValidationError):
        applications.submit_application(vacancy.id, applicant, cv_id=None)
    with pytest.raises(NotFound):
        applications.submit_application(999, applicant, cv_id=1)
    closed = make_vacancy(title="Closed role", status=VacancyStatus.CLOSED)
    with pytest.raises(ValidationError):
        applications.submit_application(closed.id, applicant, cv_id=1)
    draft = make_vacancy(title="Draft role", is_published=False)
    with pytest.raises(ValidationError):
        applications.submit_application(draft.id, applicant, cv_id=1)


def test_transition_writes_one_status_event(application, recruiter):
    moved = applications.request_transition(application.id, S.SCREENING, recruiter, notes="CV looks good")
    assert moved.status == S.SCREENING
    assert moved.notes == "CV looks good"
    assert moved.version == 2

    events = _status_events(application.id)
    assert len(events) == 1
    payload = events[0].payload
    assert payload["from"] == S.APPLIED
    assert payload["to"] == S.SCREENING
    assert payload["timestamp"]
    assert events[0].actor_id == recruiter.id
    assert events[0].actor_role == recruiter.role


def test_withdraw_records_reason(application, applicant):
    withdrawn = applications.withdraw_application(application.id, applicant, reason="Relocating")
    assert withdrawn.status == S.WITHDRAWN
    assert withdrawn.withdrawn_reason == "Relocating"
    with pytest.raises(IllegalTransition):
        applications.withdraw_application(application.id, applicant)


def test_stale_expected_version(application, recruiter):
    read_version = application.version
    applications.request_transition(application.id, S.SCREENING, recruiter)

    with pytest.raises(ConcurrentModification):
        applications.request_transition(application.id, S.REJECTED, recruiter, expected_version=read_version)
    db.session.expire_all()
    assert db.session.get(Application, application.id).status == S.SCREENING
    assert len(_status_events(application.id)) == 1


def test_concurrent_writer_wins(application, recruiter):
    db.session.get(Application, application.id)
    # another process rejects the application behind this session's back
    with db.engine.begin() as conn:
        conn.execute(text("UPDATE applications SET status = 'REJECTED', version = version + 1 WHERE id = :id"),
                     {"id": application.id})

    with pytest.raises((ConcurrentModification, IllegalTransition)):
        applications.request_transition(application.id, S.SCREENING, recruiter)

    with db.engine.connect() as conn:
        stored = conn.execute(text("SELECT status, version FROM applications WHERE id = :id"),
                              {"id": application.id}).one()
    assert stored.status == S.REJECTED
    assert stored.version == 2
    assert _status_events(application.id) == []


def test_interleaved_transitions_last_writer_loses(application, recruiter, monkeypatch):
    check = pipeline.check_transition

    def reject_meanwhile(app_row, requested, actor):
        check(app_row, requested, actor)
        # both requests saw APPLIED; the other one commits first
        with db.engine.begin() as conn:
            conn.execute(text("UPDATE applications SET status = 'REJECTED', version = version + 1 WHERE id = :id"),
                         {"id": app_row.id})

    monkeypatch.setattr(pipeline, "check_transition", reject_meanwhile)
    with pytest.raises(ConcurrentModification):
        applications.request_transition(application.id, S.SCREENING, recruiter)

    db.session.expire_all()
    stored = db.session.get(Application, application.id)
    assert stored.status == S.REJECTED
    assert stored.version == 2
    assert _status_events(application.id) == []


def test_stale_flush_becomes_concurrent_modification(app):
    with pytest.raises(ConcurrentModification):
        with transaction():
            raise StaleDataError("UPDATE statement on table 'applications' expected to update 1 row(s); 0 were matched.")


def test_get_application_visibility(application, applicant, other_applicant, recruiter):
    assert applications.get_application(application.id, applicant).id == application.id
    assert applications.get_application(application.id, recruiter).id == application.id
    with pytest.raises(Unauthorized):
        applications.get_application(application.id, other_applicant)


def test_list_applications(application, applicant, other_applicant, recruiter, interviewer, make_vacancy):
    other_vacancy = make_vacancy(title="Data Engineer")
    applications.submit_application(other_vacancy.id, other_applicant, cv_id=5)

    mine = applications.list_applications(applicant)
    assert [a.id for a in mine.items] == [application.id]

    everything = applications.list_applications(recruiter)
    assert everything.total == 2
    assert applications.list_applications(recruiter, vacancy_id=other_vacancy.id).total == 1
    assert applications.list_applications(recruiter, status=S.SCREENING).total == 0

    with pytest.raises(ValidationError):
        applications.list_applications(recruiter, status="NOPE")
    with pytest.raises(Unauthorized):
        applications.list_applications(interviewer)


def test_allowed_transitions_per_actor(application, applicant, other_applicant, recruiter):
    assert sorted(applications.allowed_transitions(application, recruiter)) == [S.REJECTED, S.SCREENING]
    assert applications.allowed_transitions(application, applicant) == [S.WITHDRAWN]
    assert applications.allowed_transitions(application, other_applicant) == []


def test_timeline_hides_internal_events_from_applicants(application, applicant, recruiter):
    from ats.services import evaluations

    applications.request_transition(application.id, S.SCREENING, recruiter)
    evaluations.submit_evaluation(application.id, recruiter, {"rating": 6, "recommendation": "HOLD"})

    staff_view = [e.event_type for e in applications.application_timeline(application.id, recruiter)]
    assert staff_view == [EventType.APPLICATION_SUBMITTED, EventType.STATUS_CHANGED, EventType.EVALUATION_SUBMITTED]
    applicant_view = [e.event_type for e in applications.application_timeline(application.id, applicant)]
    assert applicant_view == [EventType.APPLICATION_SUBMITTED, EventType.STATUS_CHANGED]
