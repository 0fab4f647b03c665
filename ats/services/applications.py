"""Applications and their pipeline status.

:func:`request_transition` is the only code path that writes
``Application.status`` after submission. It validates the request against
:mod:`ats.pipeline`, then commits the new status together with exactly one
``StatusChanged`` outbox event.
"""

from flask import current_app

from .. import pipeline
from ..errors import ConcurrentModification, DuplicateAction, Unauthorized, ValidationError
from ..events import EventType, application_events, emit
from ..extensions import db
from ..models.application import Application, ApplicationStatus
from ..models.vacancy import Vacancy
from ..roles import Roles, has_role
from ..utils.time import isoformat, utc_now
from .unit_of_work import load, transaction

DUPLICATE_APPLICATION = "You already have an active application for this vacancy"


def _active_application(applicant_id, vacancy_id):
    return (
        Application.query
        .filter_by(applicant_id=applicant_id, vacancy_id=vacancy_id)
        .filter(Application.status.notin_(sorted(ApplicationStatus.CLOSED)))
        .first()
    )


def submit_application(vacancy_id, actor, cv_id, motivation_letter_id=None, notes=None):
    with transaction(DUPLICATE_APPLICATION) as events:
        if actor is None or actor.role != Roles.APPLICANT:
            raise Unauthorized("Only applicants can apply to vacancies")
        if not cv_id:
            raise ValidationError("A CV is required to apply")

        vacancy = load(Vacancy, vacancy_id)
        if not vacancy.accepts_applications:
            raise ValidationError("This vacancy is not accepting applications")
        if _active_application(actor.id, vacancy.id):
            raise DuplicateAction(DUPLICATE_APPLICATION)

        application = Application(
            vacancy_id=vacancy.id,
            applicant_id=actor.id,
            cv_id=cv_id,
            motivation_letter_id=motivation_letter_id,
            notes=notes,
            status=ApplicationStatus.APPLIED,
        )
        db.session.add(application)
        db.session.flush()
        events.append(emit(EventType.APPLICATION_SUBMITTED, "Application", application.id, actor=actor,
                           application_id=application.id, vacancy_id=vacancy.id,
                           vacancy_title=vacancy.title, status=ApplicationStatus.APPLIED))

    current_app.logger.info("Application %s submitted by user %s for vacancy %s", application.id, actor.id, vacancy_id)
    return application


def request_transition(application_id, requested_status, actor, notes=None, expected_version=None,
                       withdrawn_reason=None):
    """Move an application to ``requested_status``.

    ``expected_version`` is the version the caller last read; when given and
    the stored row has moved on, the request fails with
    ``ConcurrentModification`` instead of being judged against a state the
    caller never saw.
    """
    with transaction() as events:
        application = load(Application, application_id, lock=True)
        if expected_version is not None and application.version != expected_version:
            raise ConcurrentModification(
                "Application changed since it was read",
                details={"expected_version": expected_version, "current_version": application.version},
            )

        previous = application.status
        pipeline.check_transition(application, requested_status, actor)

        application.status = requested_status
        if notes is not None:
            application.notes = notes
        if requested_status == ApplicationStatus.WITHDRAWN:
            application.withdrawn_reason = withdrawn_reason
        application.updated_at = utc_now()
        db.session.flush()

        events.append(emit(EventType.STATUS_CHANGED, "Application", application.id, actor=actor,
                           application_id=application.id, vacancy_id=application.vacancy_id,
                           applicant_id=application.applicant_id,
                           **{"from": previous, "to": requested_status, "notes": notes,
                              "timestamp": isoformat(application.updated_at)}))

    current_app.logger.info("Application %s moved %s -> %s by user %s (%s)",
                            application_id, previous, requested_status, actor.id, actor.role)
    return application


def withdraw_application(application_id, actor, reason=None):
    note = f"Withdrawn by applicant. Reason: {reason}" if reason else "Withdrawn by applicant"
    return request_transition(application_id, ApplicationStatus.WITHDRAWN, actor,
                              notes=note, withdrawn_reason=reason)


def get_application(application_id, actor):
    application = load(Application, application_id)
    if actor is None:
        raise Unauthorized("Authentication required")
    if actor.role == Roles.APPLICANT and application.applicant_id != actor.id:
        raise Unauthorized("You can only view your own applications")
    return application


def list_applications(actor, vacancy_id=None, status=None, page=1, per_page=20):
    query = Application.query
    if actor.role == Roles.APPLICANT:
        query = query.filter_by(applicant_id=actor.id)
    elif not has_role(actor, Roles.STAFF | {Roles.MANAGER}):
        raise Unauthorized("Interviewers see applications through their interviews")
    if vacancy_id is not None:
        query = query.filter_by(vacancy_id=vacancy_id)
    if status:
        if not ApplicationStatus.is_valid(status):
            raise ValidationError(f"Unknown application status {status!r}")
        query = query.filter_by(status=status)
    return (
        query.order_by(Application.created_at.desc(), Application.id.desc())
        .paginate(page=page, per_page=per_page, error_out=False)
    )


def allowed_transitions(application, actor):
    targets = pipeline.allowed_targets(application.status, role=actor.role)
    if actor.role == Roles.APPLICANT and application.applicant_id != actor.id:
        return []
    return targets


def application_timeline(application_id, actor):
    application = get_application(application_id, actor)
    events = application_events(application.id)
    if actor.role == Roles.APPLICANT:
        # applicants see their own pipeline, not the internal ledger
        visible = {EventType.APPLICATION_SUBMITTED, EventType.STATUS_CHANGED, EventType.TEST_INVITED,
                   EventType.TEST_COMPLETED, EventType.INTERVIEW_SCHEDULED,
                   EventType.INTERVIEW_RESCHEDULED, EventType.INTERVIEW_CANCELLED}
        events = [e for e in events if e.event_type in visible]
    return events
