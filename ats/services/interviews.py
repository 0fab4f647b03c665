"""Interview rounds for an application.

Rounds are numbered from 1 per application; a cancelled round frees its
number so it can be scheduled again. A round can only be scheduled once the
previous one is COMPLETED, and completing a round is what lets the pipeline
move past ``INTERVIEW_R{n}``.
"""

from datetime import datetime

from flask import current_app

from ..errors import (DuplicateAction, GateNotSatisfied, IllegalTransition, NotAssigned,
                      Unauthorized, ValidationError)
from ..events import EventType, emit
from ..extensions import db
from ..models.application import Application
from ..models.evaluation import Recommendation
from ..models.interview import Interview, InterviewStatus, InterviewerAssignment
from ..models.user import User
from ..roles import Roles, has_role
from ..utils.time import isoformat, to_utc_naive, utc_now
from .evaluations import check_rating, check_recommendation
from .unit_of_work import load, transaction


def _require_staff(actor, action):
    if not has_role(actor, Roles.STAFF):
        raise Unauthorized(f"Only recruiters and admins can {action}")


def _check_when(value, field="scheduled_at"):
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a datetime")
    return to_utc_naive(value)


def _panel_members(interviewer_ids):
    ids = list(interviewer_ids or [])
    if not ids:
        raise ValidationError("At least one interviewer is required")
    if len(set(ids)) != len(ids):
        raise ValidationError("Interviewer ids must be distinct")
    users = User.query.filter(User.id.in_(ids), User.role.in_(sorted(Roles.PANEL)), User.active.is_(True)).all()
    if len(users) != len(ids):
        missing = sorted(set(ids) - {u.id for u in users})
        raise ValidationError("One or more interviewers not found or not authorized",
                              details={"interviewer_ids": missing})
    return ids


def _open_interviews(application_id):
    return (
        Interview.query
        .filter(Interview.application_id == application_id, Interview.status != InterviewStatus.CANCELLED)
        .order_by(Interview.round.asc())
        .all()
    )


def round_completed(application_id, round_no) -> bool:
    if not round_no:
        return False
    return bool(db.session.query(
        Interview.query.filter_by(application_id=application_id, round=round_no,
                                  status=InterviewStatus.COMPLETED).exists()
    ).scalar())


def schedule_interview(application_id, round_no, scheduled_at, interviewer_ids, actor,
                       duration=60, title=None, location=None, notes=None):
    with transaction("Interview round is already scheduled for this application") as events:
        _require_staff(actor, "schedule interviews")
        application = load(Application, application_id, lock=True)
        if application.is_terminal:
            raise ValidationError(f"Application is {application.status}; no further interviews can be scheduled")

        if isinstance(round_no, bool) or not isinstance(round_no, int) or round_no < 1:
            raise ValidationError("round must be a positive integer")
        if not isinstance(duration, int) or duration < 1:
            raise ValidationError("duration must be a positive number of minutes")
        scheduled_at = _check_when(scheduled_at)

        existing = _open_interviews(application.id)
        taken = {i.round for i in existing}
        next_round = max(taken) + 1 if taken else 1
        if round_no in taken:
            raise DuplicateAction(f"Interview round {round_no} is already scheduled for this application")
        if round_no != next_round:
            raise ValidationError(f"The next interview round for this application is {next_round}",
                                  details={"next_round": next_round})
        if round_no > 1 and not round_completed(application.id, round_no - 1):
            raise GateNotSatisfied(f"Interview round {round_no - 1} must be COMPLETED before scheduling round {round_no}")

        ids = _panel_members(interviewer_ids)
        interview = Interview(
            application_id=application.id,
            round=round_no,
            title=title or f"Interview round {round_no}",
            scheduled_at=scheduled_at,
            duration=duration,
            location=location,
            notes=notes,
            status=InterviewStatus.SCHEDULED,
            scheduled_by_id=actor.id,
        )
        interview.assignments = [InterviewerAssignment(interviewer_id=i) for i in ids]
        db.session.add(interview)
        db.session.flush()
        events.append(emit(EventType.INTERVIEW_SCHEDULED, "Interview", interview.id, actor=actor,
                           application_id=application.id, round=round_no,
                           scheduled_at=isoformat(scheduled_at), duration=duration,
                           location=location, title=interview.title, interviewer_ids=ids))

    current_app.logger.info("Interview %s (round %s) scheduled for application %s", interview.id, round_no, application_id)
    return interview


def reschedule_interview(interview_id, new_scheduled_at, reason, actor):
    with transaction() as events:
        _require_staff(actor, "reschedule interviews")
        interview = load(Interview, interview_id, lock=True)
        if interview.status not in InterviewStatus.OPEN:
            raise IllegalTransition(f"Cannot reschedule a {interview.status.lower()} interview")
        if not reason:
            raise ValidationError("A reason is required to reschedule")
        new_scheduled_at = _check_when(new_scheduled_at)

        old = interview.scheduled_at
        interview.scheduled_at = new_scheduled_at
        interview.reschedule_reason = reason
        interview.status = InterviewStatus.RESCHEDULED
        db.session.flush()
        events.append(emit(EventType.INTERVIEW_RESCHEDULED, "Interview", interview.id, actor=actor,
                           application_id=interview.application_id, round=interview.round,
                           old_scheduled_at=isoformat(old), scheduled_at=isoformat(new_scheduled_at),
                           duration=interview.duration, location=interview.location,
                           title=interview.title, reason=reason,
                           interviewer_ids=interview.interviewer_ids))

    current_app.logger.info("Interview %s rescheduled", interview_id)
    return interview


def cancel_interview(interview_id, reason, actor):
    with transaction() as events:
        _require_staff(actor, "cancel interviews")
        interview = load(Interview, interview_id, lock=True)
        if interview.status not in InterviewStatus.OPEN:
            raise IllegalTransition(f"Cannot cancel a {interview.status.lower()} interview")

        interview.status = InterviewStatus.CANCELLED
        interview.cancel_reason = reason
        db.session.flush()
        events.append(emit(EventType.INTERVIEW_CANCELLED, "Interview", interview.id, actor=actor,
                           application_id=interview.application_id, round=interview.round,
                           reason=reason, interviewer_ids=interview.interviewer_ids))

    current_app.logger.info("Interview %s cancelled", interview_id)
    return interview


def assign_interviewers(interview_id, interviewer_ids, actor):
    with transaction() as events:
        _require_staff(actor, "assign interviewers")
        interview = load(Interview, interview_id, lock=True)
        if interview.status not in InterviewStatus.OPEN:
            raise IllegalTransition(f"Cannot assign interviewers to a {interview.status.lower()} interview")

        ids = _panel_members(interviewer_ids)
        added = [i for i in ids if interview.assignment_for(i) is None]
        for i in added:
            interview.assignments.append(InterviewerAssignment(interviewer_id=i))
        # touch the interview so concurrent assignment edits serialize
        interview.updated_at = utc_now()
        db.session.flush()
        if added:
            events.append(emit(EventType.INTERVIEWERS_ASSIGNED, "Interview", interview.id, actor=actor,
                               application_id=interview.application_id, round=interview.round,
                               interviewer_ids=added))

    return interview


def complete_interview(interview_id, verdicts, actor):
    """Close a round with per-interviewer verdicts.

    ``verdicts`` is a list of dicts with ``interviewer_id`` and ``attended``,
    optionally ``rating``, ``recommendation`` and ``feedback``. At least one
    verdict must record attendance.
    """
    with transaction() as events:
        interview = load(Interview, interview_id, lock=True)
        if not has_role(actor, Roles.STAFF | Roles.PANEL):
            raise Unauthorized("Only staff or panel members can complete interviews")
        if actor.role not in Roles.STAFF and interview.assignment_for(actor.id) is None:
            raise NotAssigned("You are not assigned to this interview")
        if interview.status not in InterviewStatus.OPEN:
            raise IllegalTransition(f"Cannot complete a {interview.status.lower()} interview")

        verdicts = list(verdicts or [])
        if not any(v.get("attended") is True for v in verdicts):
            raise ValidationError("At least one interviewer must be recorded as attended")

        now = utc_now()
        seen = set()
        for v in verdicts:
            interviewer_id = v.get("interviewer_id")
            assignment = interview.assignment_for(interviewer_id)
            if assignment is None:
                raise NotAssigned(f"Interviewer {interviewer_id} is not assigned to this interview")
            if interviewer_id in seen:
                raise ValidationError(f"Duplicate verdict for interviewer {interviewer_id}")
            if actor.role not in Roles.STAFF and interviewer_id != actor.id:
                raise Unauthorized("Panel members can only record their own verdict")
            seen.add(interviewer_id)
            assignment.attended = bool(v.get("attended"))
            if v.get("rating") is not None:
                assignment.rating = check_rating(v.get("rating"))
            assignment.recommendation = check_recommendation(v.get("recommendation"))
            assignment.feedback = v.get("feedback")
            assignment.completed_at = now

        interview.status = InterviewStatus.COMPLETED
        interview.completed_at = now
        db.session.flush()
        attended = [a.interviewer_id for a in interview.assignments if a.attended]
        positive = [a.interviewer_id for a in interview.assignments if a.recommendation in Recommendation.POSITIVE]
        events.append(emit(EventType.INTERVIEW_COMPLETED, "Interview", interview.id, actor=actor,
                           application_id=interview.application_id, round=interview.round,
                           attended=attended, positive=positive))

    current_app.logger.info("Interview %s completed (round %s)", interview_id, interview.round)
    return interview


def interviews_for_application(application_id):
    load(Application, application_id)
    return Interview.query.filter_by(application_id=application_id).order_by(Interview.round.asc(), Interview.id.asc()).all()


def interviews_for_interviewer(interviewer_id, include_closed=False):
    q = (
        Interview.query
        .join(InterviewerAssignment, InterviewerAssignment.interview_id == Interview.id)
        .filter(InterviewerAssignment.interviewer_id == interviewer_id)
    )
    if not include_closed:
        q = q.filter(Interview.status.in_(sorted(InterviewStatus.OPEN)))
    return q.order_by(Interview.scheduled_at.asc()).all()
