"""Evaluation ledger: append-only scored reviews of an application."""

from flask import current_app

from ..errors import NotAssigned, Unauthorized, ValidationError
from ..events import EventType, emit
from ..extensions import db
from ..models.application import Application
from ..models.evaluation import Evaluation, Recommendation
from ..models.interview import Interview, InterviewStatus, InterviewerAssignment
from ..roles import Roles, has_role
from ..utils.time import utc_now
from .unit_of_work import load, transaction


def evaluation_signal(evaluations) -> bool:
    """True when the latest decisive evaluation is a positive one.

    Needs at least one PROCEED/STRONG_HIRE, and no REJECT more recent than
    the most recent of those. HOLD and empty recommendations are ignored.
    """
    last_positive = None
    last_reject = None
    for ev in sorted(evaluations, key=_ledger_order):
        if ev.recommendation in Recommendation.POSITIVE:
            last_positive = ev
        elif ev.recommendation == Recommendation.REJECT:
            last_reject = ev
    if last_positive is None:
        return False
    return last_reject is None or _ledger_order(last_reject) < _ledger_order(last_positive)


def _ledger_order(ev):
    return (ev.created_at, ev.id or 0)


def check_rating(value, field="rating"):
    lo = current_app.config.get("RATING_MIN", 1)
    hi = current_app.config.get("RATING_MAX", 10)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer between {lo} and {hi}")
    if not lo <= value <= hi:
        raise ValidationError(f"{field} must be between {lo} and {hi}", details={field: value})
    return value


def check_recommendation(value):
    if value in (None, ""):
        return None
    if value not in Recommendation.ALL:
        raise ValidationError(
            f"recommendation must be one of {', '.join(Recommendation.ALL)}",
            details={"recommendation": value},
        )
    return value


def has_active_assignment(application_id, interviewer_id) -> bool:
    q = (
        db.session.query(InterviewerAssignment.id)
        .join(Interview, Interview.id == InterviewerAssignment.interview_id)
        .filter(Interview.application_id == application_id)
        .filter(Interview.status != InterviewStatus.CANCELLED)
        .filter(InterviewerAssignment.interviewer_id == interviewer_id)
    )
    return bool(db.session.query(q.exists()).scalar())


def submit_evaluation(application_id, actor, payload):
    payload = payload or {}
    with transaction() as events:
        if not has_role(actor, Roles.EVALUATORS):
            raise Unauthorized("Only recruiters, interviewers, managers and admins can evaluate applications")

        rating = check_rating(payload.get("rating"))
        recommendation = check_recommendation(payload.get("recommendation"))

        # lock the application so evaluations and transitions serialize
        application = load(Application, application_id, lock=True)

        if actor.role == Roles.INTERVIEWER and not has_active_assignment(application.id, actor.id):
            raise NotAssigned("Interviewers can only evaluate applications they are assigned to interview")

        ev = Evaluation(
            application_id=application.id,
            evaluator_id=actor.id,
            evaluator_role=actor.role,
            rating=rating,
            comments=payload.get("comments"),
            strengths=payload.get("strengths"),
            weaknesses=payload.get("weaknesses"),
            recommendation=recommendation,
        )
        db.session.add(ev)
        # bumps the version: a transition that read the old ledger goes stale
        application.updated_at = utc_now()
        db.session.flush()

        events.append(emit(
            EventType.EVALUATION_SUBMITTED, "Evaluation", ev.id, actor=actor,
            application_id=application.id, rating=rating, recommendation=recommendation,
        ))

    current_app.logger.info("Evaluation %s recorded for application %s by user %s", ev.id, application_id, actor.id)
    return ev


def list_evaluations(application_id, actor):
    if not has_role(actor, Roles.EVALUATORS):
        raise Unauthorized("Applicants cannot read evaluations")
    application = load(Application, application_id)
    return sorted(application.evaluations, key=_ledger_order)


def evaluation_summary(application_id):
    application = load(Application, application_id)
    evaluations = application.evaluations
    counts = {r: 0 for r in Recommendation.ALL}
    for ev in evaluations:
        if ev.recommendation in counts:
            counts[ev.recommendation] += 1
    ratings = [ev.rating for ev in evaluations]
    return {
        "application_id": application.id,
        "count": len(evaluations),
        "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
        "recommendations": counts,
        "offer_signal": evaluation_signal(evaluations),
    }
