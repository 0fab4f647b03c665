from flask import request
from flask_login import login_required

from . import bp
from .. import json_body, validated
from ...errors import ValidationError
from ...services import interviews as svc
from ...services.applications import get_application
from ...utils.decorators import actor
from .forms import CancelForm, RescheduleForm, ScheduleForm


def _ids(body, key="interviewer_ids"):
    ids = body.get(key)
    if not isinstance(ids, list) or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        raise ValidationError(f"{key} must be a list of user ids")
    return ids


@bp.post("")
@login_required
def schedule():
    form = validated(ScheduleForm)
    interview = svc.schedule_interview(
        form.application_id.data, form.round.data, form.scheduled_at.data, _ids(json_body()), actor(),
        duration=form.duration.data or 60,
        title=form.title.data or None,
        location=form.location.data or None,
        notes=form.notes.data or None,
    )
    return {"interview": interview.to_dict()}, 201


@bp.post("/<int:interview_id>/reschedule")
@login_required
def reschedule(interview_id):
    form = validated(RescheduleForm)
    interview = svc.reschedule_interview(interview_id, form.scheduled_at.data, form.reason.data, actor())
    return {"interview": interview.to_dict()}


@bp.post("/<int:interview_id>/cancel")
@login_required
def cancel(interview_id):
    form = validated(CancelForm)
    interview = svc.cancel_interview(interview_id, form.reason.data or None, actor())
    return {"interview": interview.to_dict()}


@bp.post("/<int:interview_id>/interviewers")
@login_required
def assign(interview_id):
    interview = svc.assign_interviewers(interview_id, _ids(json_body()), actor())
    return {"interview": interview.to_dict()}


@bp.post("/<int:interview_id>/complete")
@login_required
def complete(interview_id):
    verdicts = json_body().get("verdicts")
    if not isinstance(verdicts, list) or not all(isinstance(v, dict) for v in verdicts):
        raise ValidationError("verdicts must be a list of objects")
    interview = svc.complete_interview(interview_id, verdicts, actor())
    return {"interview": interview.to_dict()}


@bp.get("/mine")
@login_required
def mine():
    include_closed = request.args.get("include_closed", "0").lower() in ("1", "true", "yes")
    return {"interviews": [i.to_dict() for i in svc.interviews_for_interviewer(actor().id, include_closed)]}


@bp.get("/application/<int:application_id>")
@login_required
def for_application(application_id):
    user = actor()
    application = get_application(application_id, user)
    return {"interviews": [i.to_dict() for i in svc.interviews_for_application(application.id)]}
