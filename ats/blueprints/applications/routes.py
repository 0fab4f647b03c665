from flask import request
from flask_login import login_required

from . import bp
from .. import validated
from ...services import applications as svc
from ...utils.decorators import actor
from .forms import ApplyForm, TransitionForm, WithdrawForm


def _view(application, user):
    data = application.to_dict()
    data["allowed_transitions"] = svc.allowed_transitions(application, user)
    return data


@bp.post("")
@login_required
def apply():
    form = validated(ApplyForm)
    application = svc.submit_application(form.vacancy_id.data, actor(), form.cv_id.data,
                                         motivation_letter_id=form.motivation_letter_id.data,
                                         notes=form.notes.data or None)
    return {"application": application.to_dict()}, 201


@bp.get("")
@login_required
def list_applications():
    page = svc.list_applications(
        actor(),
        vacancy_id=request.args.get("vacancy_id", type=int),
        status=request.args.get("status"),
        page=request.args.get("page", default=1, type=int),
        per_page=min(request.args.get("per_page", default=20, type=int), 100),
    )
    return {
        "items": [a.to_dict() for a in page.items],
        "page": page.page,
        "pages": page.pages,
        "total": page.total,
    }


@bp.get("/<int:application_id>")
@login_required
def get_application(application_id):
    user = actor()
    return {"application": _view(svc.get_application(application_id, user), user)}


@bp.post("/<int:application_id>/transition")
@login_required
def transition(application_id):
    form = validated(TransitionForm)
    user = actor()
    application = svc.request_transition(application_id, form.status.data.strip().upper(), user,
                                         notes=form.notes.data or None,
                                         expected_version=form.expected_version.data)
    return {"application": _view(application, user)}


@bp.post("/<int:application_id>/withdraw")
@login_required
def withdraw(application_id):
    form = validated(WithdrawForm)
    application = svc.withdraw_application(application_id, actor(), reason=form.reason.data or None)
    return {"application": application.to_dict()}


@bp.get("/<int:application_id>/timeline")
@login_required
def timeline(application_id):
    return {"events": [e.to_dict() for e in svc.application_timeline(application_id, actor())]}
