from flask_login import login_required

from . import bp
from .. import validated
from ...roles import Roles
from ...services import evaluations as svc
from ...utils.decorators import actor, roles_required
from .forms import EvaluationForm


@bp.post("/<int:application_id>/evaluations")
@login_required
def submit(application_id):
    form = validated(EvaluationForm)
    payload = {
        "rating": form.rating.data,
        "recommendation": (form.recommendation.data or "").strip().upper() or None,
        "comments": form.comments.data or None,
        "strengths": form.strengths.data or None,
        "weaknesses": form.weaknesses.data or None,
    }
    ev = svc.submit_evaluation(application_id, actor(), payload)
    return {"evaluation": ev.to_dict()}, 201


@bp.get("/<int:application_id>/evaluations")
@login_required
def list_evaluations(application_id):
    return {"evaluations": [e.to_dict() for e in svc.list_evaluations(application_id, actor())]}


@bp.get("/<int:application_id>/evaluations/summary")
@roles_required(Roles.RECRUITER, Roles.MANAGER, Roles.ADMIN)
def summary(application_id):
    return svc.evaluation_summary(application_id)
