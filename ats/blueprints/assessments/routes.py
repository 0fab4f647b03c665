from flask import request
from flask_login import login_required

from . import bp
from .. import json_body, validated
from ...errors import ValidationError
from ...roles import Roles
from ...services import assessments as svc
from ...utils.decorators import actor, roles_required
from .forms import CompleteForm, TestForm


@bp.post("/vacancies/<int:vacancy_id>/tests")
@login_required
def create_test(vacancy_id):
    form = validated(TestForm)
    payload = {
        "type": form.type.data,
        "title": form.title.data,
        "description": form.description.data or None,
        "instructions": form.instructions.data or None,
        "duration": form.duration.data,
        "passing_score": form.passing_score.data,
        "external_url": form.external_url.data or None,
        "questions": json_body().get("questions"),
    }
    test = svc.create_test(vacancy_id, payload, actor())
    return {"test": test.to_dict(include_answers=True)}, 201


@bp.get("/vacancies/<int:vacancy_id>/tests")
@roles_required(Roles.RECRUITER, Roles.ADMIN)
def list_tests(vacancy_id):
    return {"tests": [t.to_dict(include_answers=True) for t in svc.vacancy_tests(vacancy_id)]}


@bp.post("/applications/<int:application_id>/tests/<int:test_id>/invite")
@login_required
def invite(application_id, test_id):
    attempt = svc.invite_to_test(application_id, test_id, actor())
    return {"attempt": attempt.to_dict()}, 201


@bp.get("/applications/<int:application_id>/test")
@login_required
def applicant_view(application_id):
    return svc.get_test_for_applicant(application_id, actor(), test_id=request.args.get("test_id", type=int))


@bp.post("/applications/<int:application_id>/test/submit")
@login_required
def submit(application_id):
    body = json_body()
    answers = body.get("answers")
    if not isinstance(answers, (list, dict)):
        raise ValidationError("answers must be a list of {question_id, answer} objects")
    attempt, result = svc.submit_attempt(application_id, answers, actor(), test_id=body.get("test_id"))
    return {"attempt": attempt.to_dict(), "result": result}


@bp.post("/applications/<int:application_id>/test/complete")
@login_required
def mark_complete(application_id):
    form = validated(CompleteForm)
    attempt = svc.mark_complete(application_id, actor(), notes=form.notes.data or None,
                                test_id=form.test_id.data)
    return {"attempt": attempt.to_dict()}


@bp.get("/applications/<int:application_id>/test/attempt")
@login_required
def attempt(application_id):
    found = svc.get_attempt(application_id, actor(), test_id=request.args.get("test_id", type=int))
    return {"attempt": found.to_dict()}
