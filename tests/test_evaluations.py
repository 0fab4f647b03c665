from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from ats.errors import NotAssigned, Unauthorized, ValidationError
from ats.extensions import db
from ats.models.application import Application
from ats.models.evaluation import Evaluation
from ats.services import interviews
from ats.services.evaluations import (evaluation_signal, evaluation_summary, list_evaluations,
                                      submit_evaluation)

T0 = datetime(2030, 1, 1, 12, 0)


def ev(recommendation, minutes=0, id=None):
    return SimpleNamespace(recommendation=recommendation, created_at=T0 + timedelta(minutes=minutes), id=id)


@pytest.mark.parametrize("ledger,expected", [
    ([], False),
    ([ev("HOLD", 0, 1)], False),
    ([ev(None, 0, 1)], False),
    ([ev("PROCEED", 0, 1)], True),
    ([ev("STRONG_HIRE", 0, 1), ev("HOLD", 5, 2)], True),
    ([ev("PROCEED", 0, 1), ev("REJECT", 5, 2)], False),
    ([ev("REJECT", 0, 1), ev("STRONG_HIRE", 5, 2)], True),
    ([ev("PROCEED", 0, 1), ev("REJECT", 5, 2), ev("PROCEED", 10, 3)], True),
    # same timestamp: the later id decides
    ([ev("PROCEED", 0, 1), ev("REJECT", 0, 2)], False),
    ([ev("REJECT", 0, 1), ev("PROCEED", 0, 2)], True),
])
def test_evaluation_signal(ledger, expected):
    assert evaluation_signal(ledger) is expected
    assert evaluation_signal(list(reversed(ledger))) is expected


def test_submit_evaluation(application, recruiter):
    row = submit_evaluation(application.id, recruiter, {
        "rating": 7, "recommendation": "PROCEED", "comments": "Solid fundamentals",
        "strengths": "SQL", "weaknesses": "Testing",
    })
    assert row.evaluator_id == recruiter.id
    assert row.evaluator_role == recruiter.role
    assert row.rating == 7
    assert row.recommendation == "PROCEED"


def test_applicants_cannot_evaluate(application, applicant):
    with pytest.raises(Unauthorized):
        submit_evaluation(application.id, applicant, {"rating": 10, "recommendation": "STRONG_HIRE"})
    assert Evaluation.query.count() == 0


@pytest.mark.parametrize("payload", [
    {"rating": 0},
    {"rating": 11},
    {"rating": "7"},
    {"rating": 7.5},
    {"rating": True},
    {},
    {"rating": 5, "recommendation": "MAYBE"},
])
def test_invalid_payloads(application, recruiter, payload):
    with pytest.raises(ValidationError):
        submit_evaluation(application.id, recruiter, payload)
    assert Evaluation.query.count() == 0


def test_interviewer_must_be_assigned(application, recruiter, interviewer, make_user, when):
    with pytest.raises(NotAssigned):
        submit_evaluation(application.id, interviewer, {"rating": 6})

    other = make_user("INTERVIEWER")
    interviews.schedule_interview(application.id, 1, when, [other.id], recruiter)
    with pytest.raises(NotAssigned):
        submit_evaluation(application.id, interviewer, {"rating": 6})
    assert submit_evaluation(application.id, other, {"rating": 6}).evaluator_id == other.id


def test_cancelled_interview_does_not_count_as_assignment(application, recruiter, interviewer, when):
    interview = interviews.schedule_interview(application.id, 1, when, [interviewer.id], recruiter)
    interviews.cancel_interview(interview.id, "Candidate unavailable", recruiter)
    with pytest.raises(NotAssigned):
        submit_evaluation(application.id, interviewer, {"rating": 6})


def test_managers_evaluate_without_assignment(application, manager):
    assert submit_evaluation(application.id, manager, {"rating": 4, "recommendation": "HOLD"}).id


def test_submission_bumps_application_version(application, recruiter):
    before = application.version
    submit_evaluation(application.id, recruiter, {"rating": 5})
    db.session.expire_all()
    assert db.session.get(Application, application.id).version == before + 1


def test_ledger_listing_and_summary(application, recruiter, manager, applicant):
    submit_evaluation(application.id, recruiter, {"rating": 8, "recommendation": "PROCEED"})
    submit_evaluation(application.id, manager, {"rating": 4, "recommendation": "REJECT"})
    submit_evaluation(application.id, recruiter, {"rating": 6})

    rows = list_evaluations(application.id, manager)
    assert [r.rating for r in rows] == [8, 4, 6]
    with pytest.raises(Unauthorized):
        list_evaluations(application.id, applicant)

    summary = evaluation_summary(application.id)
    assert summary["count"] == 3
    assert summary["average_rating"] == 6.0
    assert summary["recommendations"]["PROCEED"] == 1
    assert summary["recommendations"]["REJECT"] == 1
    assert summary["offer_signal"] is False


def test_rating_bounds_follow_config(app, application, recruiter):
    app.config["RATING_MAX"] = 5
    with pytest.raises(ValidationError):
        submit_evaluation(application.id, recruiter, {"rating": 6})
    assert submit_evaluation(application.id, recruiter, {"rating": 5}).rating == 5
