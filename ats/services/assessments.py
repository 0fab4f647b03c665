"""Tests and test attempts.

A test is defined once per vacancy and never edited. Each application gets
at most one attempt per test, and an attempt is frozen as soon as it is
completed, either by submitting quiz answers (scored here) or by marking an
external assessment as done.
"""

import re
from uuid import uuid4

from flask import current_app

from ..errors import DuplicateAction, NotFound, Unauthorized, ValidationError
from ..events import EventType, emit
from ..extensions import db
from ..models.application import Application
from ..models.assessment import QuestionType, Test, TestAttempt, TestType
from ..models.vacancy import Vacancy
from ..roles import Roles, has_role
from ..utils.time import utc_now
from .unit_of_work import load, transaction

_WS = re.compile(r"\s+")


class AssessmentSignal:
    PENDING = "PENDING"
    FAILED = "FAILED"
    PASSED = "PASSED"


def normalize_answer(value) -> str:
    return _WS.sub(" ", str(value)).strip().casefold()


def _as_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    s = normalize_answer(value)
    if s in ("true", "t", "yes", "1"):
        return True
    if s in ("false", "f", "no", "0"):
        return False
    return None


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def is_correct(question, answer) -> bool:
    qtype = question.get("type")
    if answer is None:
        return False
    if qtype == QuestionType.MULTIPLE_CHOICE:
        accepted = {normalize_answer(a) for a in _as_list(question.get("correct_answer"))}
        return normalize_answer(answer) in accepted
    if qtype == QuestionType.TRUE_FALSE:
        given = _as_bool(answer)
        return given is not None and given == _as_bool(question.get("correct_answer"))
    if qtype == QuestionType.SHORT_ANSWER:
        accepted = _as_list(question.get("acceptable_answers")) or _as_list(question.get("correct_answer"))
        return normalize_answer(answer) in {normalize_answer(a) for a in accepted}
    return False


def score_answers(questions, answers, passing_score):
    """Score submitted answers against the question definitions.

    ``answers`` is a list of ``{"question_id", "answer"}`` dicts or a plain
    ``{question_id: answer}`` mapping. Returns score, total, percentage and
    the pass flag.
    """
    if isinstance(answers, dict):
        answer_map = {str(k): v for k, v in answers.items()}
    else:
        answer_map = {str(a.get("question_id")): a.get("answer") for a in answers or []}

    score = 0
    total = 0
    for q in questions:
        total += q["points"]
        if is_correct(q, answer_map.get(str(q["id"]))):
            score += q["points"]

    percentage = score / total * 100 if total else 0.0
    return {
        "score": score,
        "total_score": total,
        "percentage": percentage,
        "is_passed": percentage >= (passing_score or 0),
    }


def _clean_questions(raw):
    if not raw:
        raise ValidationError("An internal quiz needs at least one question")
    cleaned = []
    for i, q in enumerate(raw):
        qtype = q.get("type")
        if qtype not in QuestionType.ALL:
            raise ValidationError(f"Question {i + 1}: type must be one of {', '.join(QuestionType.ALL)}")
        text = (q.get("question") or "").strip()
        if len(text) < 5:
            raise ValidationError(f"Question {i + 1}: text must be at least 5 characters")
        points = q.get("points", 1)
        if isinstance(points, bool) or not isinstance(points, int) or points < 1:
            raise ValidationError(f"Question {i + 1}: points must be a positive integer")
        correct = q.get("correct_answer")
        acceptable = q.get("acceptable_answers") or None
        if qtype == QuestionType.MULTIPLE_CHOICE:
            options = q.get("options") or []
            if len(options) < 2:
                raise ValidationError(f"Question {i + 1}: multiple choice needs at least two options")
            if not _as_list(correct):
                raise ValidationError(f"Question {i + 1}: correct_answer is required")
        elif qtype == QuestionType.TRUE_FALSE:
            if _as_bool(correct) is None:
                raise ValidationError(f"Question {i + 1}: correct_answer must be true or false")
            correct = _as_bool(correct)
        elif correct in (None, "") and not acceptable:
            raise ValidationError(f"Question {i + 1}: correct_answer or acceptable_answers is required")
        cleaned.append({
            "id": str(q.get("id") or uuid4().hex),
            "type": qtype,
            "question": text,
            "points": points,
            "options": q.get("options"),
            "correct_answer": correct,
            "acceptable_answers": acceptable,
        })
    ids = [q["id"] for q in cleaned]
    if len(set(ids)) != len(ids):
        raise ValidationError("Question ids must be unique")
    return cleaned


def create_test(vacancy_id, payload, actor):
    payload = payload or {}
    with transaction() as events:
        if not has_role(actor, Roles.STAFF):
            raise Unauthorized("Only recruiters and admins can create tests")
        vacancy = load(Vacancy, vacancy_id)

        ttype = payload.get("type")
        title = (payload.get("title") or "").strip()
        if len(title) < 3:
            raise ValidationError("title must be at least 3 characters")

        test = Test(
            vacancy_id=vacancy.id,
            created_by_id=actor.id,
            type=ttype,
            title=title,
            description=payload.get("description"),
            instructions=payload.get("instructions"),
            duration=payload.get("duration"),
        )
        if ttype == TestType.INTERNAL_QUIZ:
            passing = payload.get("passing_score")
            if isinstance(passing, bool) or not isinstance(passing, int) or not 0 <= passing <= 100:
                raise ValidationError("passing_score must be an integer between 0 and 100")
            if not isinstance(test.duration, int) or test.duration < 1:
                raise ValidationError("duration (minutes) is required for an internal quiz")
            questions = _clean_questions(payload.get("questions"))
            test.passing_score = passing
            test.questions = questions
            test.total_score = sum(q["points"] for q in questions)
        elif ttype == TestType.EXTERNAL_LINK:
            url = (payload.get("external_url") or "").strip()
            if not url.startswith(("http://", "https://")):
                raise ValidationError("external_url must be an http(s) URL")
            test.external_url = url
            test.passing_score = payload.get("passing_score")
        else:
            raise ValidationError("type must be INTERNAL_QUIZ or EXTERNAL_LINK")

        db.session.add(test)
        db.session.flush()
        events.append(emit(EventType.TEST_CREATED, "Test", test.id, actor=actor,
                           vacancy_id=vacancy.id, type=ttype, title=title))

    current_app.logger.info("Test %s created for vacancy %s", test.id, vacancy_id)
    return test


def invite_to_test(application_id, test_id, actor):
    with transaction("Applicant has already been invited to this test") as events:
        if not has_role(actor, Roles.STAFF):
            raise Unauthorized("Only recruiters and admins can invite applicants to tests")
        application = load(Application, application_id, lock=True)
        test = Test.query.filter_by(id=test_id, vacancy_id=application.vacancy_id, is_active=True).first()
        if not test:
            raise NotFound("Test not found or not active for this vacancy")

        existing = TestAttempt.query.filter_by(application_id=application.id, test_id=test.id).first()
        if existing:
            raise DuplicateAction("Applicant has already been invited to this test")

        attempt = TestAttempt(test_id=test.id, application_id=application.id,
                              candidate_id=application.applicant_id)
        db.session.add(attempt)
        db.session.flush()
        events.append(emit(EventType.TEST_INVITED, "TestAttempt", attempt.id, actor=actor,
                           application_id=application.id, test_id=test.id, test_title=test.title,
                           test_type=test.type, applicant_id=application.applicant_id))

    current_app.logger.info("Application %s invited to test %s", application_id, test_id)
    return attempt


def _own_application(application_id, actor, lock=False):
    application = load(Application, application_id, lock=lock)
    if actor is None or actor.role != Roles.APPLICANT or application.applicant_id != actor.id:
        raise Unauthorized("You can only take tests for your own applications")
    return application


def _find_attempt(application_id, test_id=None, lock=False, test_type=None):
    q = TestAttempt.query.filter_by(application_id=application_id)
    if test_id is not None:
        q = q.filter_by(test_id=test_id)
    if lock:
        q = q.with_for_update().populate_existing()
    attempts = q.order_by(TestAttempt.id.asc()).all()
    if not attempts:
        raise NotFound("No test invitation found for this application")
    if test_id is not None:
        return attempts[0]
    if test_type is not None:
        matching = [a for a in attempts if a.test.type == test_type]
        attempts = matching or attempts
    open_attempts = [a for a in attempts if not a.is_completed]
    # the oldest outstanding invitation, else the latest one so the
    # completed-attempt check below reports the duplicate
    return open_attempts[0] if open_attempts else attempts[-1]


def _check_answers(answers):
    if not answers:
        raise ValidationError("At least one answer is required")
    if isinstance(answers, dict):
        return answers
    if not isinstance(answers, list) or not all(isinstance(a, dict) and a.get("question_id") for a in answers):
        raise ValidationError("answers must be a list of {question_id, answer} objects")
    return answers


def submit_attempt(application_id, answers, actor, test_id=None):
    with transaction() as events:
        application = _own_application(application_id, actor)
        attempt = _find_attempt(application.id, test_id, lock=True, test_type=TestType.INTERNAL_QUIZ)
        if attempt.is_completed:
            raise DuplicateAction("Test has already been submitted")
        test = attempt.test
        if test.type != TestType.INTERNAL_QUIZ:
            raise ValidationError("Only internal quizzes accept submitted answers")
        answers = _check_answers(answers)

        result = score_answers(test.questions, answers, test.passing_score)
        attempt.answers = answers
        attempt.score = result["score"]
        attempt.is_passed = result["is_passed"]
        attempt.completed_at = utc_now()
        db.session.flush()
        events.append(emit(EventType.TEST_COMPLETED, "TestAttempt", attempt.id, actor=actor,
                           application_id=application.id, test_id=test.id, score=result["score"],
                           total_score=result["total_score"], is_passed=result["is_passed"]))

    current_app.logger.info("Test attempt %s submitted: %s/%s", attempt.id, result["score"], result["total_score"])
    return attempt, result


def mark_complete(application_id, actor, notes=None, test_id=None):
    with transaction() as events:
        application = _own_application(application_id, actor)
        attempt = _find_attempt(application.id, test_id, lock=True, test_type=TestType.EXTERNAL_LINK)
        if attempt.is_completed:
            raise DuplicateAction("Test has already been marked as complete")
        if attempt.test.type != TestType.EXTERNAL_LINK:
            raise ValidationError("Only external link tests can be marked complete")

        attempt.external_completed = True
        attempt.external_notes = notes
        attempt.completed_at = utc_now()
        db.session.flush()
        events.append(emit(EventType.TEST_COMPLETED, "TestAttempt", attempt.id, actor=actor,
                           application_id=application.id, test_id=attempt.test_id, external=True))

    current_app.logger.info("External test attempt %s marked complete", attempt.id)
    return attempt


def get_test_for_applicant(application_id, actor, test_id=None):
    application = _own_application(application_id, actor)
    attempt = _find_attempt(application.id, test_id)
    return {"attempt": attempt.to_dict(), "test": attempt.test.to_dict(include_answers=False)}


def get_attempt(application_id, actor, test_id=None):
    if not has_role(actor, Roles.STAFF | Roles.PANEL):
        raise Unauthorized("Applicants must use the applicant test view")
    return _find_attempt(application_id, test_id)


def vacancy_tests(vacancy_id):
    return Test.query.filter_by(vacancy_id=vacancy_id).order_by(Test.created_at.desc(), Test.id.desc()).all()


def assessment_signal(application_id):
    attempts = TestAttempt.query.filter_by(application_id=application_id).all()
    if not attempts:
        return None
    if any(not a.is_completed for a in attempts):
        return AssessmentSignal.PENDING
    if any(a.is_passed is False for a in attempts):
        return AssessmentSignal.FAILED
    return AssessmentSignal.PASSED
