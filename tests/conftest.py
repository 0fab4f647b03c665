"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file so separate connections (used to
simulate a concurrent writer) see the same data.
"""

import itertools
import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from ats import create_app
from ats.extensions import db
from ats.models.application import ApplicationStatus
from ats.models.user import User
from ats.models.vacancy import Vacancy, VacancyStatus
from ats.roles import Principal, Roles
from ats.services import applications, interviews
from config import TestingConfig


def pytest_configure(config):
    config.addinivalue_line("markers", "api: exercises the HTTP boundary")


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{(tmp_path / 'ats.db').as_posix()}"

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role, password="secret123", active=True):
        n = next(counter)
        user = User(email=f"{role.lower()}{n}@example.com", role=role, active=active,
                    first_name=role.title(), last_name=str(n))
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return Principal(user.id, user.role)

    return _make


@pytest.fixture
def applicant(make_user):
    return make_user(Roles.APPLICANT)


@pytest.fixture
def other_applicant(make_user):
    return make_user(Roles.APPLICANT)


@pytest.fixture
def recruiter(make_user):
    return make_user(Roles.RECRUITER)


@pytest.fixture
def interviewer(make_user):
    return make_user(Roles.INTERVIEWER)


@pytest.fixture
def manager(make_user):
    return make_user(Roles.MANAGER)


@pytest.fixture
def admin(make_user):
    return make_user(Roles.ADMIN)


@pytest.fixture
def make_vacancy(app, recruiter):
    def _make(title="Backend Engineer", status=VacancyStatus.OPEN, is_published=True):
        vacancy = Vacancy(title=title, status=status, is_published=is_published, created_by_id=recruiter.id)
        db.session.add(vacancy)
        db.session.commit()
        return vacancy

    return _make


@pytest.fixture
def vacancy(make_vacancy):
    return make_vacancy()


@pytest.fixture
def application(vacancy, applicant):
    return applications.submit_application(vacancy.id, applicant, cv_id=1)


@pytest.fixture
def advance(recruiter):
    """Walk an application through statuses as the recruiter."""
    def _advance(application_id, *statuses, actor=None):
        app_row = None
        for status in statuses:
            app_row = applications.request_transition(application_id, status, actor or recruiter)
        return app_row

    return _advance


@pytest.fixture
def when():
    return datetime(2030, 1, 16, 9, 0)


@pytest.fixture
def complete_round(recruiter, interviewer, when):
    """Schedule and complete interview round ``n`` for an application."""
    def _complete(application_id, round_no, panel=None):
        panel = panel or [interviewer.id]
        interview = interviews.schedule_interview(application_id, round_no, when + timedelta(days=round_no),
                                                  panel, recruiter)
        verdicts = [{"interviewer_id": i, "attended": True, "rating": 8, "recommendation": "PROCEED"}
                    for i in panel]
        return interviews.complete_interview(interview.id, verdicts, recruiter)

    return _complete


@pytest.fixture
def in_interview(application, advance):
    """The application moved to INTERVIEW_R1."""
    advance(application.id, ApplicationStatus.SCREENING, ApplicationStatus.interview(1))
    return application
