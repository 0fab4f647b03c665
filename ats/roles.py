"""Roles carried by an authenticated principal."""

from dataclasses import dataclass


class Roles:
    APPLICANT = "APPLICANT"
    RECRUITER = "RECRUITER"
    INTERVIEWER = "INTERVIEWER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    ALL = (APPLICANT, RECRUITER, INTERVIEWER, MANAGER, ADMIN)

    # users who may recruit for a vacancy and drive the pipeline
    STAFF = frozenset({RECRUITER, ADMIN})
    # users who may sit on an interview panel
    PANEL = frozenset({INTERVIEWER, MANAGER, ADMIN})
    # users who may write to the evaluation ledger
    EVALUATORS = frozenset({RECRUITER, INTERVIEWER, MANAGER, ADMIN})


@dataclass(frozen=True)
class Principal:
    """Identity handed to the services: who is acting and in which role.

    Anything with ``id`` and ``role`` attributes works, including a logged-in
    :class:`~ats.models.user.User`.
    """
    id: int
    role: str


def has_role(actor, allowed) -> bool:
    role = getattr(actor, "role", None)
    if not role or not allowed:
        return False
    return role in allowed
