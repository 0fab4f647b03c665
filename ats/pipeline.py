"""Application pipeline: the transition table and its gates.

``TRANSITIONS`` is the single source of truth for which status changes
exist, who may request them and which business preconditions must hold.
Interview rounds are folded into one ``INTERVIEW`` kind; the round
arithmetic (``R{n}`` may only move to ``R{n+1}``, entry is always ``R1``)
is applied when an edge is resolved.

Checks run in a fixed order so callers get a stable error kind:

1. the edge must be declared (``IllegalTransition``), which also rejects
   any skip-ahead no matter what the gates would say;
2. the actor's role must be allowed on that edge (``Unauthorized``);
3. every gate must hold (``GateNotSatisfied``).
"""

from collections import namedtuple

from .errors import GateNotSatisfied, IllegalTransition, Unauthorized, ValidationError
from .models.application import ApplicationStatus as S
from .roles import Roles

INTERVIEW = "INTERVIEW"

Edge = namedtuple("Edge", ["roles", "gates", "owner_only"])


def kind(status):
    return INTERVIEW if S.interview_round(status) is not None else status


# -- gates ------------------------------------------------------------------
# Each gate returns None when satisfied, otherwise the reason it is not.

def assessments_settled(application, target):
    from .services.assessments import AssessmentSignal, assessment_signal

    if assessment_signal(application.id) == AssessmentSignal.PENDING:
        return "A test invitation for this application has not been completed yet"
    return None


def round_completed(application, target):
    from .services.interviews import round_completed as _round_completed

    n = application.interview_round
    if not _round_completed(application.id, n):
        return f"Interview round {n} must be COMPLETED before moving to {target}"
    return None


def evaluation_signal(application, target):
    from .services.evaluations import evaluation_signal as _signal

    if not _signal(application.evaluations):
        return (f"Cannot move to {target}: requires an evaluation recommending PROCEED or "
                "STRONG_HIRE with no later REJECT")
    return None


def _edge(roles=Roles.STAFF, gates=(), owner_only=False):
    return Edge(frozenset(roles), tuple(gates), owner_only)


TRANSITIONS = {
    (S.APPLIED, S.SCREENING): _edge(),
    (S.APPLIED, S.REJECTED): _edge(),

    (S.SCREENING, S.SHORTLISTED): _edge(),
    (S.SCREENING, S.UNDER_REVIEW): _edge(),
    (S.SCREENING, INTERVIEW): _edge(gates=[assessments_settled]),
    (S.SCREENING, S.REJECTED): _edge(),

    (S.SHORTLISTED, S.UNDER_REVIEW): _edge(),
    (S.SHORTLISTED, INTERVIEW): _edge(gates=[assessments_settled]),
    (S.SHORTLISTED, S.REJECTED): _edge(),

    (S.UNDER_REVIEW, S.SHORTLISTED): _edge(),
    (S.UNDER_REVIEW, INTERVIEW): _edge(gates=[assessments_settled]),
    (S.UNDER_REVIEW, S.REJECTED): _edge(),

    (INTERVIEW, INTERVIEW): _edge(gates=[round_completed]),
    (INTERVIEW, S.OFFERED): _edge(gates=[round_completed, evaluation_signal]),
    (INTERVIEW, S.REJECTED): _edge(),

    (S.OFFERED, S.HIRED): _edge(),
    (S.OFFERED, S.REJECTED): _edge(),
}

for _from in (S.APPLIED, S.SCREENING, S.SHORTLISTED, S.UNDER_REVIEW, INTERVIEW, S.OFFERED):
    TRANSITIONS[(_from, S.WITHDRAWN)] = _edge(roles={Roles.APPLICANT}, owner_only=True)


def _next_interview(current):
    n = S.interview_round(current)
    return S.interview(n + 1 if n else 1)


def resolve_edge(current, requested):
    """Edge for ``current -> requested`` or None when it is not declared."""
    edge = TRANSITIONS.get((kind(current), kind(requested)))
    if edge is None:
        return None
    if kind(requested) == INTERVIEW and requested != _next_interview(current):
        return None
    return edge


def check_transition(application, requested, actor):
    """Raise unless ``actor`` may move ``application`` to ``requested`` now."""
    if not S.is_valid(requested):
        raise ValidationError(f"Unknown application status {requested!r}")

    current = application.status
    edge = resolve_edge(current, requested)
    if edge is None:
        allowed = sorted(allowed_targets(current))
        raise IllegalTransition(
            f"Cannot transition from {current} to {requested}",
            details={"from": current, "to": requested, "allowed": allowed},
        )

    if actor is None or actor.role not in edge.roles:
        raise Unauthorized(
            f"Role {getattr(actor, 'role', None)} may not move an application from {current} to {requested}",
            details={"allowed_roles": sorted(edge.roles)},
        )
    if edge.owner_only and application.applicant_id != actor.id:
        raise Unauthorized("Only the applicant who owns this application may do that")

    for gate in edge.gates:
        reason = gate(application, requested)
        if reason:
            raise GateNotSatisfied(reason, details={"gate": gate.__name__, "from": current, "to": requested})
    return edge


def allowed_targets(current, role=None):
    """Concrete statuses reachable from ``current``, optionally for one role.

    Gates are not evaluated.
    """
    out = []
    for (src, dst), edge in TRANSITIONS.items():
        if src != kind(current):
            continue
        if role is not None and role not in edge.roles:
            continue
        out.append(_next_interview(current) if dst == INTERVIEW else dst)
    return out
