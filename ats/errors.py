"""Error taxonomy shared by the services and the HTTP boundary.

Every rejection a caller can receive is one of the classes below, each with
its own ``code`` so a role failure, a business-rule failure and a duplicate
action can always be told apart.
"""

from typing import Any, Dict, Optional

from flask import jsonify


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class PipelineError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def payload(self) -> Dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)


class ValidationError(PipelineError):
    status_code = 400
    code = "validation_error"


class Unauthorized(PipelineError):
    status_code = 403
    code = "unauthorized"


class NotAssigned(PipelineError):
    status_code = 403
    code = "not_assigned"


class IllegalTransition(PipelineError):
    status_code = 409
    code = "illegal_transition"


class GateNotSatisfied(PipelineError):
    status_code = 422
    code = "gate_not_satisfied"


class DuplicateAction(PipelineError):
    status_code = 409
    code = "duplicate_action"


class NotFound(PipelineError):
    status_code = 404
    code = "not_found"


class ConcurrentModification(PipelineError):
    status_code = 409
    code = "concurrent_modification"


def pipeline_error_handler(exc: PipelineError):
    return jsonify(exc.payload), exc.status_code
