from flask import request
from flask_wtf import FlaskForm

from ..errors import ValidationError


class JSONForm(FlaskForm):
    """WTForms form fed from the JSON request body; the API is token based, so no CSRF."""

    class Meta:
        csrf = False


def validated(form_cls):
    form = form_cls()
    if not form.validate_on_submit():
        raise ValidationError("Invalid request body", details=form.errors)
    return form


def json_body():
    return request.get_json(silent=True) or {}
