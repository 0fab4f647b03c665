from flask import current_app
from flask_login import current_user, login_required, login_user, logout_user

from . import bp
from .. import validated
from ...errors import build_error_payload
from ...extensions import db
from ...models.user import User
from .forms import LoginForm


@bp.post("/login")
def login():
    form = validated(LoginForm)
    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if not user or not user.is_active or not user.check_password(form.password.data):
        current_app.logger.warning("Failed login for %s", form.email.data)
        return build_error_payload("invalid_credentials", "Invalid email or password"), 401
    login_user(user)
    token = user.issue_token()
    db.session.commit()
    return {"user": user.to_dict(), "token": token}


@bp.post("/logout")
@login_required
def logout():
    current_user.api_token = None
    db.session.commit()
    logout_user()
    return {"ok": True}


@bp.get("/me")
@login_required
def me():
    return {"user": current_user.to_dict()}
