from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email

from .. import JSONForm


class LoginForm(JSONForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
