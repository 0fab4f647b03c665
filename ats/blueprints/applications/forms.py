from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, Optional

from .. import JSONForm


class ApplyForm(JSONForm):
    vacancy_id = IntegerField("Vacancy", validators=[InputRequired()])
    cv_id = IntegerField("CV", validators=[InputRequired()])
    motivation_letter_id = IntegerField("Motivation letter", validators=[Optional()])
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])


class TransitionForm(JSONForm):
    status = StringField("Status", validators=[DataRequired()])
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])
    expected_version = IntegerField("Expected version", validators=[Optional()])


class WithdrawForm(JSONForm):
    reason = TextAreaField("Reason", validators=[Optional(), Length(max=1000)])
