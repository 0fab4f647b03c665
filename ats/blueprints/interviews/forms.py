from wtforms import DateTimeField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from .. import JSONForm

DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"]


class ScheduleForm(JSONForm):
    application_id = IntegerField("Application", validators=[InputRequired()])
    round = IntegerField("Round", validators=[InputRequired(), NumberRange(min=1)])
    scheduled_at = DateTimeField("Scheduled at (UTC)", format=DATETIME_FORMATS, validators=[DataRequired()])
    duration = IntegerField("Duration (minutes)", default=60, validators=[Optional(), NumberRange(min=1)])
    title = StringField("Title", validators=[Optional(), Length(max=200)])
    location = StringField("Location", validators=[Optional(), Length(max=255)])
    notes = TextAreaField("Notes", validators=[Optional()])


class RescheduleForm(JSONForm):
    scheduled_at = DateTimeField("Scheduled at (UTC)", format=DATETIME_FORMATS, validators=[DataRequired()])
    reason = TextAreaField("Reason", validators=[DataRequired(), Length(max=1000)])


class CancelForm(JSONForm):
    reason = TextAreaField("Reason", validators=[Optional(), Length(max=1000)])
