from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, URL

from .. import JSONForm
from ...models.assessment import TestType


class TestForm(JSONForm):
    type = SelectField("Type", choices=[(TestType.INTERNAL_QUIZ, "Internal quiz"),
                                        (TestType.EXTERNAL_LINK, "External link")],
                       validators=[DataRequired()])
    title = StringField("Title", validators=[DataRequired(), Length(min=3, max=200)])
    description = TextAreaField("Description", validators=[Optional()])
    instructions = TextAreaField("Instructions", validators=[Optional()])
    duration = IntegerField("Duration (minutes)", validators=[Optional(), NumberRange(min=1)])
    passing_score = IntegerField("Passing score", validators=[Optional(), NumberRange(min=0, max=100)])
    external_url = StringField("External URL", validators=[Optional(), URL()])


class CompleteForm(JSONForm):
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])
    test_id = IntegerField("Test", validators=[Optional()])
