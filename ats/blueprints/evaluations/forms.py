from wtforms import IntegerField, StringField, TextAreaField
from wtforms.validators import InputRequired, Optional

from .. import JSONForm


class EvaluationForm(JSONForm):
    rating = IntegerField("Rating", validators=[InputRequired()])
    recommendation = StringField("Recommendation", validators=[Optional()])
    comments = TextAreaField("Comments", validators=[Optional()])
    strengths = TextAreaField("Strengths", validators=[Optional()])
    weaknesses = TextAreaField("Weaknesses", validators=[Optional()])
