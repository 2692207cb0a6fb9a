# force3/forms/onboarding_form.py

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import IntegerField, FloatField, StringField, SelectField, SelectMultipleField
from wtforms.validators import DataRequired, InputRequired, NumberRange, Optional

from force3.services.questionnaire import choices_for


class OnboardingForm(FlaskForm):
    """
    Validación de las respuestas obligatorias del cuestionario.
    Lo opcional no se valida aquí: profile_from_answers aplica los defaults.
    """
    name = StringField("Name", validators=[Optional()])
    sex = SelectField(
        "Sex",
        choices=choices_for("sex"),
        validators=[DataRequired(message="Select your sex.")],
    )
    age = IntegerField(
        "Age",
        validators=[
            InputRequired(message="Enter your age."),
            NumberRange(min=12, max=100, message="Age must be between 12 and 100."),
        ],
    )
    units = SelectField(
        "Units",
        choices=choices_for("units"),
        validators=[DataRequired(message="Choose metric or imperial.")],
    )
    height = StringField("Height", validators=[DataRequired(message="Enter your height.")])
    weight = FloatField(
        "Weight",
        validators=[
            InputRequired(message="Enter your weight."),
            NumberRange(min=0.1, message="Weight must be a positive number."),
        ],
    )
    primary_goals = SelectMultipleField(
        "Primary goals",
        choices=choices_for("primary_goals"),
        validators=[DataRequired(message="Pick at least one goal.")],
    )
    modalities = SelectMultipleField(
        "Modalities",
        choices=choices_for("modalities"),
        validators=[DataRequired(message="Pick at least one training type.")],
    )
    experience = SelectField(
        "Experience",
        choices=choices_for("experience"),
        validators=[DataRequired(message="Select your experience.")],
    )
    availability = IntegerField(
        "Days per week",
        validators=[
            InputRequired(message="Enter your weekly availability."),
            NumberRange(min=1, max=7, message="Availability must be between 1 and 7 days."),
        ],
    )
    beta = StringField("Beta access code", validators=[DataRequired(message="Enter the beta access code.")])

    @classmethod
    def from_answers(cls, answers):
        """Construye el form desde el JSON de respuestas (listas -> claves repetidas)."""
        pairs = []
        for key, value in (answers or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                pairs.extend((key, str(v)) for v in value)
            elif isinstance(value, bool):
                pairs.append((key, "yes" if value else "no"))
            else:
                pairs.append((key, str(value)))
        return cls(formdata=MultiDict(pairs), meta={"csrf": False})
