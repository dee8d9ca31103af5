"""Forms for the group blueprint."""

from flask_wtf import FlaskForm
from wtforms import FloatField, Form, FormField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from kickabout.core.constants import (
    GROUP_DESCRIPTION_MAX_LENGTH,
    GROUP_NAME_MAX_LENGTH,
    GROUP_PRIVACY_CHOICES,
    GROUP_RULES_MAX_LENGTH,
)


class OptionalCoordinatesForm(Form):
    """Coordinates that may be left out."""

    lat = FloatField("Latitude", validators=[Optional(), NumberRange(-90, 90)])
    lng = FloatField("Longitude", validators=[Optional(), NumberRange(-180, 180)])


class GroupLocationForm(Form):
    """City and optional coordinates of a group."""

    city = StringField("City", validators=[DataRequired(message="City is required")])
    coordinates = FormField(OptionalCoordinatesForm)


class GroupForm(FlaskForm):
    """Form for creating a new group."""

    name = StringField(
        "Group Name",
        validators=[
            DataRequired(message="Group name is required"),
            Length(max=GROUP_NAME_MAX_LENGTH),
        ],
    )
    description = TextAreaField(
        "Description",
        validators=[
            DataRequired(message="Group description is required"),
            Length(max=GROUP_DESCRIPTION_MAX_LENGTH),
        ],
    )
    privacy = SelectField(
        "Privacy",
        choices=[(choice, choice) for choice in GROUP_PRIVACY_CHOICES],
        default="public",
    )
    location = FormField(GroupLocationForm)
    rules = TextAreaField(
        "Rules", validators=[Optional(), Length(max=GROUP_RULES_MAX_LENGTH)]
    )
