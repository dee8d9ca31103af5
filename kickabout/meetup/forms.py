"""Forms for the meetup blueprint."""

from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    DateTimeField,
    FloatField,
    Form,
    FormField,
    IntegerField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from kickabout.core.constants import (
    MEETUP_DESCRIPTION_MAX_LENGTH,
    MEETUP_MAX_DURATION,
    MEETUP_MIN_CAPACITY,
    MEETUP_MIN_DURATION,
    MEETUP_TITLE_MAX_LENGTH,
)
from kickabout.core.forms import ISO_DATETIME_FORMATS

from .models import MeetupStatus


class CoordinatesForm(Form):
    """Latitude/longitude of a venue."""

    lat = FloatField(
        "Latitude",
        validators=[
            InputRequired(message="Latitude is required"),
            NumberRange(-90, 90, message="Invalid latitude"),
        ],
    )
    lng = FloatField(
        "Longitude",
        validators=[
            InputRequired(message="Longitude is required"),
            NumberRange(-180, 180, message="Invalid longitude"),
        ],
    )


class LocationForm(Form):
    """Venue of a meetup."""

    name = StringField(
        "Location Name", validators=[DataRequired(message="Location name is required")]
    )
    address = StringField(
        "Address", validators=[DataRequired(message="Location address is required")]
    )
    coordinates = FormField(CoordinatesForm)


class MeetupForm(FlaskForm):
    """Form for creating a meetup."""

    title = StringField(
        "Title",
        validators=[
            DataRequired(message="Meetup title is required"),
            Length(max=MEETUP_TITLE_MAX_LENGTH),
        ],
    )
    description = TextAreaField(
        "Description",
        validators=[
            DataRequired(message="Meetup description is required"),
            Length(max=MEETUP_DESCRIPTION_MAX_LENGTH),
        ],
    )
    group = StringField("Group", validators=[DataRequired(message="Group is required")])
    dateTime = DateTimeField(
        "Date and Time",
        format=ISO_DATETIME_FORMATS,
        validators=[DataRequired(message="Date and time is required")],
    )
    duration = IntegerField(
        "Duration (minutes)",
        validators=[Optional(), NumberRange(MEETUP_MIN_DURATION, MEETUP_MAX_DURATION)],
    )
    location = FormField(LocationForm)
    minParticipants = IntegerField(
        "Minimum Participants",
        validators=[
            InputRequired(message="Minimum participants is required"),
            NumberRange(min=MEETUP_MIN_CAPACITY),
        ],
    )
    maxParticipants = IntegerField(
        "Maximum Participants",
        validators=[
            InputRequired(message="Maximum participants is required"),
            NumberRange(min=MEETUP_MIN_CAPACITY),
        ],
    )
    costPerPerson = FloatField(
        "Cost per Person",
        validators=[Optional(), NumberRange(min=0, message="Cost cannot be negative")],
    )
    status = SelectField(
        "Status",
        choices=[("draft", "Draft"), ("published", "Published")],
        default="draft",
    )


class MeetupUpdateForm(FlaskForm):
    """Form for editing a meetup; every field is optional.

    ``location`` is validated separately with :class:`LocationForm` because a
    form field cannot be left out of a nested form.
    """

    title = StringField(
        "Title", validators=[Optional(), Length(min=1, max=MEETUP_TITLE_MAX_LENGTH)]
    )
    description = TextAreaField(
        "Description",
        validators=[Optional(), Length(min=1, max=MEETUP_DESCRIPTION_MAX_LENGTH)],
    )
    dateTime = DateTimeField(
        "Date and Time", format=ISO_DATETIME_FORMATS, validators=[Optional()]
    )
    duration = IntegerField(
        "Duration (minutes)",
        validators=[Optional(), NumberRange(MEETUP_MIN_DURATION, MEETUP_MAX_DURATION)],
    )
    minParticipants = IntegerField(
        "Minimum Participants",
        validators=[Optional(), NumberRange(min=MEETUP_MIN_CAPACITY)],
    )
    maxParticipants = IntegerField(
        "Maximum Participants",
        validators=[Optional(), NumberRange(min=MEETUP_MIN_CAPACITY)],
    )
    costPerPerson = FloatField(
        "Cost per Person",
        validators=[Optional(), NumberRange(min=0, message="Cost cannot be negative")],
    )
    status = SelectField(
        "Status",
        choices=[(status.value, status.value.title()) for status in MeetupStatus],
        validators=[Optional()],
    )


class GuestForm(FlaskForm):
    """Form for bringing a guest to a meetup."""

    guestId = StringField("Guest", validators=[DataRequired(message="guestId is required")])


class GuestApprovalForm(FlaskForm):
    """Form for approving or rejecting a guest."""

    approved = BooleanField("Approved", false_values=(False, "false", "0", ""))
