"""Forms for the user blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from flask_wtf.file import FileAllowed, FileField, FileRequired  # type: ignore
from wtforms import EmailField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional, Regexp


class CreateProfileForm(FlaskForm):
    """Form for creating the profile that goes with a Firebase account."""

    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(min=3, max=25),
            Regexp(
                r"^[A-Za-z0-9_]*$",
                message="Username must have only letters, numbers or underscores",
            ),
        ],
    )
    display_name = StringField("Display Name", validators=[Optional(), Length(max=50)])
    email = EmailField("Email", validators=[Optional(), Email()])


class ProfilePictureForm(FlaskForm):
    """Form for uploading a profile picture."""

    profile_picture = FileField(
        "Profile Picture",
        validators=[
            FileRequired(),
            FileAllowed(["jpg", "jpeg", "png", "gif", "webp"], "Images only!"),
        ],
    )
