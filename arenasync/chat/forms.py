"""Forms for the chat blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class MessageForm(FlaskForm):
    """Form for sending a chat message."""

    sender_id = StringField("Sender", validators=[DataRequired()])
    text = StringField(
        "Message",
        filters=[_strip],
        validators=[DataRequired(message="Message cannot be empty."), Length(max=2000)],
    )
