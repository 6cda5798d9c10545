"""Forms for the tournament blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, FieldList, IntegerField, SelectField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional


class MatchUpdateForm(FlaskForm):
    """Fields an admin may change on a bracket match."""

    player1 = StringField("Player 1", validators=[Optional(), Length(max=64)])
    player2 = StringField("Player 2", validators=[Optional(), Length(max=64)])
    score1 = IntegerField("Score 1", validators=[Optional(), NumberRange(min=0)])
    score2 = IntegerField("Score 2", validators=[Optional(), NumberRange(min=0)])
    winner = SelectField(
        "Winner",
        choices=[("", "Undecided"), ("player1", "Player 1"), ("player2", "Player 2")],
        validators=[Optional()],
    )


class LeaderboardUpdateForm(FlaskForm):
    """Fields an admin may change on a leaderboard entry."""

    username = StringField("Username", validators=[Optional(), Length(max=64)])
    avatar = StringField("Avatar URL", validators=[Optional(), Length(max=512)])
    rank = IntegerField("Rank", validators=[Optional(), NumberRange(min=1)])
    score = IntegerField("Score", validators=[Optional()])
    coins = IntegerField("Coins", validators=[Optional(), NumberRange(min=0)])


class AutoFillForm(FlaskForm):
    """Confirmation of a bulk overwrite from the joined participants."""

    participants = FieldList(StringField("Participant"), min_entries=0)
    confirm = BooleanField("Overwrite the current bracket", validators=[DataRequired()])
