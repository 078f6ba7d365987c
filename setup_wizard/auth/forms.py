from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SubmitField
from wtforms.validators import DataRequired, Length

class LoginForm(FlaskForm):
    email = StringField(
    "Email",
    validators=[DataRequired(), Length(max=255)]
)
    password = PasswordField("Password", validators=[DataRequired()])
    submit = SubmitField("Log in")

class CSRFOnlyForm(FlaskForm):
    pass
