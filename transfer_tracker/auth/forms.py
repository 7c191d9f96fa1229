from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    PasswordField,
    BooleanField
)
from wtforms.validators import DataRequired, Length


class LoginForm(FlaskForm):
    """Form for location login, accepted as form data or JSON.

    Fields:
        username: Username field
        password: Password field
        remember_me: Remember login checkbox
    """
    username = StringField(
        'Username',
        validators=[
            DataRequired(message='Username and password are required'),
            Length(max=100, message='Invalid username format')
        ]
    )
    password = PasswordField(
        'Password',
        validators=[
            DataRequired(message='Username and password are required'),
            Length(max=200, message='Invalid password format')
        ]
    )
    remember_me = BooleanField('Remember Me')
