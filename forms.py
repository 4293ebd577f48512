from flask_wtf import FlaskForm
from wtforms import IntegerField, PasswordField, SelectField, StringField, SubmitField
from wtforms.validators import DataRequired, NumberRange, Regexp

from members import EMAIL_RE
from models import Role


class BookForm(FlaskForm):
    isbn = StringField("ISBN", validators=[DataRequired()])
    title = StringField("Title", validators=[DataRequired()])
    author = StringField("Author", validators=[DataRequired()])
    total_copies = IntegerField("Copies", default=1, validators=[NumberRange(min=0)])
    submit = SubmitField("Save")


class MemberForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired()])
    email = StringField("Email", validators=[DataRequired(), Regexp(EMAIL_RE, message="Invalid email address.")])
    password = PasswordField("Password", validators=[DataRequired()])
    role = SelectField("Role", choices=[(r.value, r.value.title()) for r in Role], default=Role.USER.value)
    submit = SubmitField("Save")


class CopiesForm(FlaskForm):
    action = SelectField("Action", choices=[("add", "Add"), ("remove", "Remove")])
    count = IntegerField("Count", default=1, validators=[NumberRange(min=1)])
    submit = SubmitField("Update")
