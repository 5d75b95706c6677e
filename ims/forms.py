from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed
from wtforms import StringField, PasswordField, SelectField
from wtforms.validators import DataRequired, Email, Length, Optional
from ims.constants import Role, APPLICANT_ROLES
from ims.errors import ValidationError


# --- Custom Validator for Conditional Logic ---
class RequiredIf(DataRequired):
    """Validator which makes a field required if another field has one of the given values."""
    def __init__(self, other_field_name, values, *args, **kwargs):
        self.other_field_name = other_field_name
        self.values = {getattr(v, 'value', v) for v in values}
        super(RequiredIf, self).__init__(*args, **kwargs)

    def __call__(self, form, field):
        other_field = form._fields.get(self.other_field_name)
        if other_field is None:
            raise Exception(f'no field named "{self.other_field_name}" in form')
        if other_field.data in self.values:
            super(RequiredIf, self).__call__(form, field)
        else:
            Optional()(form, field)


def validate_form(form):
    """Runs WTForms validation and turns failures into a 400 ValidationError."""
    if form.validate():
        return form
    fields = list(form.errors)
    first = form.errors[fields[0]]
    message = first[0] if isinstance(first, list) and first else str(first)
    raise ValidationError(f"{fields[0]}: {message}", fields=fields)


ROLE_CHOICES = [(r.value, r.value) for r in Role]
APPLICANT_CHOICES = [(r.value, r.value) for r in Role if r in APPLICANT_ROLES]


# --- AUTH FORMS ---

class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    role = StringField('Role', validators=[Optional()])


class _ProfileFields(FlaskForm):
    firstName = StringField('First Name', validators=[DataRequired(), Length(max=64)])
    middleName = StringField('Middle Name', validators=[Optional(), Length(max=64)])
    lastName = StringField('Last Name', validators=[DataRequired(), Length(max=64)])
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    phoneNumber = StringField('Phone Number', validators=[DataRequired(), Length(max=20)])
    institution = StringField('Institution', validators=[RequiredIf('role', APPLICANT_ROLES), Length(max=150)])
    course = StringField('Course', validators=[RequiredIf('role', APPLICANT_ROLES), Length(max=150)])
    yearOfStudy = StringField('Year of Study', validators=[RequiredIf('role', APPLICANT_ROLES), Length(max=20)])
    department = StringField('Department', validators=[Optional()])
    subdepartment = StringField('Subdepartment', validators=[Optional()])

    def to_user_data(self):
        return {
            'first_name': self.firstName.data,
            'middle_name': self.middleName.data,
            'last_name': self.lastName.data,
            'email': self.email.data,
            'phone_number': self.phoneNumber.data,
            'role': self.role.data,
            'institution': self.institution.data,
            'course': self.course.data,
            'year_of_study': self.yearOfStudy.data,
            'department': self.department.data,
            'subdepartment': self.subdepartment.data,
        }


class RegisterForm(_ProfileFields):
    role = SelectField('Role', choices=APPLICANT_CHOICES, validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6)])
    profilePicture = FileField('Profile Picture', validators=[FileAllowed(['png', 'jpg', 'jpeg'])])

    def to_user_data(self):
        data = super().to_user_data()
        data['password'] = self.password.data
        return data


class CreateUserForm(_ProfileFields):
    role = SelectField('Role', choices=ROLE_CHOICES, validators=[DataRequired()])


class SetDepartmentForm(FlaskForm):
    department = StringField('Department', validators=[DataRequired()])
    subdepartment = StringField('Subdepartment', validators=[Optional()])


class ChangePasswordForm(FlaskForm):
    currentPassword = PasswordField('Current Password', validators=[DataRequired()])
    newPassword = PasswordField('New Password', validators=[DataRequired()])


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])


