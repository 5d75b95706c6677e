from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from ims.forms import LoginForm, RegisterForm, SetDepartmentForm, ChangePasswordForm, ForgotPasswordForm, validate_form
from ims.services.user_service import UserService
from ims.utils import save_file, request_data

auth_bp = Blueprint('auth', __name__)


def _session_payload(user):
    data = user.to_dict()
    data['token'] = user.get_auth_token()
    return data


@auth_bp.route('/register', methods=['POST'])
def register():
    form = validate_form(RegisterForm())
    picture = save_file(request.files.get('profilePicture'), 'PROFILE')
    user = UserService.register(form.to_user_data(), profile_picture=picture)
    return jsonify(_session_payload(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    form = validate_form(LoginForm())
    user = UserService.authenticate(form.email.data, form.password.data, role=form.role.data or None)
    return jsonify(_session_payload(user))


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = request_data()
    fields = {
        'first_name': data.get('firstName'),
        'middle_name': data.get('middleName'),
        'last_name': data.get('lastName'),
        'phone_number': data.get('phoneNumber'),
        'institution': data.get('institution'),
        'course': data.get('course'),
        'year_of_study': data.get('yearOfStudy'),
        'department': data.get('department'),
        'subdepartment': data.get('subdepartment'),
        'password': data.get('password'),
    }
    picture = save_file(request.files.get('profilePicture'), 'PROFILE')
    user = UserService.update_profile(current_user, fields, profile_picture=picture)
    return jsonify(user.to_dict())


@auth_bp.route('/set-department', methods=['PUT'])
@login_required
def set_department():
    form = validate_form(SetDepartmentForm())
    user = UserService.set_department(current_user, form.department.data, form.subdepartment.data)
    return jsonify(user.to_dict())


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    form = validate_form(ForgotPasswordForm())
    UserService.forgot_password(form.email.data)
    # Same answer whether or not the account exists
    return jsonify({
        'message': "If an account with this email exists, a new temporary password has been sent."
    })


@auth_bp.route('/change-password', methods=['PUT'])
@login_required
def change_password():
    form = validate_form(ChangePasswordForm())
    UserService.change_password(current_user, form.currentPassword.data, form.newPassword.data)
    return jsonify({
        'message': "Password changed successfully! Please use your new password for future logins.",
        'success': True
    })
