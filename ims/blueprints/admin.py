from flask import Blueprint, jsonify, current_app
from flask_login import current_user
from ims.constants import Role
from ims.forms import CreateUserForm, validate_form
from ims.permissions import roles_required
from ims.services.user_service import UserService

admin_bp = Blueprint('admin', __name__)


def _credentials_response(message, user, temp_password, status=200):
    body = {'message': message, 'user': user.to_dict(), 'emailSent': True}
    # Only exposed when running in debug, never in production
    if current_app.debug:
        body['temporaryPassword'] = temp_password
    return jsonify(body), status


@admin_bp.route('/create-user', methods=['POST'])
@roles_required(Role.ADMIN)
def create_user():
    form = validate_form(CreateUserForm())
    user, temp_password = UserService.create_user(current_user, form.to_user_data())
    return _credentials_response(
        "User created successfully. Login credentials have been sent to their email.",
        user, temp_password, 201
    )


@admin_bp.route('/users')
@roles_required(Role.ADMIN)
def list_staff():
    return jsonify([u.to_dict() for u in UserService.list_staff()])


@admin_bp.route('/all-applicants')
@roles_required(Role.ADMIN)
def list_applicants():
    return jsonify([u.to_dict() for u in UserService.list_applicants()])


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@roles_required(Role.ADMIN)
def delete_user(user_id):
    UserService.delete_user(current_user, user_id)
    return jsonify({'message': 'User deleted successfully'})


@admin_bp.route('/users/<int:user_id>/reset-password', methods=['PUT'])
@roles_required(Role.ADMIN)
def reset_password(user_id):
    user, temp_password = UserService.reset_password(current_user, user_id)
    return _credentials_response(f"Password reset email has been sent to {user.email}", user, temp_password)


@admin_bp.route('/users/<int:user_id>/resend-credentials', methods=['POST'])
@roles_required(Role.ADMIN)
def resend_credentials(user_id):
    user, temp_password = UserService.resend_credentials(current_user, user_id)
    return _credentials_response(f"New credentials have been sent to {user.email}", user, temp_password)
