from flask import Blueprint, jsonify, current_app
from flask_login import current_user
from ims.constants import Role
from ims.forms import CreateUserForm, validate_form
from ims.permissions import roles_required
from ims.services.user_service import UserService

hr_bp = Blueprint('hr', __name__)


@hr_bp.route('/create-user', methods=['POST'])
@roles_required(Role.HR)
def create_user():
    """HR provisions intern and attachee accounts."""
    form = validate_form(CreateUserForm())
    user, temp_password = UserService.create_user(current_user, form.to_user_data())
    body = {
        'message': 'User account created successfully. Login credentials have been sent to their email.',
        'user': user.to_dict(),
        'emailSent': True,
    }
    if current_app.debug:
        body['temporaryPassword'] = temp_password
    return jsonify(body), 201


@hr_bp.route('/created-users')
@roles_required(Role.HR)
def created_users():
    return jsonify([u.to_dict() for u in UserService.list_created_by(current_user)])
