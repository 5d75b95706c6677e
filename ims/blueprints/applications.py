from datetime import datetime
from flask import Blueprint, jsonify, request, Response, stream_with_context
from flask_login import login_required, current_user
from ims.constants import Role, REQUIRED_DOCUMENTS, VIEWER_ROLES, APPLICANT_ROLES
from ims.errors import Forbidden, ValidationError
from ims.permissions import roles_required
from ims.services import review_service
from ims.services.access_filter import visible_applications, parse_filters, can_view
from ims.services.analytics_service import get_application_stats
from ims.services.export_service import generate_applications_csv
from ims.utils import save_file, request_data

applications_bp = Blueprint('applications', __name__)


@applications_bp.route('', methods=['POST'])
@roles_required(*APPLICANT_ROLES)
def submit_application():
    role = Role(current_user.role)
    requested_role = request.form.get('applicantRole')
    if requested_role and requested_role != role.value:
        raise ValidationError("applicantRole does not match your account", fields=['applicantRole'])

    # Only the role's own document slots are read
    documents = {}
    for field in REQUIRED_DOCUMENTS[role]:
        stored = save_file(request.files.get(field), field)
        if stored:
            documents[field] = stored

    payload = {
        'start_date': request.form.get('startDate'),
        'end_date': request.form.get('endDate'),
        'preferred_department': request.form.get('preferredDepartment'),
        'preferred_subdepartment': request.form.get('preferredSubdepartment'),
    }
    application = review_service.submit(current_user, payload, documents)
    return jsonify(application.to_dict()), 201


@applications_bp.route('/my-applications')
@roles_required(*APPLICANT_ROLES)
def my_applications():
    return jsonify([a.to_dict() for a in review_service.my_applications(current_user)])


@applications_bp.route('')
@roles_required(*VIEWER_ROLES)
def list_applications():
    filters = parse_filters(request.args)
    return jsonify([a.to_dict() for a in visible_applications(current_user, filters)])


@applications_bp.route('/analytics/stats')
@roles_required(*VIEWER_ROLES)
def analytics_stats():
    return jsonify(get_application_stats(current_user))


@applications_bp.route('/export')
@roles_required(*VIEWER_ROLES)
def export_applications():
    applications = visible_applications(current_user, parse_filters(request.args))
    filename = f"Applications_{datetime.now().strftime('%Y%m%d')}.csv"
    return Response(stream_with_context(generate_applications_csv(applications)), mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename={filename}'})


@applications_bp.route('/<int:application_id>')
@login_required
def get_application(application_id):
    application = review_service.get_application(application_id)
    if not can_view(current_user, application):
        raise Forbidden("You are not allowed to view this application")
    return jsonify(application.to_dict())


@applications_bp.route('/hr-review/<int:application_id>', methods=['PUT'])
@roles_required(Role.HR)
def hr_review(application_id):
    data = request_data()
    application = review_service.hr_review(
        current_user, application_id,
        action=data.get('action'),
        comments=data.get('comments'),
        expected_status=data.get('expectedStatus'),
        hod_department=data.get('hodDepartment'),
        hod_subdepartment=data.get('hodSubdepartment'),
    )
    return jsonify(application.to_dict())


@applications_bp.route('/hod-review/<int:application_id>', methods=['PUT'])
@roles_required(Role.HOD)
def hod_review(application_id):
    data = request_data()
    application = review_service.hod_review(
        current_user, application_id,
        action=data.get('action'),
        comments=data.get('comments'),
        expected_status=data.get('expectedStatus'),
    )
    return jsonify(application.to_dict())


@applications_bp.route('/offer/<int:application_id>', methods=['PUT'])
@roles_required(Role.HR)
def send_offer(application_id):
    data = request_data()
    application = review_service.send_offer(current_user, application_id, data.get('offerMessage'))
    body = application.to_dict()
    body['message'] = 'Offer email sent successfully.'
    return jsonify(body)
