import os
import logging
from flask import Blueprint, current_app, send_from_directory
from flask_login import login_required, current_user
from werkzeug.utils import secure_filename
from ims.errors import Forbidden, NotFound
from ims.models import User
from ims.services.access_filter import application_for_document, can_view

logger = logging.getLogger(__name__)

documents_bp = Blueprint('documents', __name__)


@documents_bp.route('/<filename>')
@login_required
def download(filename):
    safe_name = secure_filename(filename)
    if not safe_name or safe_name != filename:
        raise NotFound("File not found")

    application = application_for_document(safe_name)
    if application is not None:
        if not can_view(current_user, application):
            logger.warning("User %s refused document %s of application %s",
                           current_user.id, safe_name, application.id)
            raise Forbidden("You are not allowed to access this document")
    elif not User.query.filter_by(profile_picture=safe_name).first():
        # Only application documents and profile pictures are served
        raise NotFound("File not found")

    folder = current_app.config['UPLOAD_FOLDER']
    if not os.path.isfile(os.path.join(folder, safe_name)):
        raise NotFound("File not found")
    return send_from_directory(folder, safe_name, as_attachment=True)
