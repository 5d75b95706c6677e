import os
import uuid
import random
import string
import logging
from werkzeug.utils import secure_filename
from flask import current_app, request
from ims.errors import ValidationError
from ims.extensions import db
from ims.models import AuditLog

logger = logging.getLogger(__name__)


def allowed_file(filename):
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


def save_file(file, prefix):
    """Stores an upload under UPLOAD_FOLDER and returns the new file name, or None."""
    if not file or not file.filename:
        return None

    if not allowed_file(file.filename):
        logger.warning("Blocked invalid file type: %s", file.filename)
        return None

    # secure_filename strips path tricks like "../../etc"
    original_filename = secure_filename(file.filename)
    if '.' not in original_filename:
        return None

    # Unique prefix so two applicants never overwrite each other
    ext = original_filename.rsplit('.', 1)[1].lower()
    new_filename = f"{prefix}_{uuid.uuid4().hex[:8]}.{ext}"

    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    file.save(os.path.join(folder, new_filename))
    return new_filename


def generate_temp_password(length=6):
    alphabet = string.ascii_uppercase + string.digits
    return ''.join(random.SystemRandom().choice(alphabet) for _ in range(length))


def log_audit(application_id, user_id, action, details=None):
    """Records a business action. The caller owns the commit."""
    db.session.add(AuditLog(
        application_id=application_id,
        user_id=user_id,
        action=action,
        details=details
    ))


def request_data():
    """JSON body or form fields of the current request, as a plain dict."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data
    return request.form.to_dict()
