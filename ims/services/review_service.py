"""Application review workflow.

pending/hr_review (awaiting HR) -> hod_review -> approved | rejected
pending/hr_review (awaiting HR) -> rejected

Both review steps write through a conditional UPDATE keyed on the status the
reviewer saw, so two reviewers racing on one application cannot both win.
"""
import logging
from datetime import datetime, date
from ims.constants import (
    Role, ApplicationStatus, ReviewAction, AWAITING_HR, IN_FLIGHT_STATUSES,
    REQUIRED_DOCUMENTS, INTERN_DOCUMENTS, ATTACHEE_DOCUMENTS,
)
from ims.departments import get_catalog
from ims.errors import ValidationError, Forbidden, NotFound, Conflict, InvalidTransition
from ims.extensions import db
from ims.models import Application, User
from ims.utils import log_audit
from ims import notifications

logger = logging.getLogger(__name__)

DOCUMENT_LABELS = {**INTERN_DOCUMENTS, **ATTACHEE_DOCUMENTS}


# --- HELPERS ---

def _parse_date(value, field):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required", fields=[field])
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", fields=[field])


def _parse_action(action):
    if not isinstance(action, str):
        raise ValidationError("Valid action (approve/reject) is required", fields=['action'])
    try:
        return ReviewAction(action.strip().lower())
    except ValueError:
        raise ValidationError("Valid action (approve/reject) is required", fields=['action'])


def _parse_status(value):
    if value is None or value == '':
        return None
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status '{value}'", fields=['expectedStatus'])


def _require_comments(comments, field='comments'):
    if not isinstance(comments, str) or not comments.strip():
        raise ValidationError("Comments are required as text", fields=[field])
    return comments.strip()


def _require_role(actor, role, message):
    if Role(actor.role) is not role:
        logger.warning("User %s (%s) refused: %s", actor.id, actor.role, message)
        raise Forbidden(message)


def get_application(application_id):
    application = db.session.get(Application, application_id)
    if not application:
        raise NotFound("Application not found")
    return application


def _check_expected(expected_status, current, operation):
    expected = _parse_status(expected_status)
    if expected is None:
        return
    # pending and hr_review are interchangeable for an HR reviewer
    if expected in AWAITING_HR and current in AWAITING_HR:
        return
    if expected is not current:
        raise InvalidTransition(current, operation)


def _compare_and_swap(application, prior, values, operation):
    """Applies ``values`` only if the row still has status ``prior``."""
    values['updated_at'] = datetime.utcnow()
    updated = (Application.query
               .filter(Application.id == application.id, Application.status == prior)
               .update(values, synchronize_session=False))
    if updated != 1:
        db.session.rollback()
        current = db.session.get(Application, application.id)
        logger.warning("Lost update on application %s during %s", application.id, operation)
        raise InvalidTransition(current.status if current else prior, operation)


# --- SUBMISSION ---

def submit(applicant, payload, documents):
    """
    Creates a pending application for ``applicant``.

    ``payload`` carries start_date, end_date, preferred_department and
    preferred_subdepartment; ``documents`` maps upload field names to stored
    paths.
    """
    role = Role(applicant.role)
    if role not in REQUIRED_DOCUMENTS:
        raise Forbidden("Only interns and attachees can submit applications")

    in_flight = Application.query.filter(
        Application.user_id == applicant.id,
        Application.status.in_(list(IN_FLIGHT_STATUSES))
    ).first()
    if in_flight:
        raise Conflict("You already have a pending application")

    documents = {k: v for k, v in (documents or {}).items() if v}
    missing = [f for f in REQUIRED_DOCUMENTS[role] if f not in documents]
    if missing:
        labels = ', '.join(DOCUMENT_LABELS[f] for f in missing)
        raise ValidationError(f"Missing required {role.value} documents: {labels}", fields=missing)

    start = _parse_date(payload.get('start_date'), 'startDate')
    end = _parse_date(payload.get('end_date'), 'endDate')
    if end < start:
        raise ValidationError("End date cannot be before start date", fields=['endDate'])

    catalog = get_catalog()
    dept = (payload.get('preferred_department') or '').strip()
    subdept = catalog.normalise_subdepartment(payload.get('preferred_subdepartment'))
    if not catalog.validate(dept, subdept):
        raise ValidationError("Invalid department or subdepartment selection",
                              fields=['preferredDepartment', 'preferredSubdepartment'])

    application = Application(
        user_id=applicant.id,
        applicant_role=role,
        start_date=start,
        end_date=end,
        preferred_department=dept,
        preferred_subdepartment=subdept,
        status=ApplicationStatus.PENDING
    )
    for field in REQUIRED_DOCUMENTS[role]:
        application.set_document(field, documents[field])

    db.session.add(application)
    db.session.flush()
    log_audit(application.id, applicant.id, 'SUBMITTED', f"{dept}/{subdept}")
    db.session.commit()

    logger.info("Application %s submitted by %s for %s/%s", application.id, applicant.email, dept, subdept)
    notifications.notify_application_submitted(applicant, application)
    return application


def my_applications(applicant):
    if not Role(applicant.role).is_applicant:
        raise Forbidden("Only interns and attachees have applications")
    return (Application.query
            .filter_by(user_id=applicant.id)
            .order_by(Application.created_at.desc(), Application.id.desc())
            .all())


# --- HR REVIEW ---

def hr_review(actor, application_id, action, comments, expected_status=None,
              hod_department=None, hod_subdepartment=None):
    """HR decision on an application awaiting HR: forward to HOD or reject."""
    _require_role(actor, Role.HR, "Only HR can perform an HR review")
    application = get_application(application_id)
    comments = _require_comments(comments)
    action = _parse_action(action)

    prior = ApplicationStatus(application.status)
    if prior not in AWAITING_HR:
        raise InvalidTransition(prior, "HR review")
    _check_expected(expected_status, prior, "HR review")

    now = datetime.utcnow()
    values = {
        'hr_comments': comments,
        'reviewed_by_hr_id': actor.id,
        'hr_review_date': now,
    }

    if action is ReviewAction.APPROVE:
        values['status'] = ApplicationStatus.HOD_REVIEW
        if hod_department or hod_subdepartment:
            # HR may route the application to a different HOD
            catalog = get_catalog()
            dept = str(hod_department or application.preferred_department).strip()
            subdept = catalog.normalise_subdepartment(hod_subdepartment)
            if not catalog.validate(dept, subdept):
                raise ValidationError("Invalid HOD department or subdepartment",
                                      fields=['hodDepartment', 'hodSubdepartment'])
            values['preferred_department'] = dept
            values['preferred_subdepartment'] = subdept
    else:
        values['status'] = ApplicationStatus.REJECTED

    _compare_and_swap(application, prior, values, "HR review")
    log_audit(application.id, actor.id, f"HR_{action.value.upper()}", comments)
    db.session.commit()
    db.session.refresh(application)

    logger.info("HR %s %sd application %s -> %s", actor.email, action.value,
                application.id, application.status.value)

    applicant = application.user
    if action is ReviewAction.APPROVE:
        notifications.notify_forwarded_to_hod(applicant, application, comments)
    else:
        notifications.notify_final_decision(applicant, application, False, comments)
    return application


# --- HOD REVIEW ---

def in_hod_scope(actor, application):
    return (application.preferred_department == actor.department and
            application.preferred_subdepartment == actor.subdepartment)


def hod_review(actor, application_id, action, comments, expected_status=None):
    """Final HOD decision on an application routed to the HOD's own unit."""
    _require_role(actor, Role.HOD, "Only a Head of Department can perform an HOD review")
    application = get_application(application_id)
    comments = _require_comments(comments)
    action = _parse_action(action)

    if not in_hod_scope(actor, application):
        logger.warning("HOD %s (%s/%s) refused application %s routed to %s/%s",
                       actor.email, actor.department, actor.subdepartment, application.id,
                       application.preferred_department, application.preferred_subdepartment)
        raise Forbidden("You can only review applications for your department")

    prior = ApplicationStatus(application.status)
    if prior is not ApplicationStatus.HOD_REVIEW:
        raise InvalidTransition(prior, "HOD review")
    _check_expected(expected_status, prior, "HOD review")

    approved = action is ReviewAction.APPROVE
    values = {
        'status': ApplicationStatus.APPROVED if approved else ApplicationStatus.REJECTED,
        'hod_comments': comments,
        'reviewed_by_hod_id': actor.id,
        'hod_review_date': datetime.utcnow(),
    }
    _compare_and_swap(application, prior, values, "HOD review")
    log_audit(application.id, actor.id, f"HOD_{action.value.upper()}", comments)
    db.session.commit()
    db.session.refresh(application)

    logger.info("HOD %s %sd application %s", actor.email, action.value, application.id)

    applicant = application.user
    notifications.notify_final_decision(applicant, application, approved, comments)
    if approved:
        hr_users = User.query.filter_by(role=Role.HR, department=application.preferred_department).all()
        for hr_user in hr_users:
            notifications.notify_hod_approval_to_hr(hr_user, application, applicant, comments)
    return application


# --- OFFER ---

def send_offer(actor, application_id, offer_message):
    """HR sends the placement offer for an approved application, once."""
    _require_role(actor, Role.HR, "Only HR can send offer emails")
    application = get_application(application_id)
    offer_message = _require_comments(offer_message, field='offerMessage')

    prior = ApplicationStatus(application.status)
    if prior is not ApplicationStatus.APPROVED:
        raise InvalidTransition(prior, "offer email")

    now = datetime.utcnow()
    updated = (Application.query
               .filter(Application.id == application.id,
                       Application.status == ApplicationStatus.APPROVED,
                       Application.offer_email_sent.is_(False))
               .update({
                   'offer_email_sent': True,
                   'offer_email_sent_at': now,
                   'offer_email_sent_by_id': actor.id,
                   'updated_at': now,
               }, synchronize_session=False))
    if updated != 1:
        db.session.rollback()
        raise Conflict("An offer email has already been sent for this application")

    log_audit(application.id, actor.id, 'OFFER_SENT', offer_message)
    db.session.commit()
    db.session.refresh(application)

    logger.info("HR %s sent offer for application %s", actor.email, application.id)
    notifications.notify_offer(application.user, application, offer_message)
    return application
