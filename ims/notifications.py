"""Outbound email for account events and application state changes.

Every public ``notify_*`` helper is fire-and-forget: the message is rendered
with the shared ``email/notification.html`` template and handed to the
``send_async_email`` Celery task. Rendering or hand-off failures are logged and
swallowed so that a broken mail setup never fails the operation that triggered
the email.
"""
import logging
from datetime import datetime
from flask import current_app, render_template
from markupsafe import escape
from ims.departments import get_catalog
from ims.tasks import send_async_email

logger = logging.getLogger(__name__)


def send_system_email(recipient, subject, html_body):
    """Queues an HTML email. Never raises."""
    if not recipient:
        logger.warning("Skipping email '%s': no recipient", subject)
        return False
    try:
        send_async_email.delay(subject, recipient, html_body, is_html=True)
        return True
    except Exception:
        logger.exception("Could not queue email '%s' to %s", subject, recipient)
        return False


def _send(recipient, subject, heading, body, link=None):
    try:
        html = render_template(
            'email/notification.html',
            subject=heading,
            body=body,
            link=link,
            current_year=datetime.now().year
        )
    except Exception:
        logger.exception("Could not render email '%s'", subject)
        return False
    return send_system_email(recipient, subject, html)


def _portal_link(path=''):
    return current_app.config.get('FRONTEND_URL', '').rstrip('/') + path


def _placement(application):
    catalog = get_catalog()
    return (f"{escape(catalog.department_name(application.preferred_department))}"
            f" / {escape(application.preferred_subdepartment)}")


# --- ACCOUNT EMAILS ---

def notify_welcome(user):
    body = (f"Dear {escape(user.first_name)},<br><br>"
            "Your account on the Intern Management System has been created. "
            "You can now log in and submit your application.")
    return _send(user.email, "Welcome to Intern Management System", "Welcome", body, _portal_link('/login'))


def notify_account_created(user, temporary_password, created_by=None):
    creator = f" by {escape(created_by)}" if created_by else ""
    body = (f"Dear {escape(user.first_name)},<br><br>"
            f"An account has been created for you{creator}.<br><br>"
            f"<b>Email:</b> {escape(user.email)}<br>"
            f"<b>Temporary password:</b> {escape(temporary_password)}<br><br>"
            "Please change your password after your first login.")
    return _send(user.email, "Your IMS Account - Login Credentials", "Your Account", body, _portal_link('/login'))


def notify_password_reset(user, temporary_password):
    body = (f"Dear {escape(user.first_name)},<br><br>"
            "Your password has been reset.<br><br>"
            f"<b>Temporary password:</b> {escape(temporary_password)}<br><br>"
            "Please log in and change it immediately.")
    return _send(user.email, "Password Reset - IMS Account", "Password Reset", body, _portal_link('/login'))


# --- APPLICATION EMAILS ---

def notify_application_submitted(user, application):
    body = (f"Dear {escape(user.first_name)},<br><br>"
            f"Your {escape(application.applicant_role.value)} application for "
            f"<b>{_placement(application)}</b> has been received and is awaiting HR review.<br><br>"
            f"Requested period: {application.start_date:%d %b %Y} to {application.end_date:%d %b %Y}.")
    return _send(user.email, "Application Submitted - IMS", "Application Submitted", body)


def notify_forwarded_to_hod(user, application, hr_comments):
    body = (f"Dear {escape(user.first_name)},<br><br>"
            "Your application has passed HR review and has been forwarded to the Head of "
            f"Department for <b>{_placement(application)}</b>.<br><br>"
            f"<b>HR comments:</b> {escape(hr_comments)}")
    return _send(user.email, "Application Update - Under HOD Review", "Under HOD Review", body)


def notify_final_decision(user, application, approved, comments):
    if approved:
        heading = "Application Approved"
        body = (f"Dear {escape(user.first_name)},<br><br>"
                f"Congratulations! Your application for <b>{_placement(application)}</b> has been approved.<br><br>"
                f"<b>Start date:</b> {application.start_date:%d %b %Y}<br>"
                f"<b>End date:</b> {application.end_date:%d %b %Y}<br><br>"
                f"<b>Comments:</b> {escape(comments)}<br><br>"
                "HR will contact you with your offer details.")
    else:
        heading = "Application Decision"
        body = (f"Dear {escape(user.first_name)},<br><br>"
                "Thank you for your interest. After careful review we are unable to offer you "
                f"a placement in <b>{_placement(application)}</b> at this time.<br><br>"
                f"<b>Comments:</b> {escape(comments)}")
    return _send(user.email, f"{heading} - IMS", heading, body)


def notify_hod_approval_to_hr(hr_user, application, applicant, comments):
    body = (f"Dear {escape(hr_user.first_name)},<br><br>"
            f"The Head of Department approved <b>{escape(applicant.full_name)}</b> "
            f"for {_placement(application)}.<br><br>"
            f"<b>HOD comments:</b> {escape(comments)}<br><br>"
            "You can now send the offer email from your dashboard.")
    return _send(hr_user.email, "HOD Approval - Offer Pending", "HOD Approval", body, _portal_link('/hr'))


def notify_offer(user, application, offer_message):
    body = (f"Dear {escape(user.first_name)},<br><br>"
            f"{escape(offer_message)}<br><br>"
            f"<b>Placement:</b> {_placement(application)}<br>"
            f"<b>Period:</b> {application.start_date:%d %b %Y} to {application.end_date:%d %b %Y}")
    return _send(user.email, "Placement Offer - IMS", "Placement Offer", body)
