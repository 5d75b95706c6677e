import logging
from ims.extensions import celery, mail
from flask_mail import Message

logger = logging.getLogger(__name__)


@celery.task(name='ims.send_async_email')
def send_async_email(subject, recipient, body, is_html=True):
    """
    Background task to send an email via Flask-Mail.
    Delivery failures are logged and dropped; nothing is retried.
    """
    try:
        msg = Message(subject, recipients=[recipient])
        if is_html:
            msg.html = body
        else:
            msg.body = body

        mail.send(msg)
        return f"Email sent to {recipient}"
    except Exception:
        logger.exception("Email delivery to %s failed (%s)", recipient, subject)
        return None
